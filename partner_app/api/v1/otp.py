import logging
from typing import Any, Optional, Tuple

from fastapi import APIRouter, Request
from fastapi.concurrency import run_in_threadpool
from sqlmodel import Session

from partner_app.api import deps
from partner_app.core import errors
from partner_app.core.config import settings
from partner_app.core.security import VERIFICATION_TOKEN, decode_token
from partner_app.models.otp import OtpCode
from partner_app.models.user import AccountState, User
from partner_app.schemas.otp import SendOtpRequest, SendOtpResponse
from partner_app.services.otp_store import OtpStore
from partner_app.services.verification import normalize_email

logger = logging.getLogger(__name__)

router = APIRouter()


def load_pending(session: Session, account_id: str) -> Tuple[Optional[User], Optional[OtpCode]]:
    return session.get(User, account_id), OtpStore(session).get(account_id)


@router.post("/send", response_model=SendOtpResponse)
async def send_otp(
    payload: SendOtpRequest,
    request: Request,
    session: deps.SessionDep,
    mail: deps.MailDep,
    limiter: deps.RateLimiterDep,
    credentials: deps.CredentialsDep,
) -> Any:
    """
    Re-deliver the pending one-time code of a registration.

    The caller must hold the verification token issued at registration or
    resend. Only the live code stored for that account is ever mailed, and
    only to that account's address. ``otp`` may be omitted; when given it
    must be that live code.
    """
    claims = decode_token(credentials.credentials, VERIFICATION_TOKEN) if credentials else None
    if not claims:
        raise errors.NotAuthenticatedError("A verification token is required")

    email = normalize_email(payload.email)
    if normalize_email(claims.get("email")) != email:
        raise errors.ForbiddenError("Email does not match the pending registration")

    client = request.client.host if request.client else "unknown"
    limiter.hit(f"otp-send:{email}", settings.OTP_SEND_MAX_REQUESTS, settings.OTP_SEND_WINDOW_SECONDS)
    limiter.hit(f"otp-send-ip:{client}", settings.OTP_SEND_MAX_REQUESTS * 4, settings.OTP_SEND_WINDOW_SECONDS)

    user, record = await run_in_threadpool(load_pending, session, claims["sub"])
    if user is None or user.state is AccountState.VERIFIED:
        raise errors.ForbiddenError("No pending verification for this account")
    if record is None or record.verified or record.is_expired():
        raise errors.ForbiddenError("No live code for this account. Please request a new one.")
    if payload.otp and payload.otp.strip() != record.code:
        raise errors.ForbiddenError("Code does not match the pending verification")

    result = await mail.send_otp(email, record.code, payload.name or user.name)
    if not result.success:
        logger.warning("OTP re-delivery to %s failed", email)
    return {"success": result.success, "message": result.message, "message_id": result.message_id}
