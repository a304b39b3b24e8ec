from typing import Any

from fastapi import APIRouter, status

from partner_app.api import deps
from partner_app.core import errors
from partner_app.core.config import settings
from partner_app.core.security import VERIFICATION_TOKEN, decode_token
from partner_app.schemas.auth import (
    LoginRequest,
    RegisterRequest,
    RegisterResponse,
    ResendRequest,
    ResendResponse,
    VerifyRequest,
)
from partner_app.schemas.token import Token
from partner_app.schemas.user import UserPublic

router = APIRouter()


@router.post("/register", response_model=RegisterResponse, status_code=status.HTTP_201_CREATED)
async def register(payload: RegisterRequest, service: deps.VerificationServiceDep) -> Any:
    """
    Create an unverified account and email it a one-time code.

    No session is returned; the client keeps ``verification_token`` to submit
    the code.
    """
    result = await service.register(payload)
    return {
        "message": result.message,
        "registered": result.registered,
        "email_delivered": result.email_delivered,
        "user_id": result.account_id,
        "verification_token": result.verification_token,
        "expires_in_seconds": settings.OTP_TTL_SECONDS,
    }


@router.post("/verify", response_model=Token)
async def verify(payload: VerifyRequest, service: deps.VerificationServiceDep) -> Any:
    """Check the emailed code and start the session."""
    claims = decode_token(payload.verification_token, VERIFICATION_TOKEN)
    if not claims:
        raise errors.NotAuthenticatedError("Session expired. Please request a new code.")

    result = await service.check_verification(claims["sub"], payload.code)
    return {
        "message": "Email verified!",
        "access_token": result.access_token,
        "user": UserPublic.model_validate(result.user),
    }


@router.post("/resend", response_model=ResendResponse)
async def resend(payload: ResendRequest, service: deps.VerificationServiceDep) -> Any:
    result = await service.resend(payload.email)
    return {
        "message": result.message,
        "email_delivered": result.email_delivered,
        "user_id": result.account_id,
        "verification_token": result.verification_token,
        "expires_in_seconds": settings.OTP_TTL_SECONDS,
    }


@router.post("/login", response_model=Token)
def login(payload: LoginRequest, service: deps.VerificationServiceDep) -> Any:
    result = service.login(payload.email, payload.password)
    return {
        "message": "Login successful",
        "access_token": result.access_token,
        "user": UserPublic.model_validate(result.user),
    }
