import logging
import time
from typing import Annotated, Generator, Optional

from fastapi import Depends
from fastapi.security import HTTPAuthorizationCredentials, HTTPBearer
from sqlalchemy.exc import OperationalError
from sqlmodel import Session

from partner_app.core import errors
from partner_app.core.config import settings
from partner_app.core.db import engine
from partner_app.core.rate_limit import RateLimiter, rate_limiter
from partner_app.core.security import ACCESS_TOKEN, decode_token
from partner_app.models.user import AccountState, User
from partner_app.services.mail import MailGateway
from partner_app.services.pairing import PairingService
from partner_app.services.verification import VerificationService

logger = logging.getLogger(__name__)

# auto_error=False so a missing header is reported as not_authenticated
bearer_scheme = HTTPBearer(auto_error=False)

_mail_gateway: Optional[MailGateway] = None


def get_session() -> Generator[Session, None, None]:
    with Session(engine) as session:
        yield session


def get_mail_gateway() -> MailGateway:
    global _mail_gateway
    if _mail_gateway is None:
        _mail_gateway = MailGateway()
    return _mail_gateway


def get_rate_limiter() -> RateLimiter:
    return rate_limiter


SessionDep = Annotated[Session, Depends(get_session)]
MailDep = Annotated[MailGateway, Depends(get_mail_gateway)]
RateLimiterDep = Annotated[RateLimiter, Depends(get_rate_limiter)]
CredentialsDep = Annotated[Optional[HTTPAuthorizationCredentials], Depends(bearer_scheme)]


def fetch_account(session: Session, account_id: str) -> Optional[User]:
    """
    Load an account, retrying transient database failures with a linear
    backoff before giving up with TransientStoreError.
    """
    attempts = max(1, settings.STORE_FETCH_RETRIES)
    for attempt in range(1, attempts + 1):
        try:
            return session.get(User, account_id)
        except OperationalError as e:
            session.rollback()
            logger.warning("Account fetch failed (attempt %s/%s): %s", attempt, attempts, e)
            if attempt == attempts:
                raise errors.TransientStoreError() from e
            time.sleep(settings.STORE_RETRY_BACKOFF_SECONDS * attempt)


def user_from_token(session: Session, token: Optional[str]) -> User:
    """
    Resolve an access token to a verified account.

    An unknown account means the session is stale and is treated as signed
    out; a pending account is refused just like at login.
    """
    payload = decode_token(token, ACCESS_TOKEN) if token else None
    if not payload:
        raise errors.NotAuthenticatedError("Could not validate credentials")

    user = fetch_account(session, payload["sub"])
    if user is None:
        raise errors.NotAuthenticatedError("Account profile not found. Please log in again.")
    if user.state is not AccountState.VERIFIED:
        raise errors.NotVerifiedError()
    return user


def get_current_user(session: SessionDep, credentials: CredentialsDep) -> User:
    return user_from_token(session, credentials.credentials if credentials else None)


CurrentUser = Annotated[User, Depends(get_current_user)]


def get_verification_service(
    session: SessionDep, mail: MailDep, limiter: RateLimiterDep
) -> VerificationService:
    return VerificationService(session, mail, limiter)


def get_pairing_service(session: SessionDep, current_user: CurrentUser) -> PairingService:
    return PairingService(session, current_user)


VerificationServiceDep = Annotated[VerificationService, Depends(get_verification_service)]
PairingServiceDep = Annotated[PairingService, Depends(get_pairing_service)]
