import datetime
from typing import Any, Dict, Optional

from jose import jwt, JWTError
from passlib.context import CryptContext

from partner_app.core.config import settings

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto")

ACCESS_TOKEN = "access"
VERIFICATION_TOKEN = "verification"


def hash_password(password: str) -> str:
    return pwd_context.hash(password)


def verify_password(password: str, hashed_password: str) -> bool:
    return pwd_context.verify(password, hashed_password)


def _create_token(subject: str, token_type: str, expires_delta: datetime.timedelta, **claims: Any) -> str:
    now = datetime.datetime.now(datetime.timezone.utc)
    to_encode = {
        "sub": subject,
        "type": token_type,
        "iat": now,
        "exp": now + expires_delta,
        **claims,
    }
    return jwt.encode(to_encode, settings.SECRET_KEY, algorithm=settings.ALGORITHM)


def create_access_token(account_id: str) -> str:
    return _create_token(
        account_id,
        ACCESS_TOKEN,
        datetime.timedelta(minutes=settings.ACCESS_TOKEN_EXPIRE_MINUTES),
    )


def create_verification_token(account_id: str, email: str) -> str:
    """
    Short-lived handle on a pending registration. It lets the client submit
    the OTP and ask for the pending code to be re-delivered, nothing else.
    """
    return _create_token(
        account_id,
        VERIFICATION_TOKEN,
        datetime.timedelta(minutes=settings.VERIFICATION_TOKEN_EXPIRE_MINUTES),
        email=email,
    )


def decode_token(token: str, token_type: str) -> Optional[Dict[str, Any]]:
    """Return the claims of a valid token of ``token_type``, or None."""
    try:
        payload = jwt.decode(token, settings.SECRET_KEY, algorithms=[settings.ALGORITHM])
    except JWTError:
        return None
    if payload.get("type") != token_type or not payload.get("sub"):
        return None
    return payload
