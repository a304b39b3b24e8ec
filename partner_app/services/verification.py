"""
Registration and email verification.

An account moves ``UNREGISTERED -> PENDING_VERIFICATION -> VERIFIED``.
Registration creates the account and its OTP record and mails the code; no
session is issued until the code is checked. Login and the session
dependency both consult ``User.state``, so a pending account is never
treated as logged in.
"""
import logging
from dataclasses import dataclass
from typing import Any, Optional, Tuple, Union

from fastapi.concurrency import run_in_threadpool
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from partner_app.core import errors
from partner_app.core.config import settings
from partner_app.core.rate_limit import RateLimiter, rate_limiter as default_rate_limiter
from partner_app.core.security import (
    create_access_token,
    create_verification_token,
    hash_password,
    verify_password,
)
from partner_app.models.user import AccountState, User, utcnow
from partner_app.services.mail import MailGateway
from partner_app.services.otp_store import OtpStore, generate_code
from partner_app.services.streak import record_login

logger = logging.getLogger(__name__)

MIN_PASSWORD_LENGTH = 6


@dataclass
class RegistrationResult:
    registered: bool
    email_delivered: bool
    account_id: str
    verification_token: str
    message: str


@dataclass
class ResendResult:
    email_delivered: bool
    account_id: str
    verification_token: str
    message: str


@dataclass
class SessionResult:
    access_token: str
    user: User


def normalize_email(email: Optional[str]) -> str:
    return (email or "").strip().lower()


class VerificationService:
    def __init__(self, session: Session, mail: MailGateway, limiter: RateLimiter = default_rate_limiter):
        self.session = session
        self.mail = mail
        self.limiter = limiter
        self.otps = OtpStore(session)

    def get_by_email(self, email: str) -> Optional[User]:
        return self.session.exec(select(User).where(User.email == normalize_email(email))).first()

    async def register(self, profile: Any) -> RegistrationResult:
        """
        Create an unverified account and mail it a fresh OTP.

        ``profile`` is any object with ``name``, ``email``, ``password`` and
        optionally ``mobile``, ``course``, ``college``, ``year`` and
        ``start_date`` attributes.
        """
        user, code = await run_in_threadpool(self._create_pending, profile)

        result = await self.mail.send_otp(user.email, code, user.name)
        if not result.success:
            logger.warning("OTP email not delivered to %s; code stays valid for resend", user.email)

        return RegistrationResult(
            registered=True,
            email_delivered=result.success,
            account_id=user.id,
            verification_token=create_verification_token(user.id, user.email),
            message=(
                f"OTP sent to {user.email}! Check your email."
                if result.success
                else "Account created, but the email may not have been delivered. Please request a new code."
            ),
        )

    def _create_pending(self, profile: Any) -> Tuple[User, str]:
        name = (getattr(profile, "name", None) or "").strip()
        email = normalize_email(getattr(profile, "email", None))
        password = getattr(profile, "password", None) or ""

        if not name or not email or not password:
            raise errors.ValidationError()
        if len(password) < MIN_PASSWORD_LENGTH:
            raise errors.ValidationError(f"Password should be at least {MIN_PASSWORD_LENGTH} characters")
        if self.get_by_email(email):
            raise errors.EmailInUseError()

        user = User(
            email=email,
            name=name,
            mobile=getattr(profile, "mobile", None) or None,
            course=getattr(profile, "course", None),
            college=getattr(profile, "college", None),
            year=getattr(profile, "year", None),
            start_date=getattr(profile, "start_date", None) or utcnow().date(),
            hashed_password=hash_password(password),
            email_verified=False,
        )
        code = generate_code(settings.OTP_LENGTH)
        try:
            self.session.add(user)
            self.session.flush()
            self.otps.put(user.id, code, email, settings.OTP_TTL_SECONDS, commit=False)
            self.session.commit()
        except IntegrityError:
            # a concurrent registration took the email first
            self.session.rollback()
            raise errors.EmailInUseError()
        self.session.refresh(user)
        logger.info("Registered account %s, awaiting OTP verification", user.id)
        return user, code

    async def check_verification(self, account_id: str, submitted_code: Union[str, int, None]) -> SessionResult:
        user = await run_in_threadpool(self._consume_code, account_id, submitted_code)

        welcome = await self.mail.send_welcome(user.email, user.name)
        if not welcome.success:
            logger.warning("Welcome email not delivered to %s", user.email)

        return SessionResult(access_token=create_access_token(user.id), user=user)

    def _consume_code(self, account_id: str, submitted_code: Union[str, int, None]) -> User:
        code = str(submitted_code).strip() if submitted_code is not None else ""
        if len(code) != settings.OTP_LENGTH:
            raise errors.InvalidInputError()

        self.limiter.hit(
            f"otp-verify:{account_id}", settings.VERIFY_MAX_ATTEMPTS, settings.VERIFY_WINDOW_SECONDS
        )

        record = self.otps.get(account_id)
        if record is None:
            raise errors.NotFoundError("OTP not found. Please request a new one.")
        if record.is_expired():
            raise errors.ExpiredError()
        if str(record.code).strip() != code:
            raise errors.MismatchError()
        if record.verified:
            raise errors.AlreadyConsumedError()

        user = self.session.get(User, account_id)
        if user is None:
            raise errors.NotFoundError("User not found. Please register first.")

        self.otps.mark_verified(account_id, commit=False)
        user.email_verified = True
        self.session.add(user)
        self.session.commit()
        self.session.refresh(user)
        self.limiter.reset(f"otp-verify:{account_id}")
        logger.info("Email verified for account %s", account_id)

        return record_login(self.session, user)

    async def resend(self, email: str) -> ResendResult:
        user, code = await run_in_threadpool(self._renew_code, email)

        result = await self.mail.send_otp(user.email, code, user.name)
        if not result.success:
            logger.warning("Resent OTP email not delivered to %s", user.email)

        return ResendResult(
            email_delivered=result.success,
            account_id=user.id,
            verification_token=create_verification_token(user.id, user.email),
            message="New OTP sent!" if result.success else "Email may not have been delivered. Please try again.",
        )

    def _renew_code(self, email: str) -> Tuple[User, str]:
        email = normalize_email(email)
        if not email:
            raise errors.ValidationError("Email is required")

        user = self.get_by_email(email)
        if user is None:
            raise errors.NotFoundError("User not found")
        if user.state is AccountState.VERIFIED:
            raise errors.AlreadyVerifiedError()

        self.limiter.hit(f"otp-send:{email}", settings.OTP_SEND_MAX_REQUESTS, settings.OTP_SEND_WINDOW_SECONDS)

        code = generate_code(settings.OTP_LENGTH)
        self.otps.put(user.id, code, email, settings.OTP_TTL_SECONDS)
        # failed guesses against the old code do not count against the new one
        self.limiter.reset(f"otp-verify:{user.id}")
        return user, code

    def login(self, email: str, password: str) -> SessionResult:
        """
        Check credentials and start a session. Only failed attempts count
        towards ``LOGIN_MAX_ATTEMPTS``; a successful login clears them.
        """
        email = normalize_email(email)
        key = f"login:{email}"
        if self.limiter.is_limited(key, settings.LOGIN_MAX_ATTEMPTS, settings.LOGIN_WINDOW_SECONDS):
            logger.warning("Login locked for %s after repeated failures", email)
            raise errors.RateLimitedError()

        user = self.get_by_email(email)
        if user is None or not verify_password(password or "", user.hashed_password):
            self.limiter.allow_request(key, settings.LOGIN_MAX_ATTEMPTS, settings.LOGIN_WINDOW_SECONDS)
            raise errors.InvalidCredentialsError()
        if user.state is not AccountState.VERIFIED:
            logger.info("Login refused for unverified account %s", user.id)
            raise errors.NotVerifiedError()

        self.limiter.reset(key)
        user = record_login(self.session, user)
        return SessionResult(access_token=create_access_token(user.id), user=user)
