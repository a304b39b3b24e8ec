import datetime
import secrets
import string
from typing import Optional

from sqlmodel import Session

from partner_app.models.otp import OtpCode
from partner_app.models.user import utcnow


def generate_code(length: int = 6) -> str:
    """Uniformly random numeric code; leading zeros are kept."""
    return "".join(secrets.choice(string.digits) for _ in range(length))


class OtpStore:
    """One pending OTP record per account, overwritten on every (re)send."""

    def __init__(self, session: Session):
        self.session = session

    def put(self, account_id: str, code: str, email: str, ttl_seconds: int, commit: bool = True) -> OtpCode:
        if ttl_seconds <= 0:
            raise ValueError("ttl_seconds must be positive")

        now = utcnow()
        record = self.session.get(OtpCode, account_id)
        if record is None:
            record = OtpCode(account_id=account_id, code=code, email=email, expires_at=now)
        record.code = code
        record.email = email
        record.created_at = now
        record.expires_at = now + datetime.timedelta(seconds=ttl_seconds)
        record.verified = False

        self.session.add(record)
        if commit:
            self.session.commit()
            self.session.refresh(record)
        return record

    def get(self, account_id: str) -> Optional[OtpCode]:
        return self.session.get(OtpCode, account_id)

    def mark_verified(self, account_id: str, commit: bool = True) -> None:
        record = self.session.get(OtpCode, account_id)
        if record is None or record.verified:
            return
        record.verified = True
        self.session.add(record)
        if commit:
            self.session.commit()
