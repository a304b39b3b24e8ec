import datetime
from sqlmodel import Field, SQLModel

from partner_app.models.user import as_utc, utcnow


class OtpCode(SQLModel, table=True):
    __tablename__ = "otp_codes"

    account_id: str = Field(foreign_key="users.id", primary_key=True)
    code: str = Field(max_length=6)
    email: str
    created_at: datetime.datetime = Field(default_factory=utcnow)
    expires_at: datetime.datetime
    verified: bool = False

    def is_expired(self, now: datetime.datetime = None) -> bool:
        return as_utc(now or utcnow()) > as_utc(self.expires_at)
