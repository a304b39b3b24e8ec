import datetime
import enum
import uuid
from typing import Optional
from sqlmodel import Field, SQLModel


def new_id() -> str:
    return uuid.uuid4().hex


def utcnow() -> datetime.datetime:
    """Timezone-aware UTC timestamp, the format every datetime column is stored in."""
    return datetime.datetime.now(datetime.timezone.utc)


def as_utc(value: datetime.datetime) -> datetime.datetime:
    """Attach UTC to a value read back from a backend that drops the offset."""
    if value.tzinfo is None:
        return value.replace(tzinfo=datetime.timezone.utc)
    return value


class AccountState(str, enum.Enum):
    UNREGISTERED = "unregistered"
    PENDING_VERIFICATION = "pending_verification"
    VERIFIED = "verified"


class User(SQLModel, table=True):
    __tablename__ = "users"

    id: str = Field(default_factory=new_id, primary_key=True)
    email: str = Field(unique=True, index=True)
    name: str
    mobile: Optional[str] = None
    hashed_password: str

    # Profile
    course: Optional[str] = None
    college: Optional[str] = None
    year: Optional[str] = None
    start_date: Optional[datetime.date] = None

    email_verified: bool = False

    # Pairing
    partner_id: Optional[str] = Field(default=None, foreign_key="users.id")

    # Streak
    last_login_date: Optional[datetime.date] = None
    streak: int = Field(default=0, ge=0)

    created_at: datetime.datetime = Field(default_factory=utcnow)

    @property
    def state(self) -> AccountState:
        if self.email_verified:
            return AccountState.VERIFIED
        return AccountState.PENDING_VERIFICATION


class PartnerRequest(SQLModel, table=True):
    """Membership of ``sender_id`` in the receiver's pending request set."""
    __tablename__ = "partner_requests"

    sender_id: str = Field(foreign_key="users.id", primary_key=True)
    receiver_id: str = Field(foreign_key="users.id", primary_key=True, index=True)
    created_at: datetime.datetime = Field(default_factory=utcnow)
