import datetime
import enum
from typing import Optional
from sqlmodel import Field, SQLModel

from partner_app.models.user import utcnow


class MessageType(str, enum.Enum):
    MESSAGE = "message"
    UPDATE = "update"
    ACHIEVEMENT = "achievement"


class Message(SQLModel, table=True):
    __tablename__ = "messages"

    id: Optional[int] = Field(default=None, primary_key=True)
    sender_id: str = Field(foreign_key="users.id", index=True)
    sender_name: str
    receiver_id: str = Field(foreign_key="users.id", index=True)
    receiver_name: str
    message: str = Field(max_length=1000)
    type: MessageType = MessageType.MESSAGE
    created_at: datetime.datetime = Field(default_factory=utcnow, index=True)
