import datetime
from typing import List
from pydantic import BaseModel, ConfigDict, Field

from partner_app.models.message import MessageType

class MessageCreate(BaseModel):
    receiver_id: str
    message: str = Field(min_length=1, max_length=1000)
    type: MessageType = MessageType.MESSAGE

class IncomingMessage(BaseModel):
    message: str = Field(min_length=1, max_length=1000)
    type: MessageType = MessageType.MESSAGE

class MessageRead(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: int
    sender_id: str
    sender_name: str
    receiver_id: str
    receiver_name: str
    message: str
    type: MessageType
    created_at: datetime.datetime

class MessageList(BaseModel):
    success: bool = True
    messages: List[MessageRead]

class Correspondent(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    name: str
    email: str
    streak: int = 0
    is_partner: bool = False

class CorrespondentList(BaseModel):
    success: bool = True
    partners: List[Correspondent]
