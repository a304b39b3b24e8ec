from typing import Optional
from pydantic import BaseModel, ConfigDict, EmailStr, Field

class SendOtpRequest(BaseModel):
    email: EmailStr
    otp: Optional[str] = None
    name: Optional[str] = None

class SendOtpResponse(BaseModel):
    model_config = ConfigDict(populate_by_name=True)

    success: bool
    message: Optional[str] = None
    message_id: Optional[str] = Field(default=None, alias="messageId")
