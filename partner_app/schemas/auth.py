import datetime
from typing import Optional, Union
from pydantic import BaseModel, EmailStr

class RegisterRequest(BaseModel):
    # presence is checked by the verification service so a missing field
    # is reported like any other registration failure
    name: Optional[str] = None
    email: Optional[EmailStr] = None
    password: Optional[str] = None
    mobile: Optional[str] = None
    course: Optional[str] = None
    college: Optional[str] = None
    year: Optional[str] = None
    start_date: Optional[datetime.date] = None

class RegisterResponse(BaseModel):
    success: bool = True
    message: str
    registered: bool
    email_delivered: bool
    user_id: str
    verification_token: str
    expires_in_seconds: int

class VerifyRequest(BaseModel):
    verification_token: str
    code: Union[str, int]

class ResendRequest(BaseModel):
    email: Optional[str] = None

class ResendResponse(BaseModel):
    success: bool = True
    message: str
    email_delivered: bool
    user_id: str
    verification_token: str
    expires_in_seconds: int

class LoginRequest(BaseModel):
    email: str
    password: str
