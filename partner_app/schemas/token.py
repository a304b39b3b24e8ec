from pydantic import BaseModel
from partner_app.schemas.user import UserPublic

class Token(BaseModel):
    success: bool = True
    message: str = "Logged in"
    access_token: str
    token_type: str = "bearer"
    user: UserPublic
