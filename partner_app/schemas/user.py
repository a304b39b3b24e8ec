import datetime
from typing import List, Optional
from pydantic import BaseModel, ConfigDict

class UserPublic(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    mobile: Optional[str] = None
    course: Optional[str] = None
    college: Optional[str] = None
    year: Optional[str] = None
    start_date: Optional[datetime.date] = None
    email_verified: bool
    partner_id: Optional[str] = None
    streak: int = 0
    last_login_date: Optional[datetime.date] = None

class UserMe(UserPublic):
    pending_requests: List[str] = []
