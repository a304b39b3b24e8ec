from typing import List, Optional
from pydantic import BaseModel, ConfigDict

class PartnerRequestCreate(BaseModel):
    email: str

class PartnerInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    id: str
    email: str
    name: str
    streak: int = 0
    partner_id: Optional[str] = None

class PairingResponse(BaseModel):
    success: bool = True
    message: str
    partner: PartnerInfo

class PartnerResponse(BaseModel):
    success: bool = True
    partner: Optional[PartnerInfo] = None

class PendingRequestInfo(BaseModel):
    model_config = ConfigDict(from_attributes=True)

    from_id: str
    from_name: str
    from_email: str

class PendingRequestList(BaseModel):
    success: bool = True
    requests: List[PendingRequestInfo]
