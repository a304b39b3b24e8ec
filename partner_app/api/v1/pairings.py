from typing import Any

from fastapi import APIRouter

from partner_app.api import deps
from partner_app.schemas.msg import Msg
from partner_app.schemas.pairing import (
    PairingResponse,
    PartnerInfo,
    PartnerRequestCreate,
    PartnerResponse,
    PendingRequestInfo,
    PendingRequestList,
)

router = APIRouter()


@router.post("/requests", response_model=Msg)
def send_partner_request(
    payload: PartnerRequestCreate,
    service: deps.PairingServiceDep,
) -> Any:
    """
    Ask the account with the given email to become your partner.
    """
    service.send_request(payload.email)
    return {"message": "Request sent!"}


@router.get("/requests", response_model=PendingRequestList)
def list_partner_requests(service: deps.PairingServiceDep) -> Any:
    """
    Pending requests addressed to the current user.
    """
    return {
        "requests": [PendingRequestInfo.model_validate(r) for r in service.list_requests()]
    }


@router.post("/requests/{from_id}/accept", response_model=PairingResponse)
def accept_partner_request(from_id: str, service: deps.PairingServiceDep) -> Any:
    """
    Accept a pending request; both accounts become partners.
    """
    partner = service.accept_request(from_id)
    return {"message": "Partner connected!", "partner": PartnerInfo.model_validate(partner)}


@router.post("/requests/{from_id}/reject", response_model=Msg)
def reject_partner_request(from_id: str, service: deps.PairingServiceDep) -> Any:
    service.reject_request(from_id)
    return {"message": "Request declined"}


@router.get("/partner", response_model=PartnerResponse)
def get_partner(service: deps.PairingServiceDep) -> Any:
    partner = service.get_partner()
    return {"partner": PartnerInfo.model_validate(partner) if partner else None}


@router.delete("/partner", response_model=Msg)
def remove_partner(service: deps.PairingServiceDep) -> Any:
    """
    Unpair from current partner.
    """
    service.remove_partner()
    return {"message": "Partner removed"}
