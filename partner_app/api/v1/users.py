from typing import Any

from fastapi import APIRouter

from partner_app.api import deps
from partner_app.schemas.user import UserMe, UserPublic
from partner_app.services.pairing import pending_request_ids

router = APIRouter()


@router.get("/me", response_model=UserMe)
def read_me(session: deps.SessionDep, current_user: deps.CurrentUser) -> Any:
    return UserMe(
        **UserPublic.model_validate(current_user).model_dump(),
        pending_requests=pending_request_ids(session, current_user.id),
    )
