from fastapi import APIRouter

api_router = APIRouter()

from partner_app.api.v1 import auth, messages, pairings, users

api_router.include_router(auth.router, prefix="/auth", tags=["auth"])
api_router.include_router(users.router, prefix="/users", tags=["users"])
api_router.include_router(pairings.router, prefix="/pairings", tags=["pairings"])
api_router.include_router(messages.router, prefix="/messages", tags=["messages"])
