import logging
from typing import Any

from fastapi import APIRouter, WebSocket, WebSocketDisconnect, status
from fastapi.concurrency import run_in_threadpool
from pydantic import ValidationError

from partner_app.api import deps
from partner_app.core import errors
from partner_app.core.config import settings
from partner_app.models.user import User
from partner_app.schemas.message import (
    Correspondent,
    CorrespondentList,
    IncomingMessage,
    MessageCreate,
    MessageList,
    MessageRead,
)
from partner_app.schemas.msg import Msg
from partner_app.services import chat

logger = logging.getLogger(__name__)

router = APIRouter()


@router.get("/conversations", response_model=CorrespondentList)
def list_conversations(session: deps.SessionDep, current_user: deps.CurrentUser) -> Any:
    """
    Everyone the current user has exchanged messages with, partner first.
    """
    return {
        "partners": [
            Correspondent(
                id=u.id,
                name=u.name,
                email=u.email,
                streak=u.streak,
                is_partner=u.id == current_user.partner_id,
            )
            for u in chat.correspondents(session, current_user)
        ]
    }


@router.get("/{other_id}", response_model=MessageList)
def read_conversation(
    other_id: str,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
    limit: int = settings.CHAT_HISTORY_LIMIT,
) -> Any:
    messages = chat.conversation(session, current_user.id, other_id, limit=max(1, min(limit, 500)))
    return {"messages": [MessageRead.model_validate(m) for m in messages]}


@router.post("/", response_model=MessageRead, status_code=status.HTTP_201_CREATED)
async def post_message(
    payload: MessageCreate,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
) -> Any:
    msg = await run_in_threadpool(
        chat.send_message, session, current_user, payload.receiver_id, payload.message, payload.type
    )
    await chat.hub.publish(chat.conversation_key(msg.sender_id, msg.receiver_id), chat.message_frame(msg))
    return MessageRead.model_validate(msg)


@router.delete("/{message_id}", response_model=Msg)
async def remove_message(
    message_id: int,
    session: deps.SessionDep,
    current_user: deps.CurrentUser,
) -> Any:
    receiver_id = await run_in_threadpool(chat.delete_message, session, current_user, message_id)
    await chat.hub.publish(chat.conversation_key(current_user.id, receiver_id), chat.deleted_frame(message_id))
    return {"message": "Message deleted"}


@router.websocket("/ws/{other_id}")
async def conversation_ws(ws: WebSocket, other_id: str, session: deps.SessionDep):
    """
    Live view of one conversation. The socket only ever sees messages
    between its two participants; closing it releases the subscription.
    """
    token = ws.query_params.get("token")
    # Fallback to header (for non-browser clients)
    if not token:
        auth = ws.headers.get("authorization")
        if auth and auth.startswith("Bearer "):
            token = auth.split(" ", 1)[1]

    try:
        user = await run_in_threadpool(deps.user_from_token, session, token)
    except errors.ServiceError as e:
        logger.warning("Chat socket rejected: %s", e.message)
        await ws.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    other = await run_in_threadpool(session.get, User, other_id)
    if other is None or other.id == user.id:
        await ws.close(code=status.WS_1008_POLICY_VIOLATION)
        return

    key = chat.conversation_key(user.id, other.id)
    await ws.accept()
    await chat.hub.subscribe(ws, key)
    try:
        history = await run_in_threadpool(
            chat.conversation, session, user.id, other.id, settings.CHAT_HISTORY_LIMIT
        )
        await ws.send_json(chat.history_frame(history))

        while True:
            raw = await ws.receive_text()
            try:
                incoming = IncomingMessage.model_validate_json(raw)
            except ValidationError:
                await ws.send_json({"type": "error", "message": "Invalid message"})
                continue

            try:
                msg = await run_in_threadpool(
                    chat.send_message, session, user, other.id, incoming.message, incoming.type
                )
            except errors.ServiceError as e:
                await ws.send_json({"type": "error", "code": e.code, "message": e.message})
                continue
            await chat.hub.publish(key, chat.message_frame(msg))
    except WebSocketDisconnect:
        pass
    finally:
        await chat.hub.unsubscribe(ws, key)
