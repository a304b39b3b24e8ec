import json
import logging
from typing import Any, Dict, FrozenSet, List

from fastapi import WebSocket
from sqlalchemy import and_, or_
from sqlmodel import Session, select

from partner_app.core import errors
from partner_app.models.message import Message, MessageType
from partner_app.models.user import User

logger = logging.getLogger(__name__)


def conversation_key(a: str, b: str) -> FrozenSet[str]:
    return frozenset((a, b))


def message_payload(msg: Message) -> Dict[str, Any]:
    return {
        "id": msg.id,
        "sender_id": msg.sender_id,
        "sender_name": msg.sender_name,
        "receiver_id": msg.receiver_id,
        "receiver_name": msg.receiver_name,
        "message": msg.message,
        "type": msg.type.value if isinstance(msg.type, MessageType) else msg.type,
        "created_at": msg.created_at.isoformat(),
    }


def send_message(
    session: Session,
    sender: User,
    receiver_id: str,
    text: str,
    type: MessageType = MessageType.MESSAGE,
) -> Message:
    text = (text or "").strip()
    if not text:
        raise errors.ValidationError("Message cannot be empty")
    if receiver_id == sender.id:
        raise errors.ValidationError("Cannot send a message to yourself")

    receiver = session.get(User, receiver_id)
    if receiver is None:
        raise errors.NotFoundError("User not found")

    msg = Message(
        sender_id=sender.id,
        sender_name=sender.name,
        receiver_id=receiver.id,
        receiver_name=receiver.name,
        message=text,
        type=type,
    )
    session.add(msg)
    session.commit()
    session.refresh(msg)
    return msg


def conversation(session: Session, a: str, b: str, limit: int = 50) -> List[Message]:
    """The last ``limit`` messages exchanged between ``a`` and ``b``, oldest first."""
    statement = (
        select(Message)
        .where(
            or_(
                and_(Message.sender_id == a, Message.receiver_id == b),
                and_(Message.sender_id == b, Message.receiver_id == a),
            )
        )
        .order_by(Message.created_at.desc(), Message.id.desc())
        .limit(limit)
    )
    return list(reversed(session.exec(statement).all()))


def correspondents(session: Session, user: User) -> List[User]:
    sent = select(Message.receiver_id).where(Message.sender_id == user.id)
    received = select(Message.sender_id).where(Message.receiver_id == user.id)
    ids = set(session.exec(sent).all()) | set(session.exec(received).all())
    if user.partner_id:
        ids.add(user.partner_id)
    ids.discard(user.id)
    if not ids:
        return []
    users = session.exec(select(User).where(User.id.in_(ids))).all()
    # partner first, then by name
    return sorted(users, key=lambda u: (u.id != user.partner_id, u.name.lower()))


def delete_message(session: Session, user: User, message_id: int) -> str:
    """Delete one of ``user``'s own messages and return its receiver id."""
    msg = session.get(Message, message_id)
    if msg is None or msg.sender_id != user.id:
        raise errors.NotFoundError("Message not found")
    receiver_id = msg.receiver_id
    session.delete(msg)
    session.commit()
    return receiver_id


class ConversationHub:
    """
    Live subscriptions per conversation, keyed by the pair of participants.

    Each open conversation view holds one socket here; closing the view (or
    switching to another partner) unsubscribes it.
    """

    def __init__(self):
        self.active: Dict[FrozenSet[str], List[WebSocket]] = {}

    async def subscribe(self, ws: WebSocket, key: FrozenSet[str]) -> None:
        sockets = self.active.setdefault(key, [])
        if ws not in sockets:
            sockets.append(ws)

    async def unsubscribe(self, ws: WebSocket, key: FrozenSet[str]) -> None:
        sockets = self.active.get(key)
        if not sockets or ws not in sockets:
            return
        sockets.remove(ws)
        if not sockets:
            del self.active[key]

    def subscribers(self, key: FrozenSet[str]) -> int:
        return len(self.active.get(key, []))

    async def publish(self, key: FrozenSet[str], payload: Dict[str, Any]) -> None:
        dead = []
        text = json.dumps(payload)

        for ws in list(self.active.get(key, [])):
            try:
                await ws.send_text(text)
            except Exception as e:
                logger.warning("Dropping dead chat socket: %s", e)
                dead.append(ws)

        for ws in dead:
            await self.unsubscribe(ws, key)


hub = ConversationHub()


def history_frame(messages: List[Message]) -> Dict[str, Any]:
    return {"type": "history", "messages": [message_payload(m) for m in messages]}


def message_frame(msg: Message) -> Dict[str, Any]:
    return {"type": "message", **message_payload(msg)}


def deleted_frame(message_id: int) -> Dict[str, Any]:
    return {"type": "deleted", "id": message_id}
