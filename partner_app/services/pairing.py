"""
Partner requests and the mutual partner relationship.

A pending request from A to B is the row ``PartnerRequest(A, B)``. Adding and
removing rows are the only set operations, so concurrent requests from
different senders never overwrite each other. Accepting claims both accounts
with conditional updates and removes the request in one transaction.
"""
import logging
from dataclasses import dataclass
from typing import List, Optional

from sqlalchemy import or_, update
from sqlalchemy.exc import IntegrityError
from sqlmodel import Session, select

from partner_app.core import errors
from partner_app.models.user import PartnerRequest, User
from partner_app.services.verification import normalize_email

logger = logging.getLogger(__name__)


@dataclass
class PendingRequest:
    from_id: str
    from_name: str
    from_email: str


def pending_request_ids(session: Session, account_id: str) -> List[str]:
    statement = (
        select(PartnerRequest.sender_id)
        .where(PartnerRequest.receiver_id == account_id)
        .order_by(PartnerRequest.created_at)
    )
    return list(session.exec(statement).all())


class PairingService:
    def __init__(self, session: Session, caller: Optional[User]):
        if caller is None:
            raise errors.NotAuthenticatedError()
        self.session = session
        self.caller = caller

    def _has_request(self, sender_id: str, receiver_id: str) -> bool:
        return self.session.get(PartnerRequest, (sender_id, receiver_id)) is not None

    def send_request(self, target_email: str) -> User:
        target = self.session.exec(
            select(User).where(User.email == normalize_email(target_email))
        ).first()
        if target is None:
            raise errors.NotFoundError("User not found")
        if target.id == self.caller.id:
            raise errors.SelfRequestError()
        if self._has_request(self.caller.id, target.id):
            raise errors.AlreadyRequestedError()

        self.session.add(PartnerRequest(sender_id=self.caller.id, receiver_id=target.id))
        try:
            self.session.commit()
        except IntegrityError:
            # a concurrent identical request got there first; the set already holds it
            self.session.rollback()
        logger.info("Partner request %s -> %s", self.caller.id, target.id)
        return target

    def _claim(self, account_id: str, partner_id: str) -> bool:
        """
        Point ``account_id`` at ``partner_id`` unless it is partnered with
        someone else. Check and write are a single UPDATE.
        """
        result = self.session.connection().execute(
            update(User)
            .where(
                User.id == account_id,
                or_(User.partner_id.is_(None), User.partner_id == partner_id),
            )
            .values(partner_id=partner_id)
        )
        return result.rowcount == 1

    def accept_request(self, from_account_id: str) -> User:
        sender = self.session.get(User, from_account_id)
        if sender is None:
            raise errors.NotFoundError("User not found")

        pending = self.session.get(PartnerRequest, (from_account_id, self.caller.id))
        already_partners = self.caller.partner_id == sender.id
        if pending is None and not already_partners:
            raise errors.NotFoundError("No pending request from this user")

        caller_id, sender_id = self.caller.id, sender.id
        if not (self._claim(caller_id, sender_id) and self._claim(sender_id, caller_id)):
            self.session.rollback()
            raise errors.AlreadyPairedError()

        if pending is not None:
            self.session.delete(pending)
        reverse = self.session.get(PartnerRequest, (caller_id, sender_id))
        if reverse is not None:
            self.session.delete(reverse)
        self.session.commit()
        self.session.refresh(self.caller)
        self.session.refresh(sender)
        logger.info("Accounts %s and %s are now partners", caller_id, sender_id)
        return sender

    def reject_request(self, from_account_id: str) -> None:
        pending = self.session.get(PartnerRequest, (from_account_id, self.caller.id))
        if pending is None:
            return
        self.session.delete(pending)
        self.session.commit()

    def remove_partner(self) -> None:
        if not self.caller.partner_id:
            raise errors.NoPartnerError()

        former = self.session.get(User, self.caller.partner_id)
        self.caller.partner_id = None
        self.session.add(self.caller)
        # the other side may already have moved on
        if former is not None and former.partner_id == self.caller.id:
            former.partner_id = None
            self.session.add(former)
        self.session.commit()
        self.session.refresh(self.caller)

    def get_partner(self) -> Optional[User]:
        if not self.caller.partner_id:
            return None
        return self.session.get(User, self.caller.partner_id)

    def list_requests(self) -> List[PendingRequest]:
        statement = (
            select(User)
            .join(PartnerRequest, PartnerRequest.sender_id == User.id)
            .where(PartnerRequest.receiver_id == self.caller.id)
            .order_by(PartnerRequest.created_at)
        )
        return [
            PendingRequest(from_id=u.id, from_name=u.name, from_email=u.email)
            for u in self.session.exec(statement).all()
        ]
