import datetime
import logging
from typing import Optional

from sqlalchemy.exc import SQLAlchemyError
from sqlmodel import Session

from partner_app.models.user import User

logger = logging.getLogger(__name__)


def today_utc() -> datetime.date:
    return datetime.datetime.now(datetime.timezone.utc).date()


def next_streak(last_login_date: Optional[datetime.date], streak: int, today: datetime.date) -> Optional[int]:
    """
    New streak value for a login on ``today``, or None when the user already
    logged in today and nothing should change.
    """
    if last_login_date == today:
        return None
    if last_login_date == today - datetime.timedelta(days=1):
        return (streak or 0) + 1
    return 1


def record_login(session: Session, user: User, today: Optional[datetime.date] = None) -> User:
    """
    Apply the consecutive-day login counter for ``user``.

    Best effort: a database failure is logged and rolled back, never raised,
    so it cannot stand in the way of the session being established.
    """
    today = today or today_utc()
    streak = next_streak(user.last_login_date, user.streak, today)
    if streak is None:
        return user

    try:
        user.streak = streak
        user.last_login_date = today
        session.add(user)
        session.commit()
        session.refresh(user)
    except SQLAlchemyError as e:
        logger.error("Error updating login streak for %s: %s", user.id, e)
        session.rollback()
    return user
