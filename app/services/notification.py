"""
Notification Dispatch

Leave transitions queue messages while they run and send them only after the
transition has committed. Delivery is fire-and-forget: a failing notifier is
logged and never affects the transition.
"""
import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import date
from typing import List, Optional, Tuple

from sqlalchemy.orm import Session

from app.core.config import settings
from app.models.notification import Notification
from app.models.user import User

logger = logging.getLogger(__name__)

DateRange = Tuple[date, date]


class Notifier(ABC):
    """Delivery contract. Implementations may raise; the dispatcher absorbs it."""

    @abstractmethod
    def notify(
        self,
        recipient_email: str,
        subject: str,
        date_range: DateRange,
        body: str,
        leave_request_id: Optional[int] = None,
    ) -> None:
        ...


class InAppNotifier(Notifier):
    """Stores the message as an in-app notification for the recipient."""

    def __init__(self, db: Session):
        self.db = db

    def notify(self, recipient_email, subject, date_range, body, leave_request_id=None) -> None:
        user = self.db.query(User).filter(User.email == recipient_email).first()
        if user is None:
            logger.warning(f"Notification recipient {recipient_email} has no account; skipped")
            return
        start, end = date_range
        notification = Notification(
            user_id=user.id,
            title=subject,
            message=body,
            type="leave",
            leave_request_id=leave_request_id,
            period_start=start.isoformat(),
            period_end=end.isoformat(),
        )
        self.db.add(notification)
        try:
            self.db.commit()
        except Exception:
            self.db.rollback()
            raise


@dataclass
class PendingMessage:
    recipient_email: str
    subject: str
    date_range: DateRange
    body: str
    leave_request_id: Optional[int] = None


class NotificationDispatcher:
    def __init__(self, notifier: Notifier, enabled: Optional[bool] = None):
        self.notifier = notifier
        self.enabled = settings.notifications_enabled if enabled is None else enabled
        self._queue: List[PendingMessage] = []

    def queue(
        self,
        recipient: Optional[User],
        subject: str,
        date_range: DateRange,
        body: str,
        leave_request_id: Optional[int] = None,
    ) -> None:
        if recipient is None or not recipient.email:
            return
        self._queue.append(PendingMessage(recipient.email, subject, date_range, body, leave_request_id))

    def queue_many(self, recipients, subject, date_range, body, leave_request_id=None) -> None:
        for recipient in recipients:
            self.queue(recipient, subject, date_range, body, leave_request_id)

    def discard(self) -> None:
        self._queue.clear()

    def flush(self) -> int:
        """Deliver queued messages; returns how many were delivered."""
        messages, self._queue = self._queue, []
        if not self.enabled:
            return 0
        delivered = 0
        for message in messages:
            try:
                self.notifier.notify(
                    message.recipient_email,
                    message.subject,
                    message.date_range,
                    message.body,
                    leave_request_id=message.leave_request_id,
                )
                delivered += 1
            except Exception as e:
                # Don't fail the request if notification fails
                logger.warning(
                    f"Notification failed: {e}",
                    exc_info=True,
                    extra={"recipient": message.recipient_email, "leave_request_id": message.leave_request_id},
                )
        return delivered
