from __future__ import annotations

import logging
import uuid
from typing import Optional, Protocol, runtime_checkable

from .reminders.models import Reminder


logger = logging.getLogger("remind_ops.notifications")


@runtime_checkable
class Notifier(Protocol):
    def send_reminder(
        self, reminder: Reminder, recipient_type: Optional[str], recipient_id: str
    ) -> Optional[str]:
        """Deliver a fired reminder. Returns the delivered message id, if any.

        ``recipient_type`` is None for a personal reminder, otherwise "room" or
        "user". Raises RecipientNotFoundError when the recipient is gone.
        """

    def send_digest(self, user_id: str, upcoming_count: int, past_count: int) -> None:
        """Deliver a user's daily digest."""

    def send_operator_message(self, text: str) -> None:
        """Post a message to the operator channel."""


class LoggingNotifier(Notifier):
    def send_reminder(
        self, reminder: Reminder, recipient_type: Optional[str], recipient_id: str
    ) -> Optional[str]:
        message_id = str(uuid.uuid4())
        logger.info(
            "reminder_delivered id=%s recipient_type=%s recipient_id=%s message_id=%s",
            reminder.id,
            recipient_type or "personal",
            recipient_id,
            message_id,
        )
        return message_id

    def send_digest(self, user_id: str, upcoming_count: int, past_count: int) -> None:
        logger.info(
            "digest_delivered user_id=%s upcoming=%s past=%s", user_id, upcoming_count, past_count
        )

    def send_operator_message(self, text: str) -> None:
        logger.info("operator_message text=%s", text)
