from __future__ import annotations

import logging
from dataclasses import replace
from typing import Any, Dict

from ..errors import RecipientNotFoundError
from ..reminders.models import ReminderStatus
from .context import JobContext


logger = logging.getLogger("remind_ops.jobs.reminders")


class ReminderFireJob:
    """Delivers a reminder when its one-shot job fires, then advances recurrence."""

    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    def process(self, data: Dict[str, Any]) -> None:
        reminder_id = data.get("reminder_id")
        if not reminder_id:
            logger.error("reminder_fire_missing_id data=%s", data)
            return
        try:
            self._fire(reminder_id)
        except Exception:
            # The recurrence chain of this reminder stalls until the next restart recovery.
            logger.exception("reminder_fire_failed id=%s", reminder_id)

    def _fire(self, reminder_id: str) -> None:
        ctx = self._ctx
        reminder = ctx.reminders.get(reminder_id)
        if reminder is None:
            logger.error("reminder_fire_not_found id=%s", reminder_id)
            return
        if reminder.status is ReminderStatus.COMPLETED:
            logger.error("reminder_fire_already_completed id=%s", reminder_id)
            return
        if reminder.is_recurring and reminder.due_date > ctx.now():
            # Already advanced by an earlier delivery of this job.
            logger.warning(
                "reminder_fire_duplicate id=%s due=%s", reminder_id, reminder.due_date.isoformat()
            )
            return

        if reminder.audience and reminder.audience.type:
            for recipient_id in reminder.audience.audience_ids:
                try:
                    ctx.notifier.send_reminder(reminder, reminder.audience.type, recipient_id)
                except RecipientNotFoundError as exc:
                    logger.warning(
                        "reminder_recipient_missing id=%s kind=%s recipient_id=%s",
                        reminder_id,
                        exc.kind,
                        exc.recipient_id,
                    )
            if not reminder.is_recurring:
                ctx.reminders.mark_completed(reminder, ctx.now())
        else:
            message_id = ctx.notifier.send_reminder(reminder, None, reminder.created_by)
            reminder = replace(reminder, message_id=message_id)
            ctx.reminders.upsert(reminder)

        logger.info("reminder_sent id=%s", reminder_id)

        if reminder.is_recurring:
            ctx.recurrence.advance(reminder, now=ctx.now())
