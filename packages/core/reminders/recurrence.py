from __future__ import annotations

import datetime as dt
import logging
from dataclasses import replace
from typing import Optional

from ..jobs.reminder_scheduler import ReminderScheduler
from ..storage.models import ReminderRepository
from .dates import calculate_next_future_occurrence, utc_now
from .models import Reminder


logger = logging.getLogger("remind_ops.reminders.recurrence")


def refresh_stale(reminder: Reminder, now: dt.datetime) -> Reminder:
    """Recompute the due date of a recurring reminder whose due date has passed."""
    if not reminder.is_recurring or reminder.due_date >= now:
        return reminder
    next_due = calculate_next_future_occurrence(reminder.due_date, reminder.frequency, now)
    return replace(reminder, due_date=next_due)


class RecurrenceEngine:
    def __init__(self, reminders: ReminderRepository, scheduler: ReminderScheduler) -> None:
        self._reminders = reminders
        self._scheduler = scheduler

    def advance(self, reminder: Reminder, now: Optional[dt.datetime] = None) -> Optional[Reminder]:
        """Schedule the next fire of a reminder that just fired or was edited.

        The next due date steps from the previously scheduled due date rather
        than from now, so late fires do not drift the series.
        """
        if not reminder.is_recurring:
            return None
        now = now or utc_now()
        next_due = calculate_next_future_occurrence(reminder.due_date, reminder.frequency, now)
        handle = self._scheduler.schedule_fire(reminder.id, next_due)
        updated = replace(reminder, due_date=next_due, scheduled_job_handle=handle)
        self._reminders.upsert(updated)
        logger.info(
            "reminder_recurrence_advanced id=%s frequency=%s next_due=%s",
            reminder.id,
            reminder.frequency.value,
            next_due.isoformat(),
        )
        return updated
