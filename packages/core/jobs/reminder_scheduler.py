from __future__ import annotations

import datetime as dt
import logging
from typing import Optional

from .ids import REMINDER_FIRE_JOB_IDS, JobId
from .scheduler import JobScheduler


logger = logging.getLogger("remind_ops.jobs.reminder_scheduler")


class ReminderScheduler:
    """Schedules and cancels the one-shot fire job of a single reminder.

    Callers cancel a reminder's previous handle before scheduling a
    replacement; handles for the same reminder id are not deduplicated here.
    """

    def __init__(self, scheduler: JobScheduler) -> None:
        self._scheduler = scheduler

    def schedule_fire(self, reminder_id: str, when_utc: dt.datetime) -> str:
        # A past instant is accepted and fires right away.
        handle = self._scheduler.schedule_once(
            JobId.REMINDERS_JOB, when_utc, {"reminder_id": reminder_id}
        )
        logger.debug(
            "reminder_fire_scheduled id=%s when=%s handle=%s",
            reminder_id,
            when_utc.isoformat(),
            handle,
        )
        return handle

    def cancel_fire(self, handle: Optional[str]) -> None:
        if not handle:
            return
        try:
            self._scheduler.cancel(handle)
        except Exception as exc:
            logger.warning("reminder_fire_cancel_failed handle=%s error=%s", handle, exc)

    def reschedule(
        self, reminder_id: str, previous_handle: Optional[str], when_utc: dt.datetime
    ) -> str:
        self.cancel_fire(previous_handle)
        return self.schedule_fire(reminder_id, when_utc)

    def cancel_all(self) -> int:
        removed = 0
        for job_id in REMINDER_FIRE_JOB_IDS:
            removed += self._scheduler.cancel_job_class(job_id)
        return removed
