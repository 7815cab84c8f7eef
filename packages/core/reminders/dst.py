from __future__ import annotations

import datetime as dt
import logging
from dataclasses import replace
from typing import Optional

from ..errors import ValidationError
from ..jobs.reminder_scheduler import ReminderScheduler
from ..storage.models import ReminderRepository
from .dates import apply_dst_shift, utc_now
from .models import DSTMovement
from .recurrence import refresh_stale


logger = logging.getLogger("remind_ops.reminders.dst")


def parse_dst_movement(direction: str) -> DSTMovement:
    try:
        return DSTMovement((direction or "").strip().lower())
    except ValueError as exc:
        raise ValidationError({"direction": "invalid_dst_direction"}) from exc


def apply_dst_to_reminders(
    reminders: ReminderRepository,
    scheduler: ReminderScheduler,
    direction: str,
    now: Optional[dt.datetime] = None,
) -> int:
    """Shift every active reminder one hour and reschedule it.

    The direction is validated before any reminder is touched. Recurring
    reminders left in the past are moved to their next future occurrence
    after the shift. The batch is not atomic: a failure midway leaves earlier
    reminders shifted.
    """
    movement = parse_dst_movement(direction)
    now = now or utc_now()
    active = reminders.list_active()
    logger.debug("dst_apply_started movement=%s total=%s", movement.value, len(active))
    for reminder in active:
        shifted = refresh_stale(
            replace(reminder, due_date=apply_dst_shift(reminder.due_date, movement)), now
        )
        handle = scheduler.reschedule(reminder.id, reminder.scheduled_job_handle, shifted.due_date)
        reminders.upsert(replace(shifted, scheduled_job_handle=handle))
    logger.info("dst_applied movement=%s reminders=%s", movement.value, len(active))
    return len(active)
