from __future__ import annotations

import datetime as dt
import logging
import uuid
from dataclasses import replace
from enum import Enum
from typing import Dict, List, Optional

from ..errors import ReminderNotFoundError, ValidationError
from ..jobs.reminder_scheduler import ReminderScheduler
from ..storage.models import ReminderRepository
from .dates import (
    add_minutes,
    local_nine_am,
    next_local_nine_am,
    parse_local_date_time,
    shift_from_offset,
    shift_to_offset,
    upcoming_monday,
    utc_now,
)
from .models import Audience, Frequency, Reminder, ReminderStatus, TimeZone
from .recurrence import refresh_stale


logger = logging.getLogger("remind_ops.reminders")

REQUIRED_FIELD = "please_complete_this_required_field"
DUE_DATE_IN_PAST = "due_date_in_past"
INVALID_DATE_OR_TIME = "invalid_date_or_time"
ALREADY_COMPLETED = "reminder_already_completed"
ALREADY_SNOOZED = "reminder_already_snoozed"


class SnoozeDuration(str, Enum):
    MINUTES_20 = "20"
    HOUR_1 = "60"
    HOUR_3 = "180"
    TOMORROW = "next-day"
    NEXT_WEEK = "next-week"
    CUSTOM = "custom"


def get_reminder(reminders: ReminderRepository, reminder_id: str) -> Reminder:
    reminder = reminders.get(reminder_id)
    if reminder is None:
        raise ReminderNotFoundError(reminder_id)
    return reminder


def list_reminders(
    reminders: ReminderRepository,
    created_by: Optional[str] = None,
    status: Optional[ReminderStatus] = None,
) -> List[Reminder]:
    query: Dict[str, object] = {}
    if created_by:
        query["created_by"] = created_by
    if status:
        query["status"] = ReminderStatus(status)
    found = reminders.find_all(**query)
    return sorted(found, key=lambda reminder: reminder.due_date)


def create_reminder(
    reminders: ReminderRepository,
    scheduler: ReminderScheduler,
    description: str,
    created_by: str,
    due_date: dt.datetime,
    utc_offset: float,
    frequency: Frequency = Frequency.DO_NOT_REPEAT,
    room_id: str = "",
    audience: Optional[Audience] = None,
    time_zone_name: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> Reminder:
    now = now or utc_now()
    errors = {}
    if not description or not description.strip():
        errors["description"] = REQUIRED_FIELD
    if due_date < now:
        errors["time"] = DUE_DATE_IN_PAST
    if audience is not None and not audience.audience_ids:
        errors["audience"] = REQUIRED_FIELD
    if errors:
        raise ValidationError(errors)

    reminder_id = str(uuid.uuid4())
    handle = scheduler.schedule_fire(reminder_id, due_date)
    reminder = Reminder(
        id=reminder_id,
        description=description.strip(),
        created_by=created_by,
        room_id=room_id,
        due_date=due_date,
        time_zone=TimeZone(utc_offset=utc_offset, name=time_zone_name),
        frequency=Frequency(frequency),
        status=ReminderStatus.ACTIVE,
        created_at=now,
        audience=audience,
        scheduled_job_handle=handle,
    )
    reminders.insert(reminder)
    logger.info(
        "reminder_created id=%s created_by=%s due=%s frequency=%s",
        reminder.id,
        created_by,
        due_date.isoformat(),
        reminder.frequency.value,
    )
    return reminder


def edit_reminder(
    reminders: ReminderRepository,
    scheduler: ReminderScheduler,
    reminder_id: str,
    description: Optional[str] = None,
    frequency: Optional[Frequency] = None,
    date: Optional[str] = None,
    time: Optional[str] = None,
    utc_offset: Optional[float] = None,
    now: Optional[dt.datetime] = None,
) -> Reminder:
    """Update description, frequency and/or the local due date and time.

    ``date`` is ``YYYY-MM-DD`` and ``time`` is ``HH:MM AM/PM`` on the user's
    wall clock. Either may be omitted to keep the current local value.
    """
    now = now or utc_now()
    existing = get_reminder(reminders, reminder_id)
    if existing.status is ReminderStatus.COMPLETED:
        raise ValidationError({"reminder": ALREADY_COMPLETED})
    if description is not None and not description.strip():
        raise ValidationError({"description": REQUIRED_FIELD})

    offset = existing.time_zone.utc_offset if utc_offset is None else utc_offset
    due_date = existing.due_date
    if date is not None or time is not None:
        current_local = shift_to_offset(existing.due_date, offset)
        try:
            due_date = parse_local_date_time(
                date or current_local.strftime("%Y-%m-%d"),
                time or current_local.strftime("%H:%M"),
                offset,
            )
        except ValueError as exc:
            raise ValidationError({"time": INVALID_DATE_OR_TIME}) from exc
        if due_date < now:
            raise ValidationError({"time": DUE_DATE_IN_PAST})

    updated = replace(
        existing,
        description=description.strip() if description is not None else existing.description,
        frequency=Frequency(frequency) if frequency is not None else existing.frequency,
        due_date=due_date,
        time_zone=replace(existing.time_zone, utc_offset=offset),
    )
    updated = refresh_stale(updated, now)
    if updated.due_date != existing.due_date:
        logger.info(
            "reminder_rescheduling id=%s due=%s previous_handle=%s",
            updated.id,
            updated.due_date.isoformat(),
            existing.scheduled_job_handle,
        )
        handle = scheduler.reschedule(updated.id, existing.scheduled_job_handle, updated.due_date)
        updated = replace(updated, scheduled_job_handle=handle)
    reminders.upsert(updated)
    return updated


def snooze_precheck(reminder: Reminder, now: dt.datetime) -> Dict[str, str]:
    if reminder.status is ReminderStatus.COMPLETED:
        return {"reminder": ALREADY_COMPLETED}
    if reminder.due_date > now:
        return {"reminder": ALREADY_SNOOZED}
    return {}


def next_snooze_due_date(
    duration: SnoozeDuration,
    utc_offset: float,
    now: dt.datetime,
    custom_due: Optional[dt.datetime] = None,
) -> dt.datetime:
    duration = SnoozeDuration(duration)
    if duration in (SnoozeDuration.MINUTES_20, SnoozeDuration.HOUR_1, SnoozeDuration.HOUR_3):
        return add_minutes(now, int(duration.value))
    if duration is SnoozeDuration.TOMORROW:
        return next_local_nine_am(now, utc_offset, days_ahead=1)
    if duration is SnoozeDuration.NEXT_WEEK:
        monday = upcoming_monday(shift_to_offset(now, utc_offset))
        return shift_from_offset(local_nine_am(monday), utc_offset)
    if custom_due is None:
        raise ValidationError({"date": REQUIRED_FIELD})
    if custom_due < now:
        raise ValidationError({"time": DUE_DATE_IN_PAST})
    return custom_due


def snooze_reminder(
    reminders: ReminderRepository,
    scheduler: ReminderScheduler,
    reminder_id: str,
    duration: SnoozeDuration,
    utc_offset: Optional[float] = None,
    custom_due: Optional[dt.datetime] = None,
    now: Optional[dt.datetime] = None,
) -> Reminder:
    now = now or utc_now()
    existing = get_reminder(reminders, reminder_id)
    errors = snooze_precheck(existing, now)
    if errors:
        raise ValidationError(errors)
    offset = existing.time_zone.utc_offset if utc_offset is None else utc_offset
    due_date = next_snooze_due_date(duration, offset, now, custom_due)
    handle = scheduler.reschedule(existing.id, existing.scheduled_job_handle, due_date)
    updated = replace(existing, due_date=due_date, scheduled_job_handle=handle)
    reminders.upsert(updated)
    logger.info(
        "reminder_snoozed id=%s duration=%s due=%s",
        updated.id,
        SnoozeDuration(duration).value,
        due_date.isoformat(),
    )
    return updated


def complete_reminder(
    reminders: ReminderRepository,
    scheduler: ReminderScheduler,
    reminder_id: str,
    now: Optional[dt.datetime] = None,
) -> Reminder:
    existing = get_reminder(reminders, reminder_id)
    scheduler.cancel_fire(existing.scheduled_job_handle)
    completed = reminders.mark_completed(
        replace(existing, scheduled_job_handle=None), now or utc_now()
    )
    logger.info("reminder_completed id=%s", reminder_id)
    return completed


def delete_reminder(
    reminders: ReminderRepository, scheduler: ReminderScheduler, reminder_id: str
) -> None:
    existing = get_reminder(reminders, reminder_id)
    scheduler.cancel_fire(existing.scheduled_job_handle)
    reminders.delete_by_query(id=reminder_id)
    logger.info("reminder_deleted id=%s", reminder_id)
