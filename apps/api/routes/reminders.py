from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from fastapi import APIRouter, HTTPException

from apps.api.reminders_scheduler import get_runtime
from apps.api.schemas.reminders import (
    AudienceModel,
    ReminderCreateRequest,
    ReminderResponse,
    ReminderUpdateRequest,
    SnoozeRequest,
)
from packages.core.errors import ReminderNotFoundError, ValidationError
from packages.core.jobs.context import JobContext
from packages.core.reminders.models import Audience, Reminder, ReminderStatus
from packages.core.reminders.service import (
    complete_reminder,
    create_reminder,
    delete_reminder,
    edit_reminder,
    get_reminder,
    list_reminders,
    snooze_reminder,
)


router = APIRouter(prefix="/reminders", tags=["reminders"])


def _context() -> JobContext:
    return get_runtime().ctx


def _as_utc(value: Optional[dt.datetime]) -> Optional[dt.datetime]:
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=dt.timezone.utc)


def _to_response(reminder: Reminder) -> ReminderResponse:
    audience = None
    if reminder.audience is not None:
        audience = AudienceModel(
            type=reminder.audience.type, audience_ids=list(reminder.audience.audience_ids)
        )
    return ReminderResponse(
        id=reminder.id,
        description=reminder.description,
        created_by=reminder.created_by,
        room_id=reminder.room_id,
        due_date=reminder.due_date,
        utc_offset=reminder.time_zone.utc_offset,
        time_zone_name=reminder.time_zone.name,
        frequency=reminder.frequency,
        status=reminder.status,
        audience=audience,
        scheduled_job_handle=reminder.scheduled_job_handle,
        created_at=reminder.created_at,
        completed_at=reminder.completed_at,
        message_id=reminder.message_id,
    )


def _not_found(exc: ReminderNotFoundError) -> HTTPException:
    return HTTPException(status_code=404, detail=f"Reminder not found: {exc.reminder_id}")


@router.post("", response_model=ReminderResponse)
def create(payload: ReminderCreateRequest) -> ReminderResponse:
    ctx = _context()
    audience = None
    if payload.audience is not None:
        audience = Audience(type=payload.audience.type, audience_ids=payload.audience.audience_ids)
    try:
        reminder = create_reminder(
            ctx.reminders,
            ctx.reminder_scheduler,
            description=payload.description,
            created_by=payload.created_by,
            due_date=_as_utc(payload.due_date),
            utc_offset=payload.utc_offset,
            frequency=payload.frequency,
            room_id=payload.room_id,
            audience=audience,
            time_zone_name=payload.time_zone_name,
            now=ctx.now(),
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_response()) from exc
    return _to_response(reminder)


@router.get("", response_model=List[ReminderResponse])
def list_all(
    created_by: Optional[str] = None, status: Optional[ReminderStatus] = None
) -> List[ReminderResponse]:
    reminders = list_reminders(_context().reminders, created_by=created_by, status=status)
    return [_to_response(reminder) for reminder in reminders]


@router.get("/{reminder_id}", response_model=ReminderResponse)
def get(reminder_id: str) -> ReminderResponse:
    try:
        reminder = get_reminder(_context().reminders, reminder_id)
    except ReminderNotFoundError as exc:
        raise _not_found(exc) from exc
    return _to_response(reminder)


@router.patch("/{reminder_id}", response_model=ReminderResponse)
def update(reminder_id: str, payload: ReminderUpdateRequest) -> ReminderResponse:
    ctx = _context()
    try:
        updated = edit_reminder(
            ctx.reminders,
            ctx.reminder_scheduler,
            reminder_id,
            description=payload.description,
            frequency=payload.frequency,
            date=payload.date,
            time=payload.time,
            utc_offset=payload.utc_offset,
            now=ctx.now(),
        )
    except ReminderNotFoundError as exc:
        raise _not_found(exc) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_response()) from exc
    return _to_response(updated)


@router.post("/{reminder_id}/snooze", response_model=ReminderResponse)
def snooze(reminder_id: str, payload: SnoozeRequest) -> ReminderResponse:
    ctx = _context()
    try:
        updated = snooze_reminder(
            ctx.reminders,
            ctx.reminder_scheduler,
            reminder_id,
            payload.duration,
            utc_offset=payload.utc_offset,
            custom_due=_as_utc(payload.custom_due),
            now=ctx.now(),
        )
    except ReminderNotFoundError as exc:
        raise _not_found(exc) from exc
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_response()) from exc
    return _to_response(updated)


@router.post("/{reminder_id}/complete", response_model=ReminderResponse)
def complete(reminder_id: str) -> ReminderResponse:
    ctx = _context()
    try:
        updated = complete_reminder(
            ctx.reminders, ctx.reminder_scheduler, reminder_id, now=ctx.now()
        )
    except ReminderNotFoundError as exc:
        raise _not_found(exc) from exc
    return _to_response(updated)


@router.delete("/{reminder_id}")
def delete(reminder_id: str) -> Dict[str, Any]:
    ctx = _context()
    try:
        delete_reminder(ctx.reminders, ctx.reminder_scheduler, reminder_id)
    except ReminderNotFoundError as exc:
        raise _not_found(exc) from exc
    return {"status": "deleted", "id": reminder_id}
