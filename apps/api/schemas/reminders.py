from __future__ import annotations

import datetime as dt
from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from packages.core.reminders.models import Frequency, ReminderStatus
from packages.core.reminders.service import SnoozeDuration


class AudienceModel(BaseModel):
    type: str = Field(..., pattern="^(room|user)$")
    audience_ids: List[str] = Field(default_factory=list)


class ReminderCreateRequest(BaseModel):
    description: str
    created_by: str = Field(..., min_length=1)
    due_date: dt.datetime
    utc_offset: float = Field(default=0, ge=-12, le=14)
    time_zone_name: Optional[str] = None
    frequency: Frequency = Frequency.DO_NOT_REPEAT
    room_id: str = ""
    audience: Optional[AudienceModel] = None


class ReminderUpdateRequest(BaseModel):
    description: Optional[str] = None
    frequency: Optional[Frequency] = None
    date: Optional[str] = Field(default=None, description="Local date, YYYY-MM-DD")
    time: Optional[str] = Field(default=None, description="Local time, HH:MM AM/PM")
    utc_offset: Optional[float] = Field(default=None, ge=-12, le=14)


class SnoozeRequest(BaseModel):
    duration: SnoozeDuration
    custom_due: Optional[dt.datetime] = None
    utc_offset: Optional[float] = Field(default=None, ge=-12, le=14)


class ReminderResponse(BaseModel):
    id: str
    description: str
    created_by: str
    room_id: str
    due_date: dt.datetime
    utc_offset: float
    time_zone_name: Optional[str]
    frequency: Frequency
    status: ReminderStatus
    audience: Optional[AudienceModel]
    scheduled_job_handle: Optional[str]
    created_at: dt.datetime
    completed_at: Optional[dt.datetime]
    message_id: Optional[str]


class DSTRequest(BaseModel):
    direction: str


class DSTResponse(BaseModel):
    direction: str
    updated: int


class BackupRestoreRequest(BaseModel):
    reminders: List[Dict[str, Any]]


class JobLockResponse(BaseModel):
    job_id: str
    trigger_id: str
    locked_at: dt.datetime
    last_run: Optional[dt.datetime]
