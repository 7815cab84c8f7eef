from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional


class Frequency(str, Enum):
    DO_NOT_REPEAT = "do-not-repeat"
    DAILY = "daily"
    DAILY_WEEKDAYS = "daily-weekdays"
    WEEKLY = "weekly"
    BIWEEKLY = "biweekly"
    TRIWEEKLY = "triweekly"
    MONTHLY = "monthly"
    QUARTERLY = "quarterly"
    BIANNUALLY = "biannually"
    ANNUALLY = "annually"

    @property
    def is_recurring(self) -> bool:
        return self is not Frequency.DO_NOT_REPEAT


class ReminderStatus(str, Enum):
    ACTIVE = "active"
    COMPLETED = "completed"


class DSTMovement(str, Enum):
    FORWARD = "forward"
    BACKWARD = "backward"


@dataclass(frozen=True)
class TimeZone:
    utc_offset: float
    name: Optional[str] = None


@dataclass(frozen=True)
class Audience:
    type: str  # "room" | "user"
    audience_ids: List[str] = field(default_factory=list)


@dataclass(frozen=True)
class Reminder:
    id: str
    description: str
    created_by: str
    room_id: str
    due_date: dt.datetime
    time_zone: TimeZone
    frequency: Frequency
    status: ReminderStatus
    created_at: dt.datetime
    audience: Optional[Audience] = None
    scheduled_job_handle: Optional[str] = None
    completed_at: Optional[dt.datetime] = None
    message_id: Optional[str] = None

    @property
    def is_recurring(self) -> bool:
        return self.frequency.is_recurring

    @property
    def is_active(self) -> bool:
        return self.status is ReminderStatus.ACTIVE

    def to_document(self) -> Dict[str, Any]:
        return {
            "id": self.id,
            "description": self.description,
            "created_by": self.created_by,
            "room_id": self.room_id,
            "due_date": _to_iso(self.due_date),
            "time_zone": {"utc_offset": self.time_zone.utc_offset, "name": self.time_zone.name},
            "frequency": self.frequency.value,
            "status": self.status.value,
            "created_at": _to_iso(self.created_at),
            "audience": (
                {"type": self.audience.type, "audience_ids": list(self.audience.audience_ids)}
                if self.audience
                else None
            ),
            "scheduled_job_handle": self.scheduled_job_handle,
            "completed_at": _to_iso(self.completed_at),
            "message_id": self.message_id,
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "Reminder":
        """Build a reminder from a stored document.

        Legacy shapes are folded into the canonical fields here so nothing
        downstream needs to know about them:

        * ``job_id`` was the job handle field before ``scheduled_job_handle``.
        * ``audience.ids`` was the recipient list before ``audience.audience_ids``.
        """
        time_zone = doc.get("time_zone") or {}
        audience = _normalize_audience(doc.get("audience"))
        handle = doc.get("scheduled_job_handle") or doc.get("job_id") or None
        return cls(
            id=doc["id"],
            description=doc.get("description") or "",
            created_by=doc.get("created_by") or "",
            room_id=doc.get("room_id") or "",
            due_date=_from_iso(doc["due_date"]),
            time_zone=TimeZone(
                utc_offset=float(time_zone.get("utc_offset") or 0),
                name=time_zone.get("name"),
            ),
            frequency=Frequency(doc.get("frequency") or Frequency.DO_NOT_REPEAT.value),
            status=ReminderStatus(doc.get("status") or ReminderStatus.ACTIVE.value),
            created_at=_from_iso(doc.get("created_at") or doc["due_date"]),
            audience=audience,
            scheduled_job_handle=handle,
            completed_at=_from_iso(doc["completed_at"]) if doc.get("completed_at") else None,
            message_id=doc.get("message_id"),
        )


def _normalize_audience(raw: Optional[Dict[str, Any]]) -> Optional[Audience]:
    if not raw or not raw.get("type"):
        return None
    audience_ids = list(raw.get("audience_ids") or [])
    legacy_ids = raw.get("ids") or []
    if not audience_ids and legacy_ids:
        audience_ids = list(legacy_ids)
    return Audience(type=raw["type"], audience_ids=audience_ids)


def _to_iso(value: Optional[dt.datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _from_iso(value: str) -> dt.datetime:
    parsed = dt.datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=dt.timezone.utc)
    return parsed.astimezone(dt.timezone.utc)
