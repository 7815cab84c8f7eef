from __future__ import annotations

import datetime as dt
from dataclasses import replace
from enum import Enum
from typing import Dict, List, Optional

from ..reminders.models import Reminder, ReminderStatus
from .base import Document, RecordStore, Repository


REMINDER_INDEXED_FIELDS = ("id", "created_by", "room_id", "status")


class ReminderRepository(Repository[Reminder]):
    def __init__(self, store: RecordStore) -> None:
        super().__init__(
            store,
            collection="reminders",
            key_field="id",
            indexed_fields=REMINDER_INDEXED_FIELDS,
            to_document=Reminder.to_document,
            from_document=Reminder.from_document,
        )

    def get(self, reminder_id: str) -> Optional[Reminder]:
        return self.find_one(id=reminder_id)

    def list_active(self) -> List[Reminder]:
        return self.find_all(status=ReminderStatus.ACTIVE)

    def mark_completed(self, reminder: Reminder, now: dt.datetime) -> Reminder:
        if reminder.status is ReminderStatus.COMPLETED:
            return reminder
        completed = replace(reminder, status=ReminderStatus.COMPLETED, completed_at=now)
        self.upsert(completed)
        return completed


_LAST_RUN_KEY = "internal-jobs"


def _job_key(job_id: str) -> str:
    return job_id.value if isinstance(job_id, Enum) else job_id


class LastRunRegistry:
    """Last successful completion per internal job, kept in one document."""

    def __init__(self, store: RecordStore) -> None:
        self._repository: Repository[Document] = Repository(
            store,
            collection="internal_jobs_last_run",
            key_field="key",
            indexed_fields=(),
            to_document=lambda document: document,
            from_document=lambda document: document,
        )

    def all(self) -> Dict[str, dt.datetime]:
        document = self._repository.find_one(key=_LAST_RUN_KEY)
        if not document:
            return {}
        return {
            job_id: dt.datetime.fromisoformat(value)
            for job_id, value in document.get("last_run", {}).items()
        }

    def get(self, job_id: str) -> Optional[dt.datetime]:
        return self.all().get(_job_key(job_id))

    def update_last_run(self, job_id: str, when: dt.datetime) -> None:
        last_run = {key: value.isoformat() for key, value in self.all().items()}
        last_run[_job_key(job_id)] = when.isoformat()
        self._repository.upsert({"key": _LAST_RUN_KEY, "last_run": last_run})
