"""Fencing-token locks for the recurring internal jobs.

Every time an internal job is scheduled it carries a fresh trigger id, and the
same id is written to the job's lock record. When the job fires it compares
its trigger id with the record: a mismatch means a newer schedule superseded
this one and the fire is a stale duplicate. A record older than the staleness
window is treated as abandoned so a lost chain heals itself.
"""

from __future__ import annotations

import datetime as dt
import logging
import uuid
from dataclasses import dataclass
from typing import Any, Dict, Optional

from ..reminders.dates import utc_now
from ..storage.base import RecordStore, Repository
from .ids import JobId
from .scheduler import JobScheduler


logger = logging.getLogger("remind_ops.jobs.locks")

STALENESS_TOLERANCE = dt.timedelta(hours=24)


@dataclass(frozen=True)
class JobLock:
    job_id: JobId
    trigger_id: str
    locked_at: dt.datetime

    def to_document(self) -> Dict[str, Any]:
        return {
            "job_id": self.job_id.value,
            "trigger_id": self.trigger_id,
            "locked_at": self.locked_at.isoformat(),
        }

    @classmethod
    def from_document(cls, doc: Dict[str, Any]) -> "JobLock":
        locked_at = dt.datetime.fromisoformat(doc["locked_at"])
        if locked_at.tzinfo is None:
            locked_at = locked_at.replace(tzinfo=dt.timezone.utc)
        return cls(job_id=JobId(doc["job_id"]), trigger_id=doc["trigger_id"], locked_at=locked_at)


class JobLockRepository(Repository[JobLock]):
    def __init__(self, store: RecordStore) -> None:
        super().__init__(
            store,
            collection="internal_jobs_lock",
            key_field="job_id",
            indexed_fields=("job_id",),
            to_document=JobLock.to_document,
            from_document=JobLock.from_document,
        )


def new_trigger_id() -> str:
    return str(uuid.uuid4())


class JobLockManager:
    def __init__(
        self,
        scheduler: JobScheduler,
        locks: JobLockRepository,
        staleness: dt.timedelta = STALENESS_TOLERANCE,
    ) -> None:
        self._scheduler = scheduler
        self._locks = locks
        self._staleness = staleness

    def acquire(
        self,
        job_id: JobId,
        trigger_id: str,
        when: dt.datetime,
        now: Optional[dt.datetime] = None,
        data: Optional[Dict[str, Any]] = None,
    ) -> str:
        """Schedule the job's next run and record ``trigger_id`` as the owner.

        The two writes are not atomic. If the process dies between them the
        job either fires with an unrecorded trigger (still runs once the old
        record goes stale) or never fires (restart recovery reschedules it).
        """
        payload = dict(data or {})
        payload["trigger_id"] = trigger_id
        handle = self._scheduler.schedule_once(job_id, when, payload)
        lock = JobLock(job_id=JobId(job_id), trigger_id=trigger_id, locked_at=now or utc_now())
        self._locks.upsert(lock)
        logger.debug(
            "job_lock_acquired job_id=%s trigger_id=%s when=%s",
            JobId(job_id).value,
            trigger_id,
            when.isoformat(),
        )
        return handle

    def reschedule(self, job_id: JobId, when: dt.datetime, now: Optional[dt.datetime] = None) -> str:
        trigger_id = new_trigger_id()
        self.acquire(job_id, trigger_id, when, now=now)
        return trigger_id

    def current(self, job_id: JobId) -> Optional[JobLock]:
        return self._locks.find_one(job_id=JobId(job_id))

    def should_execute(
        self, job_id: JobId, incoming_trigger_id: Optional[str], now: Optional[dt.datetime] = None
    ) -> bool:
        lock = self.current(job_id)
        if lock is None or lock.trigger_id == incoming_trigger_id:
            return True
        age = (now or utc_now()) - lock.locked_at
        if age >= self._staleness:
            logger.debug(
                "job_lock_stale job_id=%s trigger_id=%s locked_trigger_id=%s age=%s",
                lock.job_id.value,
                incoming_trigger_id,
                lock.trigger_id,
                age,
            )
            return True
        logger.debug(
            "job_lock_superseded job_id=%s trigger_id=%s locked_trigger_id=%s",
            lock.job_id.value,
            incoming_trigger_id,
            lock.trigger_id,
        )
        return False
