from __future__ import annotations

import datetime as dt
import logging
import uuid
from typing import Any, Callable, Dict, Optional, Protocol, runtime_checkable

from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.base import BaseScheduler


logger = logging.getLogger("remind_ops.scheduler")

Processor = Callable[[Dict[str, Any]], None]

_HANDLE_SEPARATOR = ":"


@runtime_checkable
class JobScheduler(Protocol):
    def register_processor(self, job_id: str, processor: Processor) -> None:
        """Register the callback invoked with the payload when a job of this class fires."""

    def schedule_once(self, job_id: str, when: dt.datetime, data: Dict[str, Any]) -> str:
        """Register a one-shot job and return its handle."""

    def cancel(self, handle: str) -> None:
        """Cancel one job. Raises JobLookupError if the handle is unknown."""

    def cancel_job_class(self, job_id: str) -> int:
        """Cancel every pending job of the class. Returns the number removed."""


def job_class_of(handle: str) -> str:
    return handle.split(_HANDLE_SEPARATOR, 1)[0]


class APSchedulerJobScheduler(JobScheduler):
    """One-shot jobs on top of an APScheduler 3 scheduler.

    Handles look like ``"<job class>:<hex>"`` so a whole class can be
    cancelled without knowing individual handles. Jobs keep no state beyond
    the payload they carry.
    """

    def __init__(self, scheduler: BaseScheduler) -> None:
        self._scheduler = scheduler
        self._processors: Dict[str, Processor] = {}

    def register_processor(self, job_id: str, processor: Processor) -> None:
        self._processors[_job_key(job_id)] = processor

    def schedule_once(self, job_id: str, when: dt.datetime, data: Dict[str, Any]) -> str:
        job_class = _job_key(job_id)
        handle = f"{job_class}{_HANDLE_SEPARATOR}{uuid.uuid4().hex}"
        self._scheduler.add_job(
            self._dispatch,
            "date",
            run_date=when,
            args=[job_class, dict(data)],
            id=handle,
            misfire_grace_time=None,
            coalesce=True,
            replace_existing=False,
        )
        logger.debug("job_scheduled handle=%s when=%s", handle, when.isoformat())
        return handle

    def cancel(self, handle: str) -> None:
        self._scheduler.remove_job(handle)
        logger.debug("job_cancelled handle=%s", handle)

    def cancel_job_class(self, job_id: str) -> int:
        job_class = _job_key(job_id)
        removed = 0
        for job in self._scheduler.get_jobs():
            if job_class_of(job.id) != job_class:
                continue
            try:
                self._scheduler.remove_job(job.id)
                removed += 1
            except JobLookupError:
                logger.debug("job_already_gone handle=%s", job.id)
        logger.info("job_class_cancelled job_id=%s removed=%s", job_class, removed)
        return removed

    def _dispatch(self, job_class: str, data: Dict[str, Any]) -> None:
        processor = self._processors.get(job_class)
        if processor is None:
            logger.error("job_processor_missing job_id=%s", job_class)
            return
        processor(data)


def _job_key(job_id: Any) -> str:
    value: Optional[str] = getattr(job_id, "value", None)
    return value if isinstance(value, str) else str(job_id)
