from __future__ import annotations

from typing import Any, Dict, List

from fastapi import APIRouter, HTTPException

from apps.api.reminders_scheduler import get_runtime
from apps.api.schemas.reminders import (
    BackupRestoreRequest,
    DSTRequest,
    DSTResponse,
    JobLockResponse,
)
from packages.core.errors import ValidationError
from packages.core.jobs.backup import restore_backup
from packages.core.jobs.context import JobContext
from packages.core.jobs.ids import LOCKED_JOB_IDS
from packages.core.jobs.registry import JobProcessors
from packages.core.jobs.restart import schedule_restart
from packages.core.reminders.dst import apply_dst_to_reminders


router = APIRouter(prefix="/admin", tags=["admin"])


def _context() -> JobContext:
    return get_runtime().ctx


def _processors() -> JobProcessors:
    return get_runtime().processors


@router.post("/dst", response_model=DSTResponse)
def apply_dst(payload: DSTRequest) -> DSTResponse:
    ctx = _context()
    try:
        updated = apply_dst_to_reminders(
            ctx.reminders, ctx.reminder_scheduler, payload.direction, now=ctx.now()
        )
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_response()) from exc
    return DSTResponse(direction=payload.direction.strip().lower(), updated=updated)


@router.post("/backup")
def backup() -> Dict[str, Any]:
    handle = _processors().backup.request_manual_backup()
    return {"status": "scheduled", "handle": handle}


@router.post("/backup/restore")
def restore(payload: BackupRestoreRequest) -> Dict[str, Any]:
    try:
        restored = restore_backup(_context(), {"reminders": payload.reminders})
    except ValidationError as exc:
        raise HTTPException(status_code=400, detail=exc.to_response()) from exc
    return {"status": "restored", "reminders": restored}


@router.post("/jobs/restart")
def restart_jobs(restart_reminder_jobs: bool = False) -> Dict[str, Any]:
    handle = schedule_restart(_context(), restart_reminder_jobs=restart_reminder_jobs)
    return {"status": "scheduled", "handle": handle}


@router.get("/jobs/locks", response_model=List[JobLockResponse])
def job_locks() -> List[JobLockResponse]:
    ctx = _context()
    last_runs = ctx.last_runs.all()
    locks = []
    for job_id in sorted(LOCKED_JOB_IDS, key=lambda job: job.value):
        lock = ctx.locks.current(job_id)
        if lock is None:
            continue
        locks.append(
            JobLockResponse(
                job_id=lock.job_id.value,
                trigger_id=lock.trigger_id,
                locked_at=lock.locked_at,
                last_run=last_runs.get(job_id.value),
            )
        )
    return locks
