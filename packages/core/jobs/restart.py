"""Rebuilds reminder timers and internal job chains from persisted state.

The job processor runs once shortly after start-up and again after a backup
restore. Reminder mode throws away every reminder-fire timer and schedules one
per active reminder. Internal mode re-arms the fenced internal jobs whose
chain may have been lost.
"""

from __future__ import annotations

import datetime as dt
import logging
from dataclasses import dataclass, replace
from typing import Any, Dict, List

from ..reminders.dates import add_seconds
from ..reminders.recurrence import refresh_stale
from .context import JobContext
from .ids import JobId
from .locks import new_trigger_id


logger = logging.getLogger("remind_ops.jobs.restart")

DIGEST_CALCULATION_INTERVAL = dt.timedelta(hours=24)
STATS_INTERVAL = dt.timedelta(hours=48)


@dataclass(frozen=True)
class InternalJob:
    job_id: JobId
    interval: dt.timedelta
    grace: dt.timedelta


@dataclass(frozen=True)
class RestartSummary:
    recurring: int
    single: int

    @property
    def total(self) -> int:
        return self.recurring + self.single


def internal_jobs(backup_interval_hours: int) -> List[InternalJob]:
    return [
        InternalJob(
            JobId.BACKUP_JOB,
            dt.timedelta(hours=backup_interval_hours),
            dt.timedelta(seconds=10),
        ),
        InternalJob(
            JobId.DAILY_REMINDER_CALCULATION_JOB,
            DIGEST_CALCULATION_INTERVAL,
            dt.timedelta(seconds=20),
        ),
        InternalJob(JobId.STATS_COLLECTOR_JOB, STATS_INTERVAL, dt.timedelta(seconds=30)),
    ]


def schedule_restart(ctx: JobContext, restart_reminder_jobs: bool) -> str:
    when = add_seconds(ctx.now(), ctx.settings.restart_delay_seconds)
    handle = ctx.scheduler.schedule_once(
        JobId.JOBS_RESTART_JOB, when, {"restart_reminder_jobs": restart_reminder_jobs}
    )
    logger.info(
        "jobs_restart_scheduled restart_reminder_jobs=%s when=%s",
        restart_reminder_jobs,
        when.isoformat(),
    )
    return handle


class RestartRecoveryCoordinator:
    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    def process(self, data: Dict[str, Any]) -> None:
        logger.info("jobs_restart_started data=%s", data)
        now = self._ctx.now()
        if data.get("restart_reminder_jobs"):
            self.restart_reminder_jobs(now)
        else:
            self.restart_internal_jobs(now)
        logger.info("jobs_restart_finished")

    def restart_reminder_jobs(self, now: dt.datetime) -> RestartSummary:
        ctx = self._ctx
        cancelled = ctx.reminder_scheduler.cancel_all()
        logger.info("reminder_jobs_cancelled count=%s", cancelled)

        recurring = 0
        single = 0
        for reminder in ctx.reminders.list_active():
            # Single reminders keep a past due date and fire right away.
            refreshed = refresh_stale(reminder, now)
            handle = ctx.reminder_scheduler.schedule_fire(refreshed.id, refreshed.due_date)
            ctx.reminders.upsert(replace(refreshed, scheduled_job_handle=handle))
            if refreshed.is_recurring:
                recurring += 1
            else:
                single += 1

        summary = RestartSummary(recurring=recurring, single=single)
        logger.info(
            "reminder_jobs_restarted recurring=%s single=%s", summary.recurring, summary.single
        )
        self._send_summary(summary)
        return summary

    def restart_internal_jobs(self, now: dt.datetime) -> List[JobId]:
        ctx = self._ctx
        last_runs = ctx.last_runs.all()
        logger.debug("internal_jobs_last_run values=%s", last_runs)
        restarted = []
        for job in internal_jobs(ctx.settings.backup_interval_hours):
            last_run = last_runs.get(job.job_id.value)
            if last_run is None or last_run < now - job.interval:
                when = now + job.grace
                restarted.append(job.job_id)
                logger.info(
                    "internal_job_restarted job_id=%s last_run=%s when=%s",
                    job.job_id.value,
                    last_run.isoformat() if last_run else None,
                    when.isoformat(),
                )
            else:
                # Not lapsed, but the in-memory scheduler lost its timer on shutdown.
                when = last_run + job.interval
                logger.debug(
                    "internal_job_rearmed job_id=%s last_run=%s when=%s",
                    job.job_id.value,
                    last_run.isoformat(),
                    when.isoformat(),
                )
            ctx.scheduler.cancel_job_class(job.job_id)
            ctx.locks.acquire(job.job_id, new_trigger_id(), when, now=now)
        return restarted

    def _send_summary(self, summary: RestartSummary) -> None:
        try:
            self._ctx.notifier.send_operator_message(
                f"Restarted {summary.recurring} recurring reminder jobs and "
                f"{summary.single} single reminder jobs."
            )
        except Exception:
            logger.exception("restart_summary_send_failed")
