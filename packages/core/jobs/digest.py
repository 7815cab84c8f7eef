from __future__ import annotations

import datetime as dt
import logging
from typing import Any, Dict, Iterable, Optional

from ..reminders.dates import (
    add_hours,
    is_same_calendar_day,
    local_nine_am,
    shift_from_offset,
    shift_to_offset,
)
from ..reminders.models import Reminder, ReminderStatus
from ..settings import DAILY_DIGEST_ENABLED
from .context import JobContext
from .ids import JobId
from .restart import DIGEST_CALCULATION_INTERVAL


logger = logging.getLogger("remind_ops.jobs.digest")


def digest_instant(now: dt.datetime, utc_offset: float) -> dt.datetime:
    """The next local 09:00 for a user, as a UTC instant.

    Past 09:xx local the digest moves to tomorrow. During the 09:00 hour it
    stays on today and fires right away.
    """
    local_now = shift_to_offset(now, utc_offset)
    if local_now.hour > 9:
        local_now = add_hours(local_now, 24)
    return shift_from_offset(local_nine_am(local_now), utc_offset)


class DailyDigestPlanner:
    def plan(self, reminders: Iterable[Reminder], now: dt.datetime) -> Dict[str, dt.datetime]:
        """One digest instant per user with a single reminder due by the digest day.

        Newest reminders are looked at first and the first match per user
        decides the digest time.
        """
        candidates = sorted(
            (r for r in reminders if r.is_active and not r.is_recurring),
            key=lambda r: r.created_at,
            reverse=True,
        )
        planned: Dict[str, dt.datetime] = {}
        for reminder in candidates:
            if reminder.created_by in planned:
                continue
            offset = reminder.time_zone.utc_offset
            digest_at = digest_instant(now, offset)
            due_local = shift_to_offset(reminder.due_date, offset)
            if due_local < now or is_same_calendar_day(reminder.due_date, digest_at, offset):
                planned[reminder.created_by] = digest_at
        return planned


class DailyDigestCalculationJob:
    def __init__(self, ctx: JobContext, planner: Optional[DailyDigestPlanner] = None) -> None:
        self._ctx = ctx
        self._planner = planner or DailyDigestPlanner()

    def process(self, data: Dict[str, Any]) -> None:
        ctx = self._ctx
        job_id = JobId.DAILY_REMINDER_CALCULATION_JOB
        now = ctx.now()
        if not ctx.locks.should_execute(job_id, data.get("trigger_id"), now=now):
            return
        try:
            self._schedule_digests(now)
        except Exception:
            logger.exception("digest_calculation_failed")
        finally:
            trigger_id = ctx.locks.reschedule(job_id, now + DIGEST_CALCULATION_INTERVAL, now=now)
            ctx.last_runs.update_last_run(job_id, now)
            logger.debug("digest_calculation_rescheduled trigger_id=%s", trigger_id)

    def _schedule_digests(self, now: dt.datetime) -> None:
        ctx = self._ctx
        if not ctx.settings_cache.get(DAILY_DIGEST_ENABLED):
            logger.info("digest_calculation_skipped reason=disabled")
            return
        ctx.scheduler.cancel_job_class(JobId.DAILY_REMINDER_JOB)
        planned = self._planner.plan(ctx.reminders.list_active(), now)
        for user_id, when in planned.items():
            ctx.scheduler.schedule_once(JobId.DAILY_REMINDER_JOB, when, {"user_id": user_id})
        logger.info("digest_calculation_scheduled users=%s", len(planned))


class DailyDigestJob:
    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    def process(self, data: Dict[str, Any]) -> None:
        ctx = self._ctx
        user_id = data.get("user_id")
        if not user_id:
            logger.error("digest_missing_user_id data=%s", data)
            return
        if not ctx.settings_cache.get(DAILY_DIGEST_ENABLED):
            logger.debug("digest_skipped user_id=%s reason=disabled", user_id)
            return

        now = ctx.now()
        upcoming = 0
        past = 0
        for reminder in ctx.reminders.find_all(created_by=user_id, status=ReminderStatus.ACTIVE):
            if reminder.is_recurring:
                continue
            offset = reminder.time_zone.utc_offset
            if is_same_calendar_day(reminder.due_date, now, offset):
                upcoming += 1
            elif reminder.due_date < now:
                past += 1

        if not upcoming and not past:
            logger.info("digest_empty user_id=%s", user_id)
            return
        ctx.notifier.send_digest(user_id, upcoming, past)
        logger.info("digest_sent user_id=%s upcoming=%s past=%s", user_id, upcoming, past)
