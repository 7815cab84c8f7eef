from __future__ import annotations

import logging
from dataclasses import asdict, dataclass
from typing import Any, Dict, Iterable

from ..reminders.models import Reminder, ReminderStatus
from .context import JobContext
from .ids import JobId
from .restart import STATS_INTERVAL


logger = logging.getLogger("remind_ops.jobs.stats")


@dataclass(frozen=True)
class ReminderStats:
    total: int
    active: int
    completed: int
    recurring: int
    single: int
    users: int


def collect_stats(reminders: Iterable[Reminder]) -> ReminderStats:
    reminders = list(reminders)
    active = [r for r in reminders if r.status is ReminderStatus.ACTIVE]
    recurring = sum(1 for r in active if r.is_recurring)
    return ReminderStats(
        total=len(reminders),
        active=len(active),
        completed=len(reminders) - len(active),
        recurring=recurring,
        single=len(active) - recurring,
        users=len({r.created_by for r in reminders}),
    )


class StatsJob:
    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    def process(self, data: Dict[str, Any]) -> None:
        ctx = self._ctx
        now = ctx.now()
        trigger_id = data.get("trigger_id")
        if not ctx.locks.should_execute(JobId.STATS_COLLECTOR_JOB, trigger_id, now=now):
            return
        try:
            stats = collect_stats(ctx.reminders.find_all())
            logger.info(
                "reminder_stats %s", " ".join(f"{k}={v}" for k, v in asdict(stats).items())
            )
        except Exception:
            logger.exception("stats_collection_failed")
        finally:
            ctx.locks.reschedule(JobId.STATS_COLLECTOR_JOB, now + STATS_INTERVAL, now=now)
            ctx.last_runs.update_last_run(JobId.STATS_COLLECTOR_JOB, now)
