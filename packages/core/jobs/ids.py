from __future__ import annotations

from enum import Enum


class JobId(str, Enum):
    LEGACY_REMINDER_JOB = "reminder-job"  # deprecated, only fired by old schedules
    REMINDERS_JOB = "reminders-job"
    STATS_COLLECTOR_JOB = "stats-job"
    DAILY_REMINDER_CALCULATION_JOB = "daily-reminder-calculation-job"
    DAILY_REMINDER_JOB = "daily-reminder-job"
    JOBS_RESTART_JOB = "jobs-restart-job"
    BACKUP_JOB = "backup-job"


LOCKED_JOB_IDS = frozenset(
    {
        JobId.BACKUP_JOB,
        JobId.DAILY_REMINDER_CALCULATION_JOB,
        JobId.STATS_COLLECTOR_JOB,
    }
)

REMINDER_FIRE_JOB_IDS = (JobId.REMINDERS_JOB, JobId.LEGACY_REMINDER_JOB)
