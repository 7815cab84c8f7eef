from .ids import LOCKED_JOB_IDS, REMINDER_FIRE_JOB_IDS, JobId

__all__ = ["JobId", "LOCKED_JOB_IDS", "REMINDER_FIRE_JOB_IDS"]
