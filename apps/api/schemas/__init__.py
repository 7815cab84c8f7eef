from .reminders import (
    AudienceModel,
    BackupRestoreRequest,
    DSTRequest,
    DSTResponse,
    JobLockResponse,
    ReminderCreateRequest,
    ReminderResponse,
    ReminderUpdateRequest,
    SnoozeRequest,
)

__all__ = [
    "AudienceModel",
    "BackupRestoreRequest",
    "DSTRequest",
    "DSTResponse",
    "JobLockResponse",
    "ReminderCreateRequest",
    "ReminderResponse",
    "ReminderUpdateRequest",
    "SnoozeRequest",
]
