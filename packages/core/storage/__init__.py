from .base import NonIndexedQueryError, RecordStore, Repository
from .models import LastRunRegistry, ReminderRepository
from .sqlite import SQLiteRecordStore

__all__ = [
    "LastRunRegistry",
    "NonIndexedQueryError",
    "RecordStore",
    "ReminderRepository",
    "Repository",
    "SQLiteRecordStore",
]
