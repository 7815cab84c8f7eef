from __future__ import annotations

import datetime as dt
from dataclasses import dataclass, field
from typing import Callable

from ..notifications import Notifier
from ..reminders.dates import utc_now
from ..reminders.recurrence import RecurrenceEngine
from ..settings import Settings, SettingsCache
from ..storage.base import RecordStore
from ..storage.models import LastRunRegistry, ReminderRepository
from .locks import JobLockManager, JobLockRepository
from .reminder_scheduler import ReminderScheduler
from .scheduler import JobScheduler


@dataclass
class JobContext:
    """Collaborators shared by every job processor."""

    store: RecordStore
    scheduler: JobScheduler
    notifier: Notifier
    settings: Settings
    settings_cache: SettingsCache
    clock: Callable[[], dt.datetime] = utc_now
    reminders: ReminderRepository = field(init=False)
    last_runs: LastRunRegistry = field(init=False)
    locks: JobLockManager = field(init=False)
    reminder_scheduler: ReminderScheduler = field(init=False)
    recurrence: RecurrenceEngine = field(init=False)

    def __post_init__(self) -> None:
        self.reminders = ReminderRepository(self.store)
        self.last_runs = LastRunRegistry(self.store)
        self.locks = JobLockManager(self.scheduler, JobLockRepository(self.store))
        self.reminder_scheduler = ReminderScheduler(self.scheduler)
        self.recurrence = RecurrenceEngine(self.reminders, self.reminder_scheduler)

    def now(self) -> dt.datetime:
        return self.clock()
