import datetime as dt
import uuid
from dataclasses import dataclass, field
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

import pytest
from apscheduler.jobstores.base import JobLookupError

from packages.core.errors import RecipientNotFoundError
from packages.core.jobs.context import JobContext
from packages.core.reminders.models import Frequency, Reminder, ReminderStatus, TimeZone
from packages.core.settings import Settings, build_settings_cache
from packages.core.storage.sqlite import SQLiteRecordStore


NOW = dt.datetime(2024, 6, 1, 10, 0, tzinfo=dt.timezone.utc)


def _key(job_id: Any) -> str:
    return getattr(job_id, "value", job_id)


@dataclass
class ScheduledJob:
    job_id: str
    when: dt.datetime
    data: Dict[str, Any]


class FakeJobScheduler:
    def __init__(self) -> None:
        self.jobs: Dict[str, ScheduledJob] = {}
        self.processors: Dict[str, Callable[[Dict[str, Any]], None]] = {}
        self._counter = 0

    def register_processor(self, job_id, processor) -> None:
        self.processors[_key(job_id)] = processor

    def schedule_once(self, job_id, when, data) -> str:
        self._counter += 1
        handle = f"{_key(job_id)}:{self._counter}"
        self.jobs[handle] = ScheduledJob(_key(job_id), when, dict(data))
        return handle

    def cancel(self, handle: str) -> None:
        if handle not in self.jobs:
            raise JobLookupError(handle)
        del self.jobs[handle]

    def cancel_job_class(self, job_id) -> int:
        handles = [h for h, job in self.jobs.items() if job.job_id == _key(job_id)]
        for handle in handles:
            del self.jobs[handle]
        return len(handles)

    def of_class(self, job_id) -> List[Tuple[str, ScheduledJob]]:
        return [(h, job) for h, job in self.jobs.items() if job.job_id == _key(job_id)]

    def run(self, handle: str) -> None:
        job = self.jobs.pop(handle)
        self.processors[job.job_id](job.data)


@dataclass
class RecordingNotifier:
    missing: Set[str] = field(default_factory=set)
    reminders: List[Tuple[str, Optional[str], str]] = field(default_factory=list)
    digests: List[Tuple[str, int, int]] = field(default_factory=list)
    operator_messages: List[str] = field(default_factory=list)

    def send_reminder(self, reminder, recipient_type, recipient_id):
        if recipient_id in self.missing:
            raise RecipientNotFoundError(recipient_type or "user", recipient_id)
        self.reminders.append((reminder.id, recipient_type, recipient_id))
        return f"msg-{len(self.reminders)}"

    def send_digest(self, user_id, upcoming_count, past_count):
        self.digests.append((user_id, upcoming_count, past_count))

    def send_operator_message(self, text):
        self.operator_messages.append(text)


class Clock:
    def __init__(self, now: dt.datetime) -> None:
        self.now = now

    def __call__(self) -> dt.datetime:
        return self.now


def make_settings(tmp_path, **overrides) -> Settings:
    values = dict(
        db_path=str(tmp_path / "reminders.db"),
        scheduler_enabled=False,
        restart_delay_seconds=10,
        daily_digest_enabled=True,
        backup_interval="daily",
        backup_dir=str(tmp_path / "backups"),
        operator_webhook_url=None,
        operator_email=None,
    )
    values.update(overrides)
    return Settings(**values)


@pytest.fixture
def clock():
    return Clock(NOW)


@pytest.fixture
def fake_scheduler():
    return FakeJobScheduler()


@pytest.fixture
def notifier():
    return RecordingNotifier()


@pytest.fixture
def settings(tmp_path):
    return make_settings(tmp_path)


@pytest.fixture
def ctx(tmp_path, fake_scheduler, notifier, settings, clock):
    return JobContext(
        store=SQLiteRecordStore(db_path=settings.db_path),
        scheduler=fake_scheduler,
        notifier=notifier,
        settings=settings,
        settings_cache=build_settings_cache(loader=lambda: settings, clock=clock),
        clock=clock,
    )


@pytest.fixture
def make_reminder(clock):
    def build(**overrides) -> Reminder:
        values = dict(
            id=str(uuid.uuid4()),
            description="Water the plants",
            created_by="user-1",
            room_id="",
            due_date=clock.now + dt.timedelta(hours=1),
            time_zone=TimeZone(utc_offset=0),
            frequency=Frequency.DO_NOT_REPEAT,
            status=ReminderStatus.ACTIVE,
            created_at=clock.now,
        )
        values.update(overrides)
        return Reminder(**values)

    return build
