import datetime as dt

from packages.core.jobs.ids import JobId
from packages.core.jobs.locks import JobLockManager, JobLockRepository, new_trigger_id
from packages.core.storage.sqlite import SQLiteRecordStore


NOW = dt.datetime(2024, 6, 1, 10, 0, tzinfo=dt.timezone.utc)


def _manager(tmp_path, fake_scheduler):
    locks = JobLockRepository(SQLiteRecordStore(db_path=str(tmp_path / "reminders.db")))
    return JobLockManager(fake_scheduler, locks)


def test_execute_without_lock(tmp_path, fake_scheduler):
    manager = _manager(tmp_path, fake_scheduler)
    assert manager.should_execute(JobId.BACKUP_JOB, "anything", now=NOW) is True


def test_acquire_schedules_then_records_trigger(tmp_path, fake_scheduler):
    manager = _manager(tmp_path, fake_scheduler)
    trigger_id = new_trigger_id()
    when = NOW + dt.timedelta(seconds=10)

    handle = manager.acquire(JobId.BACKUP_JOB, trigger_id, when, now=NOW)

    job = fake_scheduler.jobs[handle]
    assert job.job_id == "backup-job"
    assert job.when == when
    assert job.data == {"trigger_id": trigger_id}
    lock = manager.current(JobId.BACKUP_JOB)
    assert lock.trigger_id == trigger_id
    assert lock.locked_at == NOW
    assert manager.should_execute(JobId.BACKUP_JOB, trigger_id, now=NOW) is True


def test_superseded_trigger_is_skipped_until_stale(tmp_path, fake_scheduler):
    manager = _manager(tmp_path, fake_scheduler)
    manager.acquire(JobId.STATS_COLLECTOR_JOB, "current", NOW, now=NOW)

    assert manager.should_execute(JobId.STATS_COLLECTOR_JOB, "older", now=NOW) is False
    almost = NOW + dt.timedelta(hours=23, minutes=59)
    assert manager.should_execute(JobId.STATS_COLLECTOR_JOB, "older", now=almost) is False
    stale = NOW + dt.timedelta(hours=24)
    assert manager.should_execute(JobId.STATS_COLLECTOR_JOB, "older", now=stale) is True


def test_reschedule_overwrites_the_single_lock_record(tmp_path, fake_scheduler):
    manager = _manager(tmp_path, fake_scheduler)
    first = manager.reschedule(JobId.DAILY_REMINDER_CALCULATION_JOB, NOW, now=NOW)
    second = manager.reschedule(
        JobId.DAILY_REMINDER_CALCULATION_JOB, NOW + dt.timedelta(hours=24), now=NOW
    )

    assert first != second
    assert manager.current(JobId.DAILY_REMINDER_CALCULATION_JOB).trigger_id == second
    assert manager.should_execute(JobId.DAILY_REMINDER_CALCULATION_JOB, first, now=NOW) is False
    assert len(fake_scheduler.of_class(JobId.DAILY_REMINDER_CALCULATION_JOB)) == 2
