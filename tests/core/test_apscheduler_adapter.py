import datetime as dt

import pytest
from apscheduler.jobstores.base import JobLookupError
from apscheduler.schedulers.background import BackgroundScheduler

from packages.core.jobs.ids import JobId
from packages.core.jobs.scheduler import APSchedulerJobScheduler, job_class_of


@pytest.fixture
def aps():
    scheduler = BackgroundScheduler(timezone=dt.timezone.utc)
    scheduler.start(paused=True)
    yield scheduler
    scheduler.shutdown(wait=False)


def test_schedule_once_registers_a_date_job(aps):
    jobs = APSchedulerJobScheduler(aps)
    when = dt.datetime(2030, 1, 1, 9, tzinfo=dt.timezone.utc)

    handle = jobs.schedule_once(JobId.REMINDERS_JOB, when, {"reminder_id": "r1"})

    assert job_class_of(handle) == "reminders-job"
    job = aps.get_job(handle)
    assert job.next_run_time == when
    assert job.misfire_grace_time is None
    assert job.coalesce is True
    assert list(job.args) == ["reminders-job", {"reminder_id": "r1"}]


def test_dispatch_calls_the_registered_processor(aps, caplog):
    jobs = APSchedulerJobScheduler(aps)
    received = []
    jobs.register_processor(JobId.BACKUP_JOB, received.append)
    handle = jobs.schedule_once(JobId.BACKUP_JOB, dt.datetime.now(dt.timezone.utc), {"a": 1})

    job = aps.get_job(handle)
    job.func(*job.args)
    assert received == [{"a": 1}]

    orphan = aps.get_job(jobs.schedule_once("unknown-job", dt.datetime.now(dt.timezone.utc), {}))
    orphan.func(*orphan.args)
    assert "job_processor_missing job_id=unknown-job" in caplog.text


def test_cancel_and_cancel_job_class(aps):
    jobs = APSchedulerJobScheduler(aps)
    when = dt.datetime(2030, 1, 1, tzinfo=dt.timezone.utc)
    first = jobs.schedule_once(JobId.DAILY_REMINDER_JOB, when, {"user_id": "a"})
    jobs.schedule_once(JobId.DAILY_REMINDER_JOB, when, {"user_id": "b"})
    keep = jobs.schedule_once(JobId.REMINDERS_JOB, when, {"reminder_id": "r1"})

    jobs.cancel(first)
    with pytest.raises(JobLookupError):
        jobs.cancel(first)

    assert jobs.cancel_job_class(JobId.DAILY_REMINDER_JOB) == 1
    assert [job.id for job in aps.get_jobs()] == [keep]
