from dataclasses import replace

from apps.api.notifications import EmailNotifier
from apps.api.reminders_scheduler import build_notifier, build_runtime, start_runtime
from packages.core.jobs.ids import JobId
from packages.core.jobs.scheduler import job_class_of
from packages.core.notifications import LoggingNotifier


def test_start_queues_both_restart_modes(settings, notifier):
    runtime = build_runtime(settings=settings, notifier=notifier)
    try:
        start_runtime(runtime)
        assert runtime.running

        restarts = [
            job for job in runtime.scheduler.get_jobs()
            if job_class_of(job.id) == JobId.JOBS_RESTART_JOB.value
        ]
        assert sorted(job.args[1]["restart_reminder_jobs"] for job in restarts) == [False, True]
        assert runtime.processors.by_job_id().keys() == {job_id for job_id in JobId}
    finally:
        runtime.scheduler.shutdown(wait=False)


def test_notifier_falls_back_to_logging(monkeypatch, settings):
    monkeypatch.delenv("SMTP_HOST", raising=False)
    monkeypatch.delenv("SMTP_FROM", raising=False)
    assert isinstance(build_notifier(settings), LoggingNotifier)

    webhook = replace(settings, operator_webhook_url="https://hooks.test")
    assert isinstance(build_notifier(webhook), EmailNotifier)
