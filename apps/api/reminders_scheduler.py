from __future__ import annotations

import datetime as dt
import logging
import threading
from dataclasses import dataclass
from typing import Optional

from apscheduler.schedulers.background import BackgroundScheduler

from apps.api.notifications import EmailNotifier, smtp_configured
from apps.api.observability import traced_processor
from packages.core.jobs.context import JobContext
from packages.core.jobs.registry import JobProcessors, register_processors
from packages.core.jobs.restart import schedule_restart
from packages.core.jobs.scheduler import APSchedulerJobScheduler
from packages.core.notifications import LoggingNotifier, Notifier
from packages.core.settings import Settings, build_settings_cache, load_settings
from packages.core.storage.base import RecordStore
from packages.core.storage.sqlite import SQLiteRecordStore


logger = logging.getLogger("remind_ops.runtime")


@dataclass
class ReminderRuntime:
    scheduler: BackgroundScheduler
    ctx: JobContext
    processors: JobProcessors

    @property
    def running(self) -> bool:
        return self.scheduler.running


def build_notifier(settings: Settings) -> Notifier:
    if smtp_configured() or settings.operator_webhook_url:
        return EmailNotifier(
            operator_webhook_url=settings.operator_webhook_url,
            operator_email=settings.operator_email,
        )
    logger.warning("notifier_fallback reason=smtp_not_configured notifier=logging")
    return LoggingNotifier()


def build_runtime(
    settings: Optional[Settings] = None,
    store: Optional[RecordStore] = None,
    notifier: Optional[Notifier] = None,
) -> ReminderRuntime:
    settings = settings or load_settings()
    scheduler = BackgroundScheduler(timezone=dt.timezone.utc)
    ctx = JobContext(
        store=store or SQLiteRecordStore(db_path=settings.db_path),
        scheduler=APSchedulerJobScheduler(scheduler),
        notifier=notifier or build_notifier(settings),
        settings=settings,
        settings_cache=build_settings_cache(),
    )
    processors = register_processors(ctx, wrap=traced_processor)
    return ReminderRuntime(scheduler=scheduler, ctx=ctx, processors=processors)


def start_runtime(runtime: ReminderRuntime) -> ReminderRuntime:
    """Start the scheduler and queue restart recovery.

    Jobs live in APScheduler's memory store, so every start rebuilds both the
    reminder timers and the internal job chains from the database.
    """
    if runtime.running:
        return runtime
    runtime.scheduler.start()
    schedule_restart(runtime.ctx, restart_reminder_jobs=True)
    schedule_restart(runtime.ctx, restart_reminder_jobs=False)
    logger.info("reminder_runtime_started db_path=%s", runtime.ctx.settings.db_path)
    return runtime


_RUNTIME: Optional[ReminderRuntime] = None
_RUNTIME_LOCK = threading.Lock()


def get_runtime() -> ReminderRuntime:
    global _RUNTIME
    with _RUNTIME_LOCK:
        if _RUNTIME is None:
            _RUNTIME = build_runtime()
        return _RUNTIME


def shutdown_runtime() -> None:
    global _RUNTIME
    with _RUNTIME_LOCK:
        if _RUNTIME is not None and _RUNTIME.running:
            _RUNTIME.scheduler.shutdown(wait=False)
            logger.info("reminder_runtime_stopped")
        _RUNTIME = None
