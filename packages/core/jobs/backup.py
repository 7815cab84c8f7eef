from __future__ import annotations

import datetime as dt
import json
import logging
import os
from typing import Any, Dict, Optional

from ..errors import ValidationError
from ..reminders.models import Reminder, ReminderStatus
from .context import JobContext
from .ids import JobId
from .restart import schedule_restart


logger = logging.getLogger("remind_ops.jobs.backup")

BACKUP_FILE_PREFIX = "reminder-backup"
ACTIVE_REMINDERS_PRESENT = "active_reminders_present"
INVALID_BACKUP = "invalid_backup_file"


def backup_filename(now: dt.datetime) -> str:
    return f"{BACKUP_FILE_PREFIX}-{now.strftime('%Y-%m-%dT%H-%M-%S')}.json"


class BackupJob:
    """Writes every reminder to a JSON file in the backup directory.

    Scheduled backups are fenced and re-arm themselves after the configured
    interval. Manual backups run unconditionally and leave the chain alone.
    """

    def __init__(self, ctx: JobContext) -> None:
        self._ctx = ctx

    def request_manual_backup(self) -> str:
        return self._ctx.scheduler.schedule_once(
            JobId.BACKUP_JOB, self._ctx.now(), {"manual_backup": True}
        )

    def process(self, data: Dict[str, Any]) -> None:
        ctx = self._ctx
        manual = bool(data.get("manual_backup"))
        now = ctx.now()
        logger.debug("backup_started manual=%s", manual)
        if not manual and not ctx.locks.should_execute(
            JobId.BACKUP_JOB, data.get("trigger_id"), now=now
        ):
            return

        try:
            self.create_backup(now)
        except Exception:
            logger.exception("backup_failed")

        if manual:
            logger.debug("backup_manual_finished")
            return

        interval = dt.timedelta(hours=ctx.settings.backup_interval_hours)
        trigger_id = ctx.locks.reschedule(JobId.BACKUP_JOB, now + interval, now=now)
        ctx.last_runs.update_last_run(JobId.BACKUP_JOB, now)
        logger.debug(
            "backup_rescheduled trigger_id=%s interval_hours=%s",
            trigger_id,
            ctx.settings.backup_interval_hours,
        )

    def create_backup(self, now: dt.datetime) -> Optional[str]:
        ctx = self._ctx
        reminders = ctx.reminders.find_all()
        if not reminders:
            logger.info("backup_skipped reason=no_data")
            ctx.notifier.send_operator_message(
                "No reminder data found to back up, skipping this time."
            )
            return None

        os.makedirs(ctx.settings.backup_dir, exist_ok=True)
        filename = backup_filename(now)
        path = os.path.join(ctx.settings.backup_dir, filename)
        with open(path, "w", encoding="utf-8") as handle:
            json.dump({"reminders": [r.to_document() for r in reminders]}, handle)

        logger.info("backup_created path=%s reminders=%s", path, len(reminders))
        ctx.notifier.send_operator_message(
            f"Reminder backup summary\n\n- File name: {filename}\n"
            f"- Total reminders: {len(reminders)}"
        )
        return path


def restore_backup(ctx: JobContext, backup: Dict[str, Any]) -> int:
    """Replace every stored reminder with the ones in ``backup``.

    Only allowed while no reminder is active. Timers are rebuilt by a
    reminder-mode restart scheduled after the usual restart delay.
    """
    documents = backup.get("reminders") if isinstance(backup, dict) else None
    if not isinstance(documents, list):
        raise ValidationError({"backup": INVALID_BACKUP})
    try:
        reminders = [Reminder.from_document(document) for document in documents]
    except (KeyError, TypeError, ValueError) as exc:
        raise ValidationError({"backup": INVALID_BACKUP}) from exc

    if ctx.reminders.find_one(status=ReminderStatus.ACTIVE) is not None:
        raise ValidationError({"backup": ACTIVE_REMINDERS_PRESENT})

    removed = ctx.reminders.clear_all()
    logger.info("backup_restore_cleared removed=%s", removed)
    for reminder in reminders:
        ctx.reminders.insert(reminder)
    logger.info("backup_restored reminders=%s", len(reminders))

    schedule_restart(ctx, restart_reminder_jobs=True)
    try:
        ctx.notifier.send_operator_message(
            "A backup restore has been initiated. Reminder jobs restart shortly."
        )
    except Exception:
        logger.exception("backup_restore_message_failed")
    return len(reminders)
