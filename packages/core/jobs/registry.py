from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Dict, Optional

from .backup import BackupJob
from .context import JobContext
from .digest import DailyDigestCalculationJob, DailyDigestJob
from .ids import JobId
from .processors import ReminderFireJob
from .restart import RestartRecoveryCoordinator
from .scheduler import Processor
from .stats import StatsJob


logger = logging.getLogger("remind_ops.jobs")

ProcessorWrapper = Callable[[str, Processor], Processor]


@dataclass
class JobProcessors:
    reminders: ReminderFireJob
    restart: RestartRecoveryCoordinator
    digest_calculation: DailyDigestCalculationJob
    digest: DailyDigestJob
    backup: BackupJob
    stats: StatsJob

    def by_job_id(self) -> Dict[JobId, Processor]:
        return {
            JobId.REMINDERS_JOB: self.reminders.process,
            JobId.LEGACY_REMINDER_JOB: self.reminders.process,
            JobId.JOBS_RESTART_JOB: self.restart.process,
            JobId.DAILY_REMINDER_CALCULATION_JOB: self.digest_calculation.process,
            JobId.DAILY_REMINDER_JOB: self.digest.process,
            JobId.BACKUP_JOB: self.backup.process,
            JobId.STATS_COLLECTOR_JOB: self.stats.process,
        }


def register_processors(
    ctx: JobContext, wrap: Optional[ProcessorWrapper] = None
) -> JobProcessors:
    """Build every job processor and register it with the context's scheduler.

    ``wrap`` receives the job id and the processor and returns the callable to
    register, e.g. to open a tracing span around each run.
    """
    processors = JobProcessors(
        reminders=ReminderFireJob(ctx),
        restart=RestartRecoveryCoordinator(ctx),
        digest_calculation=DailyDigestCalculationJob(ctx),
        digest=DailyDigestJob(ctx),
        backup=BackupJob(ctx),
        stats=StatsJob(ctx),
    )
    for job_id, processor in processors.by_job_id().items():
        if wrap is not None:
            processor = wrap(job_id.value, processor)
        ctx.scheduler.register_processor(job_id, processor)
    logger.info("job_processors_registered count=%s", len(JobId))
    return processors
