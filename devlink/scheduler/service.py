"""Scheduler service for cron-driven job execution."""

import threading
from datetime import datetime, timezone
from typing import Dict, Optional, Union

from apscheduler.schedulers.background import BackgroundScheduler
from apscheduler.triggers.cron import CronTrigger

from devlink.config.models import JobName, JobsConfig
from devlink.jobs.models import JobRunResult
from devlink.jobs.runner import ScheduledJobs
from devlink.logging import get_logger

logger = get_logger(__name__, component="scheduler")

MISFIRE_GRACE_SECONDS = 3600

JOB_TITLES = {
    JobName.WEEKLY_DIGEST: "Weekly digest",
    JobName.TESTIMONIAL_REMINDERS: "Testimonial reminders",
    JobName.INCOMPLETE_PROFILE_REMINDERS: "Incomplete profile reminders",
    JobName.RE_ENGAGEMENT: "Re-engagement emails",
    JobName.COLLABORATION_REMINDERS: "Collaboration request reminders",
}


class SchedulerService:
    """
    Wraps APScheduler to run each enabled job on its cron schedule.

    Uses BackgroundScheduler so the main thread stays free to handle signals
    and coordinate shutdown. ``max_instances=1`` keeps a slow run from
    overlapping the next one within this process only; a second process
    running the same schedule would still send duplicates.
    """

    def __init__(
        self,
        scheduled_jobs: ScheduledJobs,
        jobs_config: JobsConfig,
        shutdown_event: Optional[threading.Event] = None,
    ):
        """
        Initialize the scheduler service.

        Args:
            scheduled_jobs: Job runner whose methods are registered
            jobs_config: Per-job enabled flag and cron expression
            shutdown_event: Optional event to set on shutdown for coordination
        """
        self.scheduled_jobs = scheduled_jobs
        self.jobs_config = jobs_config
        self.shutdown_event = shutdown_event

        self.scheduler = BackgroundScheduler(
            job_defaults={
                "max_instances": 1,
                "coalesce": True,
                "misfire_grace_time": MISFIRE_GRACE_SECONDS,
            },
            timezone=timezone.utc,
        )

    def start(self) -> None:
        """Register every enabled job and start the scheduler thread."""
        enabled = self.jobs_config.enabled_jobs()

        for job_name, schedule in enabled.items():
            self.scheduler.add_job(
                func=self.scheduled_jobs.get_job(job_name),
                trigger=CronTrigger.from_crontab(schedule.cron, timezone=timezone.utc),
                id=job_name.value,
                name=JOB_TITLES[job_name],
                replace_existing=True,
            )
            logger.debug(
                f"Registered job {job_name.value} with cron '{schedule.cron}'",
                extra={"event": "scheduler.job.registered", "job": job_name.value},
            )

        self.scheduler.start()

        next_runs = {
            name: run_time.isoformat() if run_time else None
            for name, run_time in self.get_next_run_times().items()
        }
        logger.info(
            f"Scheduler started with {len(enabled)} jobs",
            extra={
                "event": "scheduler.started",
                "job_count": len(enabled),
                "next_run_times": next_runs,
            },
        )

    def shutdown(self, wait: bool = False) -> None:
        """
        Shutdown the scheduler gracefully.

        Args:
            wait: If True, wait for running jobs to complete before returning
        """
        logger.info(
            "Shutting down scheduler",
            extra={
                "event": "scheduler.stopping",
                "wait_for_jobs": wait,
            },
        )

        if self.scheduler.running:
            self.scheduler.shutdown(wait=wait)

        if self.shutdown_event:
            self.shutdown_event.set()

        logger.info("Scheduler shutdown complete", extra={"event": "scheduler.stopped"})

    def trigger_now(self, job_name: Union[JobName, str]) -> JobRunResult:
        """
        Run one job immediately in the current thread.

        Works whether or not the job is enabled in config.
        """
        job_name = JobName(job_name)
        logger.info(
            f"Triggering immediate run of {job_name.value}",
            extra={"event": "scheduler.trigger_now", "job": job_name.value},
        )
        return self.scheduled_jobs.run(job_name)

    def is_running(self) -> bool:
        return self.scheduler.running

    def get_next_run_times(self) -> Dict[str, Optional[datetime]]:
        """
        Next fire time of every registered job, keyed by job name.

        Returns:
            Mapping of job name to next run time (None if paused or not yet computed)
        """
        return {
            job.id: getattr(job, "next_run_time", None) for job in self.scheduler.get_jobs()
        }
