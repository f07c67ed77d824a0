"""Configuration schema models using Pydantic."""

from datetime import timezone
from enum import Enum
from typing import Dict, Optional

from apscheduler.triggers.cron import CronTrigger
from pydantic import BaseModel, Field, field_validator

from .duration import DurationParseError, parse_duration


class JobName(str, Enum):
    """Scheduled jobs, keyed the way they appear in config and on the CLI."""

    WEEKLY_DIGEST = "weekly_digest"
    TESTIMONIAL_REMINDERS = "testimonial_reminders"
    INCOMPLETE_PROFILE_REMINDERS = "incomplete_profile_reminders"
    RE_ENGAGEMENT = "re_engagement"
    COLLABORATION_REMINDERS = "collaboration_reminders"


class LogLevel(str, Enum):
    """Logging levels."""

    DEBUG = "DEBUG"
    INFO = "INFO"
    WARNING = "WARNING"
    ERROR = "ERROR"
    CRITICAL = "CRITICAL"


class LogFormat(str, Enum):
    """Log output formats."""

    JSON = "json"
    KEY_VALUE = "key-value"


def _validate_duration(v: str) -> str:
    try:
        parse_duration(v)
    except DurationParseError as e:
        raise ValueError(str(e)) from e
    return v


class JobSchedule(BaseModel):
    """Schedule and resend policy for one job."""

    model_config = {"extra": "forbid"}

    enabled: bool = Field(True, description="Whether the scheduler registers this job")
    cron: str = Field(
        ...,
        description="Five-field crontab expression, evaluated in UTC. Day of week must use names (mon-sun)",
    )
    resend_after: Optional[str] = Field(
        None,
        description="Skip recipients already sent this job within this window (unset = always resend)",
    )

    @field_validator("cron")
    @classmethod
    def validate_cron(cls, v: str) -> str:
        """Reject expressions APScheduler cannot parse.

        APScheduler numbers weekdays from 0 = Monday, not 0 = Sunday as crontab
        does, so a numeric day of week would silently run a day late.
        """
        v = v.strip()
        fields = v.split()
        if len(fields) == 5 and any(ch.isdigit() for ch in fields[4]):
            raise ValueError(
                f"Invalid cron expression '{v}': day of week must use names "
                f"(mon, tue, ... sun), got '{fields[4]}'"
            )
        try:
            CronTrigger.from_crontab(v, timezone=timezone.utc)
        except ValueError as e:
            raise ValueError(f"Invalid cron expression '{v}': {e}") from e
        return v

    @field_validator("resend_after")
    @classmethod
    def validate_resend_after(cls, v: Optional[str]) -> Optional[str]:
        if v is None:
            return None
        return _validate_duration(v)

    @property
    def resend_after_seconds(self) -> Optional[int]:
        return parse_duration(self.resend_after) if self.resend_after else None


class JobsConfig(BaseModel):
    """Per-job schedules. Defaults mirror the production cron setup."""

    model_config = {"extra": "forbid"}

    weekly_digest: JobSchedule = Field(
        default_factory=lambda: JobSchedule(cron="0 9 * * mon")
    )
    testimonial_reminders: JobSchedule = Field(
        default_factory=lambda: JobSchedule(cron="0 10 */3 * *")
    )
    incomplete_profile_reminders: JobSchedule = Field(
        default_factory=lambda: JobSchedule(cron="0 11 * * *")
    )
    re_engagement: JobSchedule = Field(
        default_factory=lambda: JobSchedule(cron="0 14 * * thu")
    )
    collaboration_reminders: JobSchedule = Field(
        default_factory=lambda: JobSchedule(cron="0 15 * * *")
    )

    def get(self, job_name: JobName) -> JobSchedule:
        return getattr(self, JobName(job_name).value)

    def enabled_jobs(self) -> Dict[JobName, JobSchedule]:
        return {name: self.get(name) for name in JobName if self.get(name).enabled}


class CohortConfig(BaseModel):
    """Time windows and limits used to select each job's cohort."""

    model_config = {"extra": "forbid"}

    digest_window: str = Field("7d", description="Trailing activity window for the weekly digest")
    testimonial_pending_age: str = Field(
        "3d", description="Minimum age of an unapproved testimonial before reminding"
    )
    profile_reminder_age: str = Field(
        "7d", description="Account age at which incomplete profiles are reminded"
    )
    profile_reminder_window: str = Field(
        "1d", description="Width of the signup window, so each account is checked on one run"
    )
    profile_reminder_min_missing: int = Field(
        2, ge=1, le=5, description="Missing profile items needed to trigger a reminder"
    )
    inactivity_threshold: str = Field(
        "30d", description="Time since last update after which a user counts as inactive"
    )
    re_engagement_batch_size: int = Field(
        100, ge=1, le=10000, description="Maximum re-engagement emails per run"
    )
    re_engagement_delay_ms: int = Field(
        100, ge=0, le=60000, description="Pause between re-engagement sends"
    )
    collaboration_pending_age: str = Field(
        "3d", description="Minimum age of a pending collaboration request before reminding"
    )

    @field_validator(
        "digest_window",
        "testimonial_pending_age",
        "profile_reminder_age",
        "profile_reminder_window",
        "inactivity_threshold",
        "collaboration_pending_age",
    )
    @classmethod
    def validate_durations(cls, v: str) -> str:
        return _validate_duration(v)

    def seconds(self, field_name: str) -> int:
        """Parsed value of one of the duration fields, in seconds."""
        return parse_duration(getattr(self, field_name))


class EmailConfig(BaseModel):
    """Email delivery settings."""

    model_config = {"extra": "forbid"}

    use_tls: bool = Field(True, description="Use STARTTLS (implicit TLS is used on port 465)")
    bulk_max_workers: int = Field(
        10, ge=1, le=100, description="Concurrent sends during follower fan-out"
    )


class LoggingConfig(BaseModel):
    """Logging configuration."""

    level: LogLevel = Field(LogLevel.INFO, description="Log level")
    format: LogFormat = Field(
        LogFormat.KEY_VALUE, description="Log output format (json or key-value)"
    )

    model_config = {"use_enum_values": True, "extra": "forbid"}


class AppConfig(BaseModel):
    """Root configuration object for the DevLink notifier."""

    model_config = {"extra": "forbid"}

    jobs: JobsConfig = Field(default_factory=JobsConfig, description="Job schedules")
    cohorts: CohortConfig = Field(default_factory=CohortConfig, description="Cohort windows")
    email: EmailConfig = Field(default_factory=EmailConfig, description="Email settings")
    logging: LoggingConfig = Field(
        default_factory=LoggingConfig, description="Logging configuration"
    )
