"""Non-fatal configuration checks."""

import warnings
from typing import Any, Dict, List

from .duration import DurationParseError, parse_duration


def check_for_warnings(config_dict: Dict[str, Any]) -> List[str]:
    """
    Check a raw configuration for settings that are valid but probably unintended.

    Args:
        config_dict: Raw configuration dictionary

    Returns:
        List of warning messages
    """
    warning_messages = []

    jobs = config_dict.get("jobs") or {}
    if isinstance(jobs, dict):
        for name, job in jobs.items():
            if not isinstance(job, dict):
                continue
            if job.get("enabled") is False:
                warning_messages.append(f"Job '{name}' is disabled and will not be scheduled")

            # Every-minute schedules resend whole cohorts unless a resend window is set
            cron = job.get("cron")
            if isinstance(cron, str) and cron.split()[:1] == ["*"] and not job.get("resend_after"):
                warning_messages.append(
                    f"Job '{name}' runs every minute without resend_after; "
                    "recipients will receive the same email on every run"
                )

    cohorts = config_dict.get("cohorts") or {}
    if isinstance(cohorts, dict):
        batch_size = cohorts.get("re_engagement_batch_size", 100)
        if isinstance(batch_size, int) and batch_size > 1000:
            warning_messages.append(
                f"Large re_engagement_batch_size ({batch_size}) may trip SMTP provider rate limits"
            )

        delay_ms = cohorts.get("re_engagement_delay_ms", 100)
        if delay_ms == 0:
            warning_messages.append(
                "re_engagement_delay_ms is 0; re-engagement emails will be sent without pacing"
            )

        window = cohorts.get("profile_reminder_window")
        if isinstance(window, str):
            try:
                if parse_duration(window) > 86400:
                    warning_messages.append(
                        "profile_reminder_window is longer than one day; with a daily "
                        "schedule the same accounts may be reminded on several runs"
                    )
            except DurationParseError:
                # Reported as a validation error by the model
                pass

    return warning_messages


def emit_warnings(warning_messages: List[str]) -> None:
    """Emit warning messages using Python's warnings module."""
    for message in warning_messages:
        warnings.warn(message, UserWarning, stacklevel=2)
