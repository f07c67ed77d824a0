"""Scheduled notification jobs and their run results."""

from .models import JobRunResult
from .runner import ScheduledJobs

__all__ = ["JobRunResult", "ScheduledJobs"]
