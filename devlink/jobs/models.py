"""Data models for scheduled job execution tracking and reporting."""

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional

from devlink.notifications.models import DeliveryResult


@dataclass
class JobRunResult:
    """
    Outcome of one scheduled job run.

    Attributes:
        job_name: Name of the job that ran
        success: True when the cohort was selected and every entity processed.
            Individual send failures do not make a run unsuccessful.
        sent: Send attempts made (not confirmed deliveries)
        total: Size of the cohort returned by the selection query
        delivered: Attempts the transport accepted
        suppressed: Recipients skipped because they were sent inside the
            job's resend_after window
        ledger_failures: Sends that went out but could not be written to the
            resend ledger (those recipients may be sent again next run)
        failures: One DeliveryResult per failed attempt
        run_started_at: UTC timestamp when the run began
        run_finished_at: UTC timestamp when the run completed
    """

    job_name: str
    run_started_at: datetime
    run_finished_at: Optional[datetime] = None
    success: bool = True
    sent: int = 0
    total: int = 0
    delivered: int = 0
    suppressed: int = 0
    ledger_failures: int = 0
    failures: List[DeliveryResult] = field(default_factory=list)

    @property
    def duration_seconds(self) -> float:
        if self.run_finished_at is None:
            return 0.0
        return (self.run_finished_at - self.run_started_at).total_seconds()

    def record(self, outcome: DeliveryResult) -> None:
        """Count one send attempt."""
        self.sent += 1
        if outcome.is_success():
            self.delivered += 1
        else:
            self.failures.append(outcome)

    def to_dict(self) -> Dict[str, Any]:
        """Summary suitable for JSON output: success, sent and total first."""
        return {
            "success": self.success,
            "sent": self.sent,
            "total": self.total,
            "job": self.job_name,
            "delivered": self.delivered,
            "suppressed": self.suppressed,
            "ledger_failures": self.ledger_failures,
            "failed": len(self.failures),
            "failures": [failure.to_dict() for failure in self.failures],
            "duration_ms": int(self.duration_seconds * 1000),
        }
