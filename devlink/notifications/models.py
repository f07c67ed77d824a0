"""Data models and exceptions for the notification service.

This module defines the rendered-email and delivery result types and the
exceptions used throughout the notification pipeline.
"""

from dataclasses import dataclass, field
from typing import List, Optional


class NotificationError(Exception):
    """Base exception for notification-related errors."""

    pass


class NotificationTemplateError(NotificationError):
    """Raised when a template is unknown or fails to render."""

    pass


class EmailDeliveryError(NotificationError):
    """Raised when the transport rejects a message or cannot be reached."""

    pass


class InvalidRecipientError(NotificationError):
    """Raised when a recipient address fails validation."""

    pass


@dataclass(frozen=True)
class RenderedEmail:
    """Output of one email template: a single-line subject and an HTML body."""

    subject: str
    html: str


SENT = "sent"
SKIPPED = "skipped"
FAILED = "failed"


@dataclass
class DeliveryResult:
    """Outcome of one send attempt (or a decision not to attempt one).

    Attributes:
        recipient: Address the email was meant for (None when the user had none)
        status: "sent", "skipped" or "failed"
        error: Error message when status is "failed", skip reason when "skipped"
    """

    recipient: Optional[str]
    status: str
    error: Optional[str] = None

    def is_success(self) -> bool:
        return self.status == SENT

    def is_failure(self) -> bool:
        return self.status == FAILED

    def to_dict(self) -> dict:
        return {"recipient": self.recipient, "status": self.status, "error": self.error}


@dataclass
class BulkSendResult:
    """Aggregate of a concurrent fan-out.

    ``attempted`` always equals the number of recipients handed in.
    """

    attempted: int = 0
    delivered: int = 0
    failures: List[DeliveryResult] = field(default_factory=list)

    @property
    def failed(self) -> int:
        return len(self.failures)
