"""Email notifications: templates, transport and dispatch helpers."""

from .links import LinkBuilder
from .mailer import Mailer
from .milestones import MILESTONE_THRESHOLDS, MetricType
from .models import (
    BulkSendResult,
    DeliveryResult,
    EmailDeliveryError,
    InvalidRecipientError,
    NotificationError,
    NotificationTemplateError,
    RenderedEmail,
)
from .service import NotificationService
from .smtp_client import SMTPClient
from .templates import EmailTemplates, TemplateRenderer

__all__ = [
    "BulkSendResult",
    "DeliveryResult",
    "EmailDeliveryError",
    "EmailTemplates",
    "InvalidRecipientError",
    "LinkBuilder",
    "Mailer",
    "MetricType",
    "MILESTONE_THRESHOLDS",
    "NotificationError",
    "NotificationService",
    "NotificationTemplateError",
    "RenderedEmail",
    "SMTPClient",
    "TemplateRenderer",
]
