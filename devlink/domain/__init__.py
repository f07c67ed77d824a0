"""Domain models shared across persistence, notifications and jobs."""

from .models import (
    PROFILE_CHECKLIST,
    ActivityStats,
    CollaborationRequest,
    CollaborationStatus,
    ContentItem,
    ContentType,
    DeliveryRecord,
    DeveloperProfile,
    PendingTestimonials,
    Recipient,
    User,
    UserRole,
)

__all__ = [
    "ActivityStats",
    "CollaborationRequest",
    "CollaborationStatus",
    "ContentItem",
    "ContentType",
    "DeliveryRecord",
    "DeveloperProfile",
    "PendingTestimonials",
    "PROFILE_CHECKLIST",
    "Recipient",
    "User",
    "UserRole",
]
