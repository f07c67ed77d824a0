"""Domain models for the DevLink entities read by the notifier.

These mirror the columns of the DevLink database that the jobs and dispatch
helpers need. They are plain read models: nothing here is written back.
"""

from datetime import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, Field, field_validator

from devlink.utils.timestamps import ensure_utc


class UserRole(str, Enum):
    CLIENT = "client"
    DEVELOPER = "developer"


class CollaborationStatus(str, Enum):
    PENDING = "pending"
    ACCEPTED = "accepted"
    REJECTED = "rejected"


class ContentType(str, Enum):
    """Likeable and commentable content."""

    PROJECT = "project"
    POST = "post"

    @property
    def label(self) -> str:
        return "project" if self is ContentType.PROJECT else "blog post"


class User(BaseModel):
    """A DevLink account.

    ``email_notifications`` is the only consent flag: when it is False the
    user must not receive any email from this service.
    """

    id: str = Field(..., description="User id")
    email: Optional[str] = Field(None, description="Account email address")
    name: Optional[str] = Field(None, description="Display name")
    username: Optional[str] = Field(None, description="Public profile slug")
    role: UserRole = Field(UserRole.DEVELOPER, description="client or developer")
    email_notifications: bool = Field(True, description="Consent to notification email")
    bio: Optional[str] = None
    skills: List[str] = Field(default_factory=list)
    github: Optional[str] = None
    location: Optional[str] = None
    created_at: datetime = Field(..., description="Signup time (UTC)")
    updated_at: datetime = Field(..., description="Last profile update or login (UTC)")

    @field_validator("created_at", "updated_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return ensure_utc(v)

    @field_validator("skills", mode="before")
    @classmethod
    def default_skills(cls, v):
        return v or []

    def can_be_emailed(self) -> bool:
        """Consent given and enough contact data to address an email."""
        return bool(self.email_notifications and self.email and self.name)


class Recipient(BaseModel):
    """Addressable email recipient."""

    email: str
    name: Optional[str] = None


class ActivityStats(BaseModel):
    """Activity received by one user in a trailing window."""

    new_followers: int = 0
    profile_views: int = 0
    likes: int = 0
    comments: int = 0
    messages: int = 0

    def has_activity(self) -> bool:
        return any(
            (self.new_followers, self.profile_views, self.likes, self.comments, self.messages)
        )

    def digest_counts(self) -> Dict[str, int]:
        """The metrics shown in the weekly digest. Messages only gate eligibility."""
        return {
            "new_followers": self.new_followers,
            "profile_views": self.profile_views,
            "likes": self.likes,
            "comments": self.comments,
        }


class PendingTestimonials(BaseModel):
    """A user with testimonials waiting for approval."""

    user: User
    pending_count: int = Field(..., ge=0)


PROFILE_CHECKLIST = {
    "bio": "Add a compelling bio to tell your story",
    "skills": "List your technical skills and expertise",
    "github": "Connect your GitHub account for credibility",
    "location": "Add your location to help clients find you",
    "projects": "Showcase your first project to stand out",
}


class DeveloperProfile(BaseModel):
    """A developer account together with its project count."""

    user: User
    project_count: int = Field(0, ge=0)

    def missing_items(self) -> List[str]:
        """Checklist copy for every profile section that is still empty, in display order."""
        user = self.user
        missing = []

        if not user.bio or not user.bio.strip():
            missing.append(PROFILE_CHECKLIST["bio"])
        if not user.skills:
            missing.append(PROFILE_CHECKLIST["skills"])
        if not user.github:
            missing.append(PROFILE_CHECKLIST["github"])
        if not user.location:
            missing.append(PROFILE_CHECKLIST["location"])
        if self.project_count == 0:
            missing.append(PROFILE_CHECKLIST["projects"])

        return missing


class ContentItem(BaseModel):
    """A project or blog post together with its owner."""

    content_type: ContentType
    id: str
    title: str
    slug: Optional[str] = None
    owner: User


class CollaborationRequest(BaseModel):
    """A collaboration request with both parties loaded."""

    id: str
    title: str
    status: CollaborationStatus
    created_at: datetime
    sender: User
    receiver: User

    @field_validator("created_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return ensure_utc(v)


class DeliveryRecord(BaseModel):
    """One ledger entry: a job delivered to a recipient at a point in time."""

    job_name: str
    recipient_key: str
    sent_at: datetime

    @field_validator("sent_at")
    @classmethod
    def normalize_timestamps(cls, v: datetime) -> datetime:
        return ensure_utc(v)
