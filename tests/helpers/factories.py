"""Row factories for seeding the in-memory test database.

Each helper adds one ORM row to the session, flushes, and returns it.
Timestamps default to FIXED_NOW so cohort windows are deterministic.
"""

from datetime import datetime, timezone
from typing import Any, List, Optional
from uuid import uuid4

from sqlalchemy.orm import Session

from devlink.persistence.schema import (
    BlogPostModel,
    CollaborationRequestModel,
    CommentModel,
    FollowModel,
    LikeModel,
    MessageModel,
    ProfileViewModel,
    ProjectModel,
    TestimonialModel,
    UserModel,
)

FIXED_NOW = datetime(2025, 11, 10, 9, 0, tzinfo=timezone.utc)

BASE_URL = "https://devlink.example.com"


# Marks "generate a value" so that None can still mean NULL
AUTO = object()


def _id() -> str:
    return uuid4().hex


def _add(session: Session, model):
    session.add(model)
    session.flush()
    return model


def add_user(
    session: Session,
    name: Optional[str] = "Ada Lovelace",
    email: Any = AUTO,
    username: Any = AUTO,
    role: str = "developer",
    email_notifications: bool = True,
    bio: Optional[str] = "Building things",
    skills: Optional[List[str]] = None,
    github: Optional[str] = "ada",
    location: Optional[str] = "London",
    created_at: datetime = FIXED_NOW,
    updated_at: Optional[datetime] = None,
    user_id: Optional[str] = None,
) -> UserModel:
    user_id = user_id or _id()
    return _add(
        session,
        UserModel(
            id=user_id,
            name=name,
            email=email if email is not AUTO else f"{user_id[:8]}@example.com",
            username=username if username is not AUTO else f"user{user_id[:8]}",
            role=role,
            email_notifications=email_notifications,
            bio=bio,
            skills=["python"] if skills is None else skills,
            github=github,
            location=location,
            created_at=created_at,
            updated_at=updated_at or created_at,
        ),
    )


def add_project(session: Session, owner: UserModel, title: str = "Portfolio site", created_at: datetime = FIXED_NOW):
    return _add(
        session, ProjectModel(id=_id(), user_id=owner.id, title=title, created_at=created_at)
    )


def add_blog_post(
    session: Session,
    owner: UserModel,
    title: str = "Hello world",
    slug: str = "hello-world",
    created_at: datetime = FIXED_NOW,
):
    return _add(
        session,
        BlogPostModel(id=_id(), user_id=owner.id, title=title, slug=slug, created_at=created_at),
    )


def add_follow(session: Session, follower: UserModel, following: UserModel, created_at: datetime = FIXED_NOW):
    return _add(
        session,
        FollowModel(
            id=_id(), follower_id=follower.id, following_id=following.id, created_at=created_at
        ),
    )


def add_profile_view(session: Session, profile: UserModel, created_at: datetime = FIXED_NOW):
    return _add(session, ProfileViewModel(id=_id(), user_id=profile.id, created_at=created_at))


def add_like(
    session: Session,
    liker: UserModel,
    project: Optional[ProjectModel] = None,
    post: Optional[BlogPostModel] = None,
    created_at: datetime = FIXED_NOW,
):
    return _add(
        session,
        LikeModel(
            id=_id(),
            user_id=liker.id,
            project_id=project.id if project else None,
            post_id=post.id if post else None,
            created_at=created_at,
        ),
    )


def add_comment(
    session: Session,
    author: UserModel,
    project: Optional[ProjectModel] = None,
    post: Optional[BlogPostModel] = None,
    content: str = "Nice work!",
    created_at: datetime = FIXED_NOW,
):
    return _add(
        session,
        CommentModel(
            id=_id(),
            user_id=author.id,
            project_id=project.id if project else None,
            post_id=post.id if post else None,
            content=content,
            created_at=created_at,
        ),
    )


def add_message(session: Session, sender: UserModel, receiver: UserModel, created_at: datetime = FIXED_NOW):
    return _add(
        session,
        MessageModel(
            id=_id(),
            sender_id=sender.id,
            receiver_id=receiver.id,
            content="Hi there",
            created_at=created_at,
        ),
    )


def add_testimonial(
    session: Session,
    author: UserModel,
    target: UserModel,
    approved: bool = False,
    created_at: datetime = FIXED_NOW,
):
    return _add(
        session,
        TestimonialModel(
            id=_id(),
            author_id=author.id,
            target_user_id=target.id,
            content="Great to work with",
            approved=approved,
            created_at=created_at,
        ),
    )


def add_collaboration_request(
    session: Session,
    sender: UserModel,
    receiver: UserModel,
    title: str = "Open source CLI",
    status: str = "pending",
    created_at: datetime = FIXED_NOW,
):
    return _add(
        session,
        CollaborationRequestModel(
            id=_id(),
            sender_id=sender.id,
            receiver_id=receiver.id,
            title=title,
            status=status,
            created_at=created_at,
        ),
    )
