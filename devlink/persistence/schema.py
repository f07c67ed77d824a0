"""Database schema definition and ORM models.

The DevLink application owns every table here except ``notifier_delivery_log``.
Table and column names follow the application's schema (quoted PascalCase
tables, camelCase columns); attribute names are snake_case.
"""

from sqlalchemy import (
    JSON,
    Boolean,
    Column,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    Text,
    inspect,
)
from sqlalchemy.dialects import postgresql
from sqlalchemy.engine import Engine
from sqlalchemy.orm import declarative_base, relationship

from devlink.domain.models import (
    CollaborationRequest,
    CollaborationStatus,
    ContentItem,
    ContentType,
    DeliveryRecord,
    User,
    UserRole,
)
from devlink.logging import get_logger

logger = get_logger(__name__, component="database")

Base = declarative_base()

# text[] on PostgreSQL, JSON everywhere else
SkillList = JSON().with_variant(postgresql.ARRAY(String), "postgresql")


def _timestamp(name: str, nullable: bool = False) -> Column:
    return Column(name, DateTime(timezone=True), nullable=nullable)


class UserModel(Base):
    """ORM model for the ``User`` table."""

    __tablename__ = "User"

    id = Column(String(64), primary_key=True)
    email = Column(String(255), nullable=True, unique=True)
    name = Column(String(255), nullable=True)
    username = Column(String(255), nullable=True, unique=True)
    role = Column(String(32), nullable=False, default=UserRole.DEVELOPER.value)
    email_notifications = Column("emailNotifications", Boolean, nullable=False, default=True)

    # Profile completeness
    bio = Column(Text, nullable=True)
    skills = Column(SkillList, nullable=True)
    github = Column(String(255), nullable=True)
    location = Column(String(255), nullable=True)

    created_at = _timestamp("createdAt")
    updated_at = _timestamp("updatedAt")

    def to_domain(self) -> User:
        """Convert ORM model to domain model.

        Returns:
            User: Domain model instance
        """
        return User(
            id=self.id,
            email=self.email,
            name=self.name,
            username=self.username,
            role=UserRole(self.role) if self.role else UserRole.DEVELOPER,
            email_notifications=bool(self.email_notifications),
            bio=self.bio,
            skills=list(self.skills or []),
            github=self.github,
            location=self.location,
            created_at=self.created_at,
            updated_at=self.updated_at,
        )


class ProjectModel(Base):
    __tablename__ = "Project"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(64), ForeignKey("User.id"), nullable=False)
    title = Column(Text, nullable=False)
    created_at = _timestamp("createdAt")

    owner = relationship(UserModel)

    __table_args__ = (Index("idx_project_user", "userId"),)

    def to_domain(self) -> ContentItem:
        return ContentItem(
            content_type=ContentType.PROJECT,
            id=self.id,
            title=self.title,
            owner=self.owner.to_domain(),
        )


class BlogPostModel(Base):
    __tablename__ = "BlogPost"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(64), ForeignKey("User.id"), nullable=False)
    title = Column(Text, nullable=False)
    slug = Column(String(255), nullable=False)
    created_at = _timestamp("createdAt")

    owner = relationship(UserModel)

    __table_args__ = (Index("idx_blogpost_user", "userId"),)

    def to_domain(self) -> ContentItem:
        return ContentItem(
            content_type=ContentType.POST,
            id=self.id,
            title=self.title,
            slug=self.slug,
            owner=self.owner.to_domain(),
        )


class FollowModel(Base):
    __tablename__ = "Follow"

    id = Column(String(64), primary_key=True)
    follower_id = Column("followerId", String(64), ForeignKey("User.id"), nullable=False)
    following_id = Column("followingId", String(64), ForeignKey("User.id"), nullable=False)
    created_at = _timestamp("createdAt")

    __table_args__ = (Index("idx_follow_following", "followingId", "createdAt"),)


class ProfileViewModel(Base):
    """A view of ``user_id``'s public profile."""

    __tablename__ = "ProfileView"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(64), ForeignKey("User.id"), nullable=False)
    viewer_id = Column("viewerId", String(64), ForeignKey("User.id"), nullable=True)
    created_at = _timestamp("createdAt")

    __table_args__ = (Index("idx_profileview_user", "userId", "createdAt"),)


class LikeModel(Base):
    """A like on exactly one of a project or a blog post."""

    __tablename__ = "Like"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(64), ForeignKey("User.id"), nullable=False)
    project_id = Column("projectId", String(64), ForeignKey("Project.id"), nullable=True)
    post_id = Column("postId", String(64), ForeignKey("BlogPost.id"), nullable=True)
    created_at = _timestamp("createdAt")


class CommentModel(Base):
    """A comment on exactly one of a project or a blog post."""

    __tablename__ = "Comment"

    id = Column(String(64), primary_key=True)
    user_id = Column("userId", String(64), ForeignKey("User.id"), nullable=False)
    project_id = Column("projectId", String(64), ForeignKey("Project.id"), nullable=True)
    post_id = Column("postId", String(64), ForeignKey("BlogPost.id"), nullable=True)
    content = Column(Text, nullable=False)
    created_at = _timestamp("createdAt")


class MessageModel(Base):
    __tablename__ = "Message"

    id = Column(String(64), primary_key=True)
    sender_id = Column("senderId", String(64), ForeignKey("User.id"), nullable=False)
    receiver_id = Column("receiverId", String(64), ForeignKey("User.id"), nullable=False)
    content = Column(Text, nullable=False)
    created_at = _timestamp("createdAt")

    __table_args__ = (Index("idx_message_receiver", "receiverId", "createdAt"),)


class TestimonialModel(Base):
    __tablename__ = "Testimonial"
    __test__ = False

    id = Column(String(64), primary_key=True)
    author_id = Column("authorId", String(64), ForeignKey("User.id"), nullable=False)
    target_user_id = Column("targetUserId", String(64), ForeignKey("User.id"), nullable=False)
    content = Column(Text, nullable=False)
    approved = Column(Boolean, nullable=False, default=False)
    created_at = _timestamp("createdAt")

    __table_args__ = (Index("idx_testimonial_target", "targetUserId", "approved"),)


class CollaborationRequestModel(Base):
    __tablename__ = "CollaborationRequest"

    id = Column(String(64), primary_key=True)
    sender_id = Column("senderId", String(64), ForeignKey("User.id"), nullable=False)
    receiver_id = Column("receiverId", String(64), ForeignKey("User.id"), nullable=False)
    title = Column(Text, nullable=False)
    status = Column(String(32), nullable=False, default=CollaborationStatus.PENDING.value)
    created_at = _timestamp("createdAt")

    sender = relationship(UserModel, foreign_keys=[sender_id])
    receiver = relationship(UserModel, foreign_keys=[receiver_id])

    __table_args__ = (Index("idx_collab_status_created", "status", "createdAt"),)

    def to_domain(self) -> CollaborationRequest:
        return CollaborationRequest(
            id=self.id,
            title=self.title,
            status=CollaborationStatus(self.status),
            created_at=self.created_at,
            sender=self.sender.to_domain(),
            receiver=self.receiver.to_domain(),
        )


class DeliveryLogModel(Base):
    """ORM model for notifier_delivery_log.

    Written only for jobs configured with ``resend_after``.
    """

    __tablename__ = "notifier_delivery_log"

    id = Column(Integer, primary_key=True, autoincrement=True)
    job_name = Column(String(64), nullable=False)
    recipient_key = Column(String(320), nullable=False)
    sent_at = Column(DateTime(timezone=True), nullable=False)

    __table_args__ = (
        Index("idx_delivery_log_lookup", "job_name", "recipient_key", "sent_at"),
    )

    def to_domain(self) -> DeliveryRecord:
        return DeliveryRecord(
            job_name=self.job_name,
            recipient_key=self.recipient_key,
            sent_at=self.sent_at,
        )

    @classmethod
    def from_domain(cls, record: DeliveryRecord) -> "DeliveryLogModel":
        return cls(
            job_name=record.job_name,
            recipient_key=record.recipient_key,
            sent_at=record.sent_at,
        )


def create_schema(engine: Engine) -> None:
    """Create all mapped tables and indexes that do not exist yet (idempotent).

    Args:
        engine: SQLAlchemy engine instance
    """
    logger.info("Creating database schema if not exists")

    try:
        Base.metadata.create_all(engine, checkfirst=True)

        tables = inspect(engine).get_table_names()
        logger.info(
            f"Database schema ready. Tables: {', '.join(sorted(tables))}",
            extra={"event": "database.schema.ready", "table_count": len(tables)},
        )

    except Exception as e:
        logger.error(f"Failed to create database schema: {e}", exc_info=True)
        raise
