"""Data access layer (repositories) for the notifier.

Repositories encapsulate the cohort and lookup queries the jobs and dispatch
helpers need and return domain models rather than ORM models. Everything is
read-only except DeliveryLogRepository.
"""

from datetime import datetime
from typing import List, Optional

from sqlalchemy import and_, exists, func, or_, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.orm import Session, joinedload

from devlink.domain.models import (
    ActivityStats,
    CollaborationRequest,
    CollaborationStatus,
    ContentItem,
    DeliveryRecord,
    DeveloperProfile,
    PendingTestimonials,
    Recipient,
    User,
    UserRole,
)
from devlink.logging import get_logger
from devlink.utils.timestamps import ensure_utc

from .exceptions import DataIntegrityError, PersistenceError
from .schema import (
    BlogPostModel,
    CollaborationRequestModel,
    CommentModel,
    DeliveryLogModel,
    FollowModel,
    LikeModel,
    MessageModel,
    ProfileViewModel,
    ProjectModel,
    TestimonialModel,
    UserModel,
)

logger = get_logger(__name__, component="database")


class UserRepository:
    """Repository for user lookups and job cohorts."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def get_by_id(self, user_id: str) -> Optional[User]:
        """Retrieve a user by primary key.

        Returns:
            User domain model if found, None otherwise

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            user_model = self.session.get(UserModel, user_id)
            return user_model.to_domain() if user_model is not None else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve user: {e}") from e

    def list_notifiable(self) -> List[User]:
        """All users who have consented to notification email.

        Users without an email or name are included; callers skip them.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(UserModel)
                .where(UserModel.email_notifications.is_(True))
                .order_by(UserModel.created_at, UserModel.id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing notifiable users: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list notifiable users: {e}") from e

    def list_with_pending_testimonials(self, older_than: datetime) -> List[PendingTestimonials]:
        """Consenting users with at least one unapproved testimonial created at or before ``older_than``.

        ``pending_count`` counts every unapproved testimonial of the user,
        including ones newer than the cutoff.

        Args:
            older_than: Age cutoff for the oldest pending testimonial (UTC)

        Raises:
            PersistenceError: If database error occurs
        """
        cutoff = ensure_utc(older_than)

        try:
            pending = (
                select(
                    TestimonialModel.target_user_id.label("target_user_id"),
                    func.count(TestimonialModel.id).label("pending_count"),
                )
                .where(TestimonialModel.approved.is_(False))
                .group_by(TestimonialModel.target_user_id)
                .subquery()
            )

            has_stale_pending = exists().where(
                TestimonialModel.target_user_id == UserModel.id,
                TestimonialModel.approved.is_(False),
                TestimonialModel.created_at <= cutoff,
            )

            stmt = (
                select(UserModel, pending.c.pending_count)
                .join(pending, pending.c.target_user_id == UserModel.id)
                .where(UserModel.email_notifications.is_(True), has_stale_pending)
                .order_by(UserModel.created_at, UserModel.id)
            )

            return [
                PendingTestimonials(user=user_model.to_domain(), pending_count=count)
                for user_model, count in self.session.execute(stmt)
            ]

        except SQLAlchemyError as e:
            logger.error(f"Error listing users with pending testimonials: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list pending testimonials: {e}") from e

    def list_new_developers(
        self, created_from: datetime, created_to: datetime
    ) -> List[DeveloperProfile]:
        """Consenting developers who signed up within [created_from, created_to], with project counts.

        Raises:
            PersistenceError: If database error occurs
        """
        start = ensure_utc(created_from)
        end = ensure_utc(created_to)

        try:
            project_counts = (
                select(
                    ProjectModel.user_id.label("user_id"),
                    func.count(ProjectModel.id).label("project_count"),
                )
                .group_by(ProjectModel.user_id)
                .subquery()
            )

            stmt = (
                select(UserModel, func.coalesce(project_counts.c.project_count, 0))
                .outerjoin(project_counts, project_counts.c.user_id == UserModel.id)
                .where(
                    UserModel.email_notifications.is_(True),
                    UserModel.role == UserRole.DEVELOPER.value,
                    UserModel.created_at >= start,
                    UserModel.created_at <= end,
                )
                .order_by(UserModel.created_at, UserModel.id)
            )

            return [
                DeveloperProfile(user=user_model.to_domain(), project_count=count)
                for user_model, count in self.session.execute(stmt)
            ]

        except SQLAlchemyError as e:
            logger.error(f"Error listing new developers: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list new developers: {e}") from e

    def list_inactive(self, updated_before: datetime, limit: int) -> List[User]:
        """Consenting users whose last update is at or before ``updated_before``.

        Oldest first, at most ``limit`` rows.

        Raises:
            PersistenceError: If database error occurs
        """
        cutoff = ensure_utc(updated_before)

        try:
            stmt = (
                select(UserModel)
                .where(
                    UserModel.email_notifications.is_(True),
                    UserModel.updated_at <= cutoff,
                )
                .order_by(UserModel.updated_at, UserModel.id)
                .limit(limit)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing inactive users: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list inactive users: {e}") from e

    def list_follower_recipients(self, user_id: str) -> List[Recipient]:
        """Followers of ``user_id`` who can be emailed.

        Filters to consent on, email present and name present.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(UserModel.email, UserModel.name)
                .join(FollowModel, FollowModel.follower_id == UserModel.id)
                .where(
                    FollowModel.following_id == user_id,
                    UserModel.email_notifications.is_(True),
                    UserModel.email.is_not(None),
                    UserModel.name.is_not(None),
                )
                .order_by(FollowModel.created_at, UserModel.id)
            )
            return [
                Recipient(email=email, name=name)
                for email, name in self.session.execute(stmt)
            ]

        except SQLAlchemyError as e:
            logger.error(f"Error listing followers of user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list followers: {e}") from e


class ActivityRepository:
    """Repository for activity counts used by the weekly digest."""

    def __init__(self, session: Session):
        self.session = session

    def weekly_stats(self, user_id: str, since: datetime) -> ActivityStats:
        """Count activity received by ``user_id`` at or after ``since``.

        Likes and comments count when they target a project or a blog post
        owned by the user.

        Raises:
            PersistenceError: If database error occurs
        """
        start = ensure_utc(since)

        try:
            return ActivityStats(
                new_followers=self._count(
                    select(func.count(FollowModel.id)).where(
                        FollowModel.following_id == user_id,
                        FollowModel.created_at >= start,
                    )
                ),
                profile_views=self._count(
                    select(func.count(ProfileViewModel.id)).where(
                        ProfileViewModel.user_id == user_id,
                        ProfileViewModel.created_at >= start,
                    )
                ),
                likes=self._count(self._on_owned_content(LikeModel, user_id, start)),
                comments=self._count(self._on_owned_content(CommentModel, user_id, start)),
                messages=self._count(
                    select(func.count(MessageModel.id)).where(
                        MessageModel.receiver_id == user_id,
                        MessageModel.created_at >= start,
                    )
                ),
            )

        except SQLAlchemyError as e:
            logger.error(f"Error computing weekly stats for user {user_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to compute weekly stats: {e}") from e

    def _count(self, stmt) -> int:
        return int(self.session.execute(stmt).scalar() or 0)

    @staticmethod
    def _on_owned_content(model, user_id: str, start: datetime):
        return (
            select(func.count(model.id))
            .select_from(model)
            .outerjoin(ProjectModel, model.project_id == ProjectModel.id)
            .outerjoin(BlogPostModel, model.post_id == BlogPostModel.id)
            .where(
                model.created_at >= start,
                or_(ProjectModel.user_id == user_id, BlogPostModel.user_id == user_id),
            )
        )


class ContentRepository:
    """Repository for projects and blog posts, loaded with their owner."""

    def __init__(self, session: Session):
        self.session = session

    def get_project(self, project_id: str) -> Optional[ContentItem]:
        """Retrieve a project and its owner.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(ProjectModel)
                .options(joinedload(ProjectModel.owner))
                .where(ProjectModel.id == project_id)
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model is not None else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving project {project_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve project: {e}") from e

    def get_post(self, post_id: str) -> Optional[ContentItem]:
        """Retrieve a blog post and its owner.

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = (
                select(BlogPostModel)
                .options(joinedload(BlogPostModel.owner))
                .where(BlogPostModel.id == post_id)
            )
            model = self.session.execute(stmt).scalar_one_or_none()
            return model.to_domain() if model is not None else None

        except SQLAlchemyError as e:
            logger.error(f"Error retrieving blog post {post_id}: {e}", exc_info=True)
            raise PersistenceError(f"Failed to retrieve blog post: {e}") from e


class CollaborationRepository:
    """Repository for collaboration requests."""

    def __init__(self, session: Session):
        self.session = session

    def list_pending_older_than(self, cutoff: datetime) -> List[CollaborationRequest]:
        """Pending requests created at or before ``cutoff``, with sender and receiver.

        Raises:
            PersistenceError: If database error occurs
        """
        created_before = ensure_utc(cutoff)

        try:
            stmt = (
                select(CollaborationRequestModel)
                .options(
                    joinedload(CollaborationRequestModel.sender),
                    joinedload(CollaborationRequestModel.receiver),
                )
                .where(
                    and_(
                        CollaborationRequestModel.status == CollaborationStatus.PENDING.value,
                        CollaborationRequestModel.created_at <= created_before,
                    )
                )
                .order_by(CollaborationRequestModel.created_at, CollaborationRequestModel.id)
            )
            return [model.to_domain() for model in self.session.execute(stmt).scalars()]

        except SQLAlchemyError as e:
            logger.error(f"Error listing pending collaboration requests: {e}", exc_info=True)
            raise PersistenceError(f"Failed to list collaboration requests: {e}") from e


class DeliveryLogRepository:
    """Repository for the per-job delivery ledger."""

    def __init__(self, session: Session):
        """Initialize repository with database session.

        Args:
            session: SQLAlchemy session for database operations
        """
        self.session = session

    def was_sent_since(self, job_name: str, recipient_key: str, cutoff: datetime) -> bool:
        """Check whether ``job_name`` delivered to ``recipient_key`` at or after ``cutoff``.

        Args:
            job_name: Scheduled job name
            recipient_key: User id, or request id for per-request reminders
            cutoff: Start of the suppression window (UTC)

        Returns:
            True if a delivery was recorded inside the window, False otherwise

        Raises:
            PersistenceError: If database error occurs
        """
        try:
            stmt = select(
                exists().where(
                    DeliveryLogModel.job_name == job_name,
                    DeliveryLogModel.recipient_key == recipient_key,
                    DeliveryLogModel.sent_at >= ensure_utc(cutoff),
                )
            )
            return bool(self.session.execute(stmt).scalar())

        except SQLAlchemyError as e:
            logger.error(
                f"Error checking delivery log for {job_name}/{recipient_key}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to check delivery log: {e}") from e

    def record(self, job_name: str, recipient_key: str, sent_at: datetime) -> DeliveryRecord:
        """Insert a ledger entry after a successful send.

        Args:
            job_name: Scheduled job name
            recipient_key: User id, or request id for per-request reminders
            sent_at: When the email was handed to the transport (UTC)

        Returns:
            Persisted DeliveryRecord domain model

        Raises:
            DataIntegrityError: If the insert violates a constraint
            PersistenceError: If database error occurs
        """
        try:
            record = DeliveryRecord(
                job_name=job_name, recipient_key=recipient_key, sent_at=ensure_utc(sent_at)
            )
            model = DeliveryLogModel.from_domain(record)
            self.session.add(model)
            self.session.flush()
            return model.to_domain()

        except IntegrityError as e:
            logger.error(f"Integrity error recording delivery for {job_name}: {e}", exc_info=True)
            raise DataIntegrityError(f"Failed to record delivery: {e}") from e
        except SQLAlchemyError as e:
            logger.error(
                f"Error recording delivery for {job_name}/{recipient_key}: {e}",
                exc_info=True,
            )
            raise PersistenceError(f"Failed to record delivery: {e}") from e
