"""Notification dispatch helpers.

NotificationService sits between callers (scheduled jobs, application event
hooks, the CLI) and the mail transport. It adds follower fan-out, milestone
threshold checks and the per-event notifications on top of Mailer.send_email.

Every helper that picks recipients itself enforces the consent gate:
a user with email_notifications off never receives anything.
"""

import contextvars
import logging
from concurrent.futures import ThreadPoolExecutor
from typing import Callable, ContextManager, Iterable, Optional, Union

from sqlalchemy.orm import Session

from devlink.domain.models import ContentItem, ContentType, Recipient, User
from devlink.logging import get_logger
from devlink.logging.context import log_context
from devlink.persistence.database import get_session
from devlink.persistence.exceptions import RecordNotFoundError
from devlink.persistence.repositories import ContentRepository, UserRepository
from devlink.utils.timestamps import utc_now

from .links import LinkBuilder
from .mailer import Mailer
from .milestones import MetricType, is_milestone
from .models import (
    FAILED,
    SENT,
    SKIPPED,
    BulkSendResult,
    DeliveryResult,
    NotificationError,
    RenderedEmail,
)
from .templates import EmailTemplates

logger = get_logger(__name__, component="notification")

TemplateSource = Union[RenderedEmail, Callable[[Recipient], RenderedEmail]]
SessionScope = Callable[[], ContextManager[Session]]

DEFAULT_BULK_WORKERS = 10


class NotificationService:
    """Sends notification emails on behalf of jobs and event hooks.

    Args:
        mailer: Configured Mailer (owns the SMTP transport)
        links: Builds absolute links into the web app
        templates: Email template registry (default instance if None)
        session_scope: Callable returning a session context manager
        bulk_max_workers: Thread pool size for send_bulk_email
        logger_instance: Logger instance (uses module logger if None)
    """

    def __init__(
        self,
        mailer: Mailer,
        links: LinkBuilder,
        templates: Optional[EmailTemplates] = None,
        session_scope: SessionScope = get_session,
        bulk_max_workers: int = DEFAULT_BULK_WORKERS,
        logger_instance: Optional[logging.Logger] = None,
    ):
        self.mailer = mailer
        self.links = links
        self.templates = templates or EmailTemplates()
        self.session_scope = session_scope
        self.bulk_max_workers = max(1, bulk_max_workers)
        self.logger = logger_instance or logger

    # ------------------------------------------------------------------
    # Transport
    # ------------------------------------------------------------------

    def send_email(self, to: str, subject: str, html: str) -> None:
        """Send one email. Failures propagate to the caller.

        Raises:
            InvalidRecipientError: If ``to`` is not a valid address
            EmailDeliveryError: If the transport fails
        """
        self.mailer.send_email(to, subject, html)

    def send_rendered(self, to: str, email: RenderedEmail) -> None:
        self.send_email(to, email.subject, email.html)

    def send_bulk_email(
        self, recipients: Iterable[Recipient], template: TemplateSource
    ) -> BulkSendResult:
        """Send to every recipient concurrently and wait for all of them.

        One recipient's failure never stops the others: each failure is
        logged and collected in the result instead of being raised.

        Args:
            recipients: Addressable recipients
            template: One RenderedEmail for everyone, or a callable building
                a personalized email per recipient

        Returns:
            BulkSendResult with attempted == len(recipients)
        """
        recipients = list(recipients)
        result = BulkSendResult(attempted=len(recipients))

        if not recipients:
            self.logger.debug("Bulk send called with no recipients", extra={"event": "email.bulk.empty"})
            return result

        self.logger.info(
            f"Sending bulk email to {len(recipients)} recipients",
            extra={"event": "email.bulk.started", "recipient_count": len(recipients)},
        )

        workers = min(self.bulk_max_workers, len(recipients))
        with ThreadPoolExecutor(max_workers=workers, thread_name_prefix="bulk-email") as pool:
            futures = [
                # Log context lives in a contextvar; carry it onto the worker thread
                pool.submit(contextvars.copy_context().run, self._send_one, recipient, template)
                for recipient in recipients
            ]
            outcomes = [future.result() for future in futures]

        for outcome in outcomes:
            if outcome.is_success():
                result.delivered += 1
            else:
                result.failures.append(outcome)

        self.logger.info(
            f"Bulk email finished: {result.delivered}/{result.attempted} delivered",
            extra={
                "event": "email.bulk.completed",
                "attempted": result.attempted,
                "delivered": result.delivered,
                "failed": result.failed,
            },
        )
        return result

    def _send_one(self, recipient: Recipient, template: TemplateSource) -> DeliveryResult:
        try:
            email = template(recipient) if callable(template) else template
            self.send_rendered(recipient.email, email)
            return DeliveryResult(recipient=recipient.email, status=SENT)
        except Exception as e:
            self.logger.error(
                f"Bulk send to {recipient.email} failed: {e}",
                extra={
                    "event": "email.bulk.recipient_failed",
                    "recipient": recipient.email,
                    "error_type": type(e).__name__,
                },
            )
            return DeliveryResult(recipient=recipient.email, status=FAILED, error=str(e))

    def deliver(self, user: User, email: RenderedEmail) -> DeliveryResult:
        """Send ``email`` to one user, honoring consent and catching send failures.

        Returns:
            DeliveryResult: skipped without consent/email/name, failed on a
            transport or address error, sent otherwise
        """
        if not user.email_notifications:
            return self._skip(user, "notifications_disabled")
        if not user.email or not user.name:
            return self._skip(user, "missing_contact_data")

        try:
            self.send_rendered(user.email, email)
        except NotificationError as e:
            return DeliveryResult(recipient=user.email, status=FAILED, error=str(e))

        return DeliveryResult(recipient=user.email, status=SENT)

    def _skip(self, user: User, reason: str) -> DeliveryResult:
        self.logger.debug(
            f"Not emailing user {user.id}: {reason}",
            extra={"event": "notification.skip", "reason": reason, "user_id": user.id},
        )
        return DeliveryResult(recipient=user.email, status=SKIPPED, error=reason)

    # ------------------------------------------------------------------
    # Fan-out and milestones
    # ------------------------------------------------------------------

    def notify_followers(self, user_id: str, template: TemplateSource) -> BulkSendResult:
        """Email every eligible follower of ``user_id``.

        Followers without consent, email or name are filtered out by the
        query. Zero eligible followers means no send.
        """
        with log_context(user_id=user_id):
            with self.session_scope() as session:
                recipients = UserRepository(session).list_follower_recipients(user_id)

            if not recipients:
                self.logger.info(
                    f"No eligible followers for user {user_id}",
                    extra={"event": "notification.followers.none"},
                )
                return BulkSendResult()

            return self.send_bulk_email(recipients, template)

    def notify_followers_of_new_content(
        self, content_type: Union[ContentType, str], content_id: str
    ) -> BulkSendResult:
        """Tell the author's followers about a newly published project or blog post.

        Raises:
            RecordNotFoundError: If the content does not exist
        """
        item = self._load_content(ContentType(content_type), content_id)
        author_name = item.owner.name or item.owner.username or "A developer you follow"
        item_url = self.links.content(item)

        def personalized(recipient: Recipient) -> RenderedEmail:
            return self.templates.new_content(
                author_name=author_name,
                item_label=item.content_type.label,
                item_title=item.title,
                item_url=item_url,
                recipient_name=recipient.name,
            )

        return self.notify_followers(item.owner.id, personalized)

    def check_and_notify_milestone(
        self, user_id: str, metric_type: Union[MetricType, str], current_count: int
    ) -> Optional[DeliveryResult]:
        """Send a milestone email when ``current_count`` is exactly a threshold.

        At most one email per call. A send failure is reported in the result
        rather than raised.

        Returns:
            None when the count is not a milestone, otherwise the DeliveryResult
        """
        metric = MetricType(metric_type)

        if not is_milestone(metric, current_count):
            return None

        with log_context(user_id=user_id, metric=metric.value, count=current_count):
            with self.session_scope() as session:
                user = UserRepository(session).get_by_id(user_id)

            if user is None:
                self.logger.warning(
                    f"Milestone reached for unknown user {user_id}",
                    extra={"event": "notification.milestone.unknown_user"},
                )
                return DeliveryResult(recipient=None, status=SKIPPED, error="user_not_found")

            email = self.templates.milestone_achieved(
                user_name=user.name,
                metric_label=metric.label(current_count),
                count=current_count,
                profile_url=self._profile_url(user),
            )
            result = self.deliver(user, email)

            self.logger.info(
                f"Milestone {current_count} {metric.value}: {result.status}",
                extra={"event": "notification.milestone", "status": result.status},
            )
            return result

    # ------------------------------------------------------------------
    # Event notifications
    # ------------------------------------------------------------------

    def notify_new_follower(self, follower_id: str, following_id: str) -> DeliveryResult:
        """Tell ``following_id`` that ``follower_id`` started following them.

        Raises:
            RecordNotFoundError: If either user does not exist
        """
        if follower_id == following_id:
            return DeliveryResult(recipient=None, status=SKIPPED, error="self_action")

        with self.session_scope() as session:
            users = UserRepository(session)
            follower = self._require_user(users, follower_id)
            followed = self._require_user(users, following_id)

        email = self.templates.new_follower(
            follower_name=self._display_name(follower),
            profile_url=self._profile_url(follower),
        )
        return self._deliver_event("follow", followed, email)

    def notify_new_like(
        self, liker_id: str, content_type: Union[ContentType, str], content_id: str
    ) -> DeliveryResult:
        """Tell the owner of a project or blog post about a new like.

        Raises:
            RecordNotFoundError: If the liker or the content does not exist
        """
        item = self._load_content(ContentType(content_type), content_id)
        if item.owner.id == liker_id:
            return DeliveryResult(recipient=item.owner.email, status=SKIPPED, error="self_action")

        with self.session_scope() as session:
            liker = self._require_user(UserRepository(session), liker_id)

        email = self.templates.new_like(
            liker_name=self._display_name(liker),
            item_title=item.title,
            item_url=self.links.content(item),
            item_label=item.content_type.label,
        )
        return self._deliver_event("like", item.owner, email)

    def notify_new_comment(
        self,
        commenter_id: str,
        content_type: Union[ContentType, str],
        content_id: str,
        comment: Optional[str],
    ) -> DeliveryResult:
        """Tell the owner of a project or blog post about a new comment.

        Raises:
            RecordNotFoundError: If the commenter or the content does not exist
        """
        item = self._load_content(ContentType(content_type), content_id)
        if item.owner.id == commenter_id:
            return DeliveryResult(recipient=item.owner.email, status=SKIPPED, error="self_action")

        with self.session_scope() as session:
            commenter = self._require_user(UserRepository(session), commenter_id)

        email = self.templates.new_comment(
            commenter_name=self._display_name(commenter),
            item_title=item.title,
            comment=comment,
            item_url=self.links.content(item),
            item_label=item.content_type.label,
        )
        return self._deliver_event("comment", item.owner, email)

    def notify_new_review(
        self,
        reviewer_id: str,
        reviewed_user_id: str,
        rating: int,
        comment: Optional[str] = None,
    ) -> DeliveryResult:
        """Tell a developer that a client left them a review.

        Raises:
            RecordNotFoundError: If either user does not exist
        """
        if reviewer_id == reviewed_user_id:
            return DeliveryResult(recipient=None, status=SKIPPED, error="self_action")

        with self.session_scope() as session:
            users = UserRepository(session)
            reviewer = self._require_user(users, reviewer_id)
            reviewed = self._require_user(users, reviewed_user_id)

        email = self.templates.new_review(
            reviewer_name=self._display_name(reviewer),
            rating=rating,
            comment=comment,
            profile_url=self._profile_url(reviewed),
        )
        return self._deliver_event("review", reviewed, email)

    def send_test_email(self, to: str) -> DeliveryResult:
        """Send the configuration test email. Failures propagate.

        Raises:
            InvalidRecipientError: If ``to`` is not a valid address
            EmailDeliveryError: If the transport fails
        """
        email = self.templates.test_email(
            app_url=self.links.dashboard(),
            sent_at=utc_now().strftime("%Y-%m-%d %H:%M:%S UTC"),
        )
        self.send_rendered(to, email)
        self.logger.info(
            f"Test email sent to {to}", extra={"event": "email.test.sent", "recipient": to}
        )
        return DeliveryResult(recipient=to, status=SENT)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _deliver_event(self, event: str, recipient: User, email: RenderedEmail) -> DeliveryResult:
        with log_context(notification=event, user_id=recipient.id):
            result = self.deliver(recipient, email)
            self.logger.info(
                f"{event} notification for user {recipient.id}: {result.status}",
                extra={"event": f"notification.{event}", "status": result.status},
            )
            return result

    def _load_content(self, content_type: ContentType, content_id: str) -> ContentItem:
        with self.session_scope() as session:
            content = ContentRepository(session)
            if content_type is ContentType.PROJECT:
                item = content.get_project(content_id)
            else:
                item = content.get_post(content_id)

        if item is None:
            raise RecordNotFoundError(f"{content_type.label.capitalize()} {content_id} not found")
        return item

    @staticmethod
    def _require_user(users: UserRepository, user_id: str) -> User:
        user = users.get_by_id(user_id)
        if user is None:
            raise RecordNotFoundError(f"User {user_id} not found")
        return user

    @staticmethod
    def _display_name(user: User) -> str:
        return user.name or user.username or "Someone"

    def _profile_url(self, user: User) -> str:
        if user.username:
            return self.links.profile(user.username)
        return self.links.dashboard()

