"""Scheduled notification jobs.

Every job follows the same shape: select a cohort from the database relative
to "now", filter each entity for eligibility, render its email and send it.
A cohort query failure fails the run; a single send failure never does.
"""

import time
from datetime import datetime
from typing import Callable, Dict, Union
from uuid import uuid4

from sqlalchemy.exc import SQLAlchemyError

from devlink.config.duration import format_duration
from devlink.config.models import AppConfig, JobName
from devlink.domain.models import User
from devlink.logging import get_logger
from devlink.logging.context import log_context
from devlink.notifications.models import (
    FAILED,
    DeliveryResult,
    NotificationTemplateError,
    RenderedEmail,
)
from devlink.notifications.service import NotificationService, SessionScope
from devlink.persistence.database import get_session
from devlink.persistence.exceptions import PersistenceError
from devlink.persistence.repositories import (
    ActivityRepository,
    CollaborationRepository,
    DeliveryLogRepository,
    UserRepository,
)
from devlink.utils.timestamps import utc_now, window_start

from .models import JobRunResult

logger = get_logger(__name__, component="jobs")


class ScheduledJobs:
    """
    The five scheduled notification jobs.

    The public job methods take no arguments so they can be handed straight
    to a scheduler. Sends inside a job are sequential.
    """

    def __init__(
        self,
        notification_service: NotificationService,
        app_config: AppConfig,
        session_scope: SessionScope = get_session,
        clock: Callable[[], datetime] = utc_now,
        sleep: Callable[[float], None] = time.sleep,
    ):
        """
        Initialize the job runner.

        Args:
            notification_service: Sends email and builds links/templates
            app_config: Application configuration (cohort windows, resend policy)
            session_scope: Callable returning a session context manager
            clock: Returns the current UTC time
            sleep: Called between re-engagement sends
        """
        self.notifications = notification_service
        self.templates = notification_service.templates
        self.links = notification_service.links
        self.app_config = app_config
        self.cohorts = app_config.cohorts
        self.session_scope = session_scope
        self.clock = clock
        self.sleep = sleep

        self._jobs: Dict[JobName, Callable[[], JobRunResult]] = {
            JobName.WEEKLY_DIGEST: self.send_weekly_digests,
            JobName.TESTIMONIAL_REMINDERS: self.send_testimonial_reminders,
            JobName.INCOMPLETE_PROFILE_REMINDERS: self.send_incomplete_profile_reminders,
            JobName.RE_ENGAGEMENT: self.send_re_engagement_emails,
            JobName.COLLABORATION_REMINDERS: self.send_collaboration_request_reminders,
        }

    def run(self, job_name: Union[JobName, str]) -> JobRunResult:
        """Run one job by name.

        Raises:
            ValueError: If the job name is unknown
        """
        return self._jobs[JobName(job_name)]()

    def get_job(self, job_name: Union[JobName, str]) -> Callable[[], JobRunResult]:
        return self._jobs[JobName(job_name)]

    # ------------------------------------------------------------------
    # Jobs
    # ------------------------------------------------------------------

    def send_weekly_digests(self) -> JobRunResult:
        """Email each consenting user a summary of the activity they received.

        Users with no follower, profile view, like, comment or message in
        the trailing window get nothing.
        """

        def body(result: JobRunResult, now: datetime) -> None:
            window = self.cohorts.seconds("digest_window")
            since = window_start(now, window)
            window_label = format_duration(window)

            with self.session_scope() as session:
                users = UserRepository(session).list_notifiable()
                activity = ActivityRepository(session)
                candidates = [
                    (user, activity.weekly_stats(user.id, since))
                    for user in users
                    if user.can_be_emailed()
                ]

            result.total = len(users)
            dashboard_url = self.links.dashboard()

            for user, stats in candidates:
                if not stats.has_activity():
                    continue

                self._dispatch(
                    result,
                    now,
                    key=user.id,
                    user=user,
                    build=lambda user=user, stats=stats: self.templates.weekly_digest(
                        user.name, stats.digest_counts(), dashboard_url, window_label
                    ),
                )

        return self._execute(JobName.WEEKLY_DIGEST, body)

    def send_testimonial_reminders(self) -> JobRunResult:
        """Remind users about testimonials waiting for their approval.

        No run ledger by default: running twice sends the same reminders twice.
        """

        def body(result: JobRunResult, now: datetime) -> None:
            older_than = window_start(now, self.cohorts.seconds("testimonial_pending_age"))

            with self.session_scope() as session:
                pending = UserRepository(session).list_with_pending_testimonials(older_than)

            result.total = len(pending)
            testimonials_url = self.links.dashboard_testimonials()

            for entry in pending:
                if entry.pending_count <= 0:
                    continue

                self._dispatch(
                    result,
                    now,
                    key=entry.user.id,
                    user=entry.user,
                    build=lambda count=entry.pending_count: (
                        self.templates.pending_testimonials_reminder(count, testimonials_url)
                    ),
                )

        return self._execute(JobName.TESTIMONIAL_REMINDERS, body)

    def send_incomplete_profile_reminders(self) -> JobRunResult:
        """Nudge developers whose profile is still thin a week after signup.

        The signup window is one day wide, so a daily schedule checks each
        account exactly once.
        """

        def body(result: JobRunResult, now: datetime) -> None:
            created_to = window_start(now, self.cohorts.seconds("profile_reminder_age"))
            created_from = window_start(created_to, self.cohorts.seconds("profile_reminder_window"))

            with self.session_scope() as session:
                developers = UserRepository(session).list_new_developers(created_from, created_to)

            result.total = len(developers)
            profile_url = self.links.dashboard_profile()
            min_missing = self.cohorts.profile_reminder_min_missing

            for profile in developers:
                missing = profile.missing_items()
                if len(missing) < min_missing:
                    continue

                self._dispatch(
                    result,
                    now,
                    key=profile.user.id,
                    user=profile.user,
                    build=lambda user=profile.user, missing=missing: (
                        self.templates.incomplete_profile_reminder(user.name, missing, profile_url)
                    ),
                )

        return self._execute(JobName.INCOMPLETE_PROFILE_REMINDERS, body)

    def send_re_engagement_emails(self) -> JobRunResult:
        """Invite back users who have been inactive, oldest first, capped per run.

        Sleeps between sends to stay under transport rate limits.
        """

        def body(result: JobRunResult, now: datetime) -> None:
            updated_before = window_start(now, self.cohorts.seconds("inactivity_threshold"))

            with self.session_scope() as session:
                inactive = UserRepository(session).list_inactive(
                    updated_before, self.cohorts.re_engagement_batch_size
                )

            result.total = len(inactive)
            dashboard_url = self.links.dashboard()
            delay = self.cohorts.re_engagement_delay_ms / 1000.0

            for user in inactive:
                attempted = self._dispatch(
                    result,
                    now,
                    key=user.id,
                    user=user,
                    build=lambda user=user: self.templates.re_engagement(user.name, dashboard_url),
                )
                if attempted and delay > 0:
                    self.sleep(delay)

        return self._execute(JobName.RE_ENGAGEMENT, body)

    def send_collaboration_request_reminders(self) -> JobRunResult:
        """Remind receivers of collaboration requests they have not answered."""

        def body(result: JobRunResult, now: datetime) -> None:
            cutoff = window_start(now, self.cohorts.seconds("collaboration_pending_age"))

            with self.session_scope() as session:
                requests = CollaborationRepository(session).list_pending_older_than(cutoff)

            result.total = len(requests)
            request_url = self.links.dashboard_collaborations()

            for request in requests:
                if not request.sender.name:
                    self._log_skip(request.receiver, "missing_sender_name")
                    continue

                self._dispatch(
                    result,
                    now,
                    key=request.id,
                    user=request.receiver,
                    build=lambda request=request: self.templates.collaboration_request_reminder(
                        request.receiver.name, request.sender.name, request.title, request_url
                    ),
                )

        return self._execute(JobName.COLLABORATION_REMINDERS, body)

    # ------------------------------------------------------------------
    # Shared run machinery
    # ------------------------------------------------------------------

    def _execute(
        self, job_name: JobName, body: Callable[[JobRunResult, datetime], None]
    ) -> JobRunResult:
        now = self.clock()
        result = JobRunResult(job_name=job_name.value, run_started_at=now)

        with log_context(job=job_name.value, run_id=uuid4().hex[:12]):
            logger.info(
                f"Job {job_name.value} started",
                extra={"event": "job.run.started"},
            )

            try:
                body(result, now)
            except Exception as e:
                result.success = False
                result.run_finished_at = utc_now()
                logger.error(
                    f"Job {job_name.value} failed: {e}",
                    exc_info=True,
                    extra={
                        "event": "job.run.failed",
                        "error_type": type(e).__name__,
                        "sent": result.sent,
                    },
                )
                raise

            result.run_finished_at = utc_now()
            logger.info(
                f"Job {job_name.value} completed. Sent {result.sent} emails.",
                extra={
                    "event": "job.run.completed",
                    "sent": result.sent,
                    "total": result.total,
                    "delivered": result.delivered,
                    "failed": len(result.failures),
                    "suppressed": result.suppressed,
                    "ledger_failures": result.ledger_failures,
                    "duration_ms": int(result.duration_seconds * 1000),
                },
            )
            return result

    def _dispatch(
        self,
        result: JobRunResult,
        now: datetime,
        key: str,
        user: User,
        build: Callable[[], RenderedEmail],
    ) -> bool:
        """Send one job email to ``user`` unless consent, contact data or the resend window say no.

        Returns:
            True if a send was attempted
        """
        if not user.can_be_emailed():
            self._log_skip(user, "not_emailable")
            return False

        job_name = result.job_name
        resend_after = self.app_config.jobs.get(JobName(job_name)).resend_after_seconds

        if resend_after is not None and self._sent_within(job_name, key, now, resend_after):
            result.suppressed += 1
            logger.info(
                f"Skipping user {user.id}: already sent within resend window",
                extra={"event": "job.recipient.suppressed", "user_id": user.id, "key": key},
            )
            return False

        try:
            email = build()
        except NotificationTemplateError as e:
            outcome = DeliveryResult(recipient=user.email, status=FAILED, error=str(e))
        else:
            outcome = self.notifications.deliver(user, email)
        result.record(outcome)

        if outcome.is_failure():
            logger.warning(
                f"Failed to send {job_name} email to {user.email}: {outcome.error}",
                extra={"event": "job.recipient.failed", "user_id": user.id},
            )
        elif resend_after is not None:
            self._record_delivery(result, job_name, key, user, now)

        return True

    def _record_delivery(
        self, result: JobRunResult, job_name: str, key: str, user: User, now: datetime
    ) -> None:
        # The email is already out; a ledger failure only risks a repeat next run.
        try:
            with self.session_scope() as session:
                DeliveryLogRepository(session).record(job_name, key, now)
        except (PersistenceError, SQLAlchemyError) as e:
            result.ledger_failures += 1
            logger.error(
                f"Failed to record {job_name} delivery for user {user.id}: {e}",
                extra={"event": "job.recipient.ledger_failed", "user_id": user.id, "key": key},
            )

    def _sent_within(self, job_name: str, key: str, now: datetime, seconds: int) -> bool:
        with self.session_scope() as session:
            return DeliveryLogRepository(session).was_sent_since(
                job_name, key, window_start(now, seconds)
            )

    @staticmethod
    def _log_skip(user: User, reason: str) -> None:
        logger.debug(
            f"Skipping user {user.id}: {reason}",
            extra={"event": "job.recipient.skipped", "reason": reason, "user_id": user.id},
        )
