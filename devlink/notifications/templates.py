"""Template rendering for notification emails using Jinja2.

Each email has a ``<name>.subject.j2`` and a ``<name>.html.j2`` file in the
devlink.notifications.email_templates package. HTML bodies are autoescaped;
subjects are plain text collapsed onto one line.

Templates are pure: the same arguments always produce the same output, and
missing optional values drop their line instead of failing.
"""

import logging
from typing import Any, Dict, Iterable, Mapping, Optional

from jinja2 import Environment, PackageLoader, TemplateError, select_autoescape

from .models import NotificationTemplateError, RenderedEmail

logger = logging.getLogger(__name__)

TEMPLATE_NAMES = (
    "new_follower",
    "new_like",
    "new_comment",
    "new_review",
    "new_content",
    "weekly_digest",
    "pending_testimonials_reminder",
    "incomplete_profile_reminder",
    "milestone_achieved",
    "re_engagement",
    "collaboration_request_reminder",
    "test_email",
)


class TemplateRenderer:
    """Renders subject and HTML templates by name.

    Templates are cached by the Jinja2 environment for reuse across sends.
    """

    def __init__(self, template_dir: str = "email_templates"):
        """Initialize template renderer with Jinja2 environment.

        Args:
            template_dir: Directory name within the devlink.notifications package
        """
        self.env = Environment(
            loader=PackageLoader("devlink.notifications", template_dir),
            autoescape=select_autoescape(enabled_extensions=("html.j2",), default=False),
            trim_blocks=True,
            lstrip_blocks=True,
        )

        logger.debug(f"Initialized TemplateRenderer with templates from {template_dir}")

    def render(self, name: str, context: Mapping[str, Any]) -> RenderedEmail:
        """Render the subject and body of one template.

        Args:
            name: Template name (one of TEMPLATE_NAMES)
            context: Template variables

        Returns:
            RenderedEmail with a single-line subject

        Raises:
            NotificationTemplateError: If the template is unknown or rendering fails
        """
        if name not in TEMPLATE_NAMES:
            raise NotificationTemplateError(f"Unknown email template: {name}")

        try:
            subject_template = self.env.get_template(f"{name}.subject.j2")
            html_template = self.env.get_template(f"{name}.html.j2")

            subject = " ".join(subject_template.render(context).split())
            html = html_template.render(context)

            logger.debug(f"Rendered email template {name}")

            return RenderedEmail(subject=subject, html=html)

        except TemplateError as e:
            error_msg = f"Template rendering failed for {name}: {e}"
            logger.error(error_msg, exc_info=True)
            raise NotificationTemplateError(error_msg) from e


class EmailTemplates:
    """One method per notification email.

    Arguments are plain values (names, titles, urls, counts) so callers never
    hand whole entities to a template.

    Example:
        >>> templates = EmailTemplates()
        >>> templates.new_follower("Ada", "https://devlink.dev/ada").subject
        'Ada started following you on DevLink'
    """

    def __init__(self, renderer: Optional[TemplateRenderer] = None):
        self.renderer = renderer or TemplateRenderer()

    def new_follower(self, follower_name: str, profile_url: str) -> RenderedEmail:
        return self.renderer.render(
            "new_follower", {"follower_name": follower_name, "profile_url": profile_url}
        )

    def new_like(
        self, liker_name: str, item_title: str, item_url: str, item_label: Optional[str] = None
    ) -> RenderedEmail:
        return self.renderer.render(
            "new_like",
            {
                "liker_name": liker_name,
                "item_title": item_title,
                "item_url": item_url,
                "item_label": item_label,
            },
        )

    def new_comment(
        self,
        commenter_name: str,
        item_title: str,
        comment: Optional[str],
        item_url: str,
        item_label: Optional[str] = None,
    ) -> RenderedEmail:
        return self.renderer.render(
            "new_comment",
            {
                "commenter_name": commenter_name,
                "item_title": item_title,
                "comment": comment,
                "item_url": item_url,
                "item_label": item_label,
            },
        )

    def new_review(
        self, reviewer_name: str, rating: int, comment: Optional[str], profile_url: str
    ) -> RenderedEmail:
        """Rating is clamped to 1..5 stars."""
        return self.renderer.render(
            "new_review",
            {
                "reviewer_name": reviewer_name,
                "rating": max(1, min(5, int(rating))),
                "comment": comment,
                "profile_url": profile_url,
            },
        )

    def new_content(
        self,
        author_name: str,
        item_label: str,
        item_title: str,
        item_url: str,
        recipient_name: Optional[str] = None,
    ) -> RenderedEmail:
        return self.renderer.render(
            "new_content",
            {
                "author_name": author_name,
                "item_label": item_label,
                "item_title": item_title,
                "item_url": item_url,
                "recipient_name": recipient_name,
            },
        )

    def weekly_digest(
        self,
        user_name: str,
        stats: Mapping[str, int],
        dashboard_url: str,
        window_label: str = "7 days",
    ) -> RenderedEmail:
        """Stats keys: new_followers, profile_views, likes, comments. Missing keys show 0.

        ``window_label`` names the period the counts cover, e.g. "14 days".
        """
        return self.renderer.render(
            "weekly_digest",
            {
                "user_name": user_name,
                "stats": dict(stats),
                "dashboard_url": dashboard_url,
                "window_label": window_label,
            },
        )

    def pending_testimonials_reminder(self, count: int, testimonials_url: str) -> RenderedEmail:
        return self.renderer.render(
            "pending_testimonials_reminder",
            {"count": count, "testimonials_url": testimonials_url},
        )

    def incomplete_profile_reminder(
        self, user_name: str, missing_items: Iterable[str], profile_url: str
    ) -> RenderedEmail:
        return self.renderer.render(
            "incomplete_profile_reminder",
            {
                "user_name": user_name,
                "missing_items": list(missing_items),
                "profile_url": profile_url,
            },
        )

    def milestone_achieved(
        self, user_name: Optional[str], metric_label: str, count: int, profile_url: str
    ) -> RenderedEmail:
        return self.renderer.render(
            "milestone_achieved",
            {
                "user_name": user_name,
                "metric_label": metric_label,
                "count": count,
                "profile_url": profile_url,
            },
        )

    def re_engagement(self, user_name: Optional[str], dashboard_url: str) -> RenderedEmail:
        return self.renderer.render(
            "re_engagement", {"user_name": user_name, "dashboard_url": dashboard_url}
        )

    def collaboration_request_reminder(
        self,
        receiver_name: str,
        sender_name: str,
        request_title: Optional[str],
        request_url: str,
    ) -> RenderedEmail:
        return self.renderer.render(
            "collaboration_request_reminder",
            {
                "receiver_name": receiver_name,
                "sender_name": sender_name,
                "request_title": request_title,
                "request_url": request_url,
            },
        )

    def test_email(self, app_url: str, sent_at: Optional[str] = None) -> RenderedEmail:
        context: Dict[str, Any] = {"app_url": app_url, "sent_at": sent_at}
        return self.renderer.render("test_email", context)
