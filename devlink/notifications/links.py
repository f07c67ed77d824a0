"""Absolute links into the DevLink web app, rooted at NEXTAUTH_URL."""

from urllib.parse import quote

from devlink.domain.models import ContentItem, ContentType


class LinkBuilder:
    def __init__(self, base_url: str):
        self.base_url = base_url.rstrip("/")

    def _url(self, path: str) -> str:
        return f"{self.base_url}{path}"

    def dashboard(self) -> str:
        return self._url("/dashboard")

    def dashboard_profile(self) -> str:
        return self._url("/dashboard/profile")

    def dashboard_testimonials(self) -> str:
        return self._url("/dashboard/testimonials")

    def dashboard_collaborations(self) -> str:
        return self._url("/dashboard/collaborations")

    def profile(self, username: str) -> str:
        return self._url(f"/{quote(username)}")

    def content(self, item: ContentItem) -> str:
        """Public page of a project or blog post.

        Falls back to the dashboard when the owner has no username yet.
        """
        username = item.owner.username
        if not username:
            return self.dashboard()

        if item.content_type is ContentType.PROJECT:
            return self._url(f"/{quote(username)}/projects/{quote(item.id)}")

        return self._url(f"/{quote(username)}/blog/{quote(item.slug or item.id)}")
