"""Seed the test database from a YAML community fixture.

Timestamps in fixtures are relative ("days_ago") so a fixture stays valid
against any clock passed to seed_from_fixture().
"""

from datetime import datetime, timedelta
from pathlib import Path
from typing import Any, Dict

import yaml
from sqlalchemy.orm import Session

from . import factories


def load_fixture_rows(fixture_path: Path) -> Dict[str, Any]:
    """Load a community fixture.

    Raises:
        FileNotFoundError: If fixture file doesn't exist
        yaml.YAMLError: If YAML parsing fails
    """
    if not fixture_path.exists():
        raise FileNotFoundError(f"Fixture file not found: {fixture_path}")

    with open(fixture_path, "r", encoding="utf-8") as f:
        return yaml.safe_load(f) or {}


def seed_from_fixture(session: Session, fixture_path: Path, now: datetime) -> Dict[str, Any]:
    """Insert every row of the fixture and return the created rows keyed by alias."""
    data = load_fixture_rows(fixture_path)
    rows: Dict[str, Any] = {}

    def ago(entry: Dict[str, Any], key: str = "days_ago") -> datetime:
        return now - timedelta(days=entry.get(key, 0))

    for alias, user in data.get("users", {}).items():
        rows[alias] = factories.add_user(
            session,
            user_id=alias,
            name=user.get("name"),
            email=user.get("email", factories.AUTO),
            username=user.get("username", alias),
            role=user.get("role", "developer"),
            email_notifications=user.get("email_notifications", True),
            bio=user.get("bio"),
            skills=user.get("skills", []),
            github=user.get("github"),
            location=user.get("location"),
            created_at=ago(user, "created_days_ago"),
            updated_at=ago(user, "updated_days_ago"),
        )

    for alias, project in data.get("projects", {}).items():
        rows[alias] = factories.add_project(
            session, rows[project["owner"]], title=project["title"], created_at=ago(project)
        )

    for alias, post in data.get("posts", {}).items():
        rows[alias] = factories.add_blog_post(
            session,
            rows[post["owner"]],
            title=post["title"],
            slug=post["slug"],
            created_at=ago(post),
        )

    for follow in data.get("follows", []):
        factories.add_follow(
            session, rows[follow["follower"]], rows[follow["following"]], created_at=ago(follow)
        )

    for view in data.get("profile_views", []):
        factories.add_profile_view(session, rows[view["profile"]], created_at=ago(view))

    for like in data.get("likes", []):
        factories.add_like(
            session,
            rows[like["user"]],
            project=rows.get(like.get("project")),
            post=rows.get(like.get("post")),
            created_at=ago(like),
        )

    for comment in data.get("comments", []):
        factories.add_comment(
            session,
            rows[comment["user"]],
            project=rows.get(comment.get("project")),
            post=rows.get(comment.get("post")),
            created_at=ago(comment),
        )

    for message in data.get("messages", []):
        factories.add_message(
            session, rows[message["sender"]], rows[message["receiver"]], created_at=ago(message)
        )

    for testimonial in data.get("testimonials", []):
        factories.add_testimonial(
            session,
            rows[testimonial["author"]],
            rows[testimonial["target"]],
            approved=testimonial.get("approved", False),
            created_at=ago(testimonial),
        )

    for request in data.get("collaboration_requests", []):
        factories.add_collaboration_request(
            session,
            rows[request["sender"]],
            rows[request["receiver"]],
            title=request["title"],
            status=request.get("status", "pending"),
            created_at=ago(request),
        )

    return rows
