"""Test helper utilities for DevLink notifier tests."""

from .fake_mailer import RecordingMailer, SentEmail
from .factories import (
    add_blog_post,
    add_collaboration_request,
    add_comment,
    add_follow,
    add_like,
    add_message,
    add_profile_view,
    add_project,
    add_testimonial,
    add_user,
)
from .seed import load_fixture_rows, seed_from_fixture

__all__ = [
    "RecordingMailer",
    "SentEmail",
    "add_blog_post",
    "add_collaboration_request",
    "add_comment",
    "add_follow",
    "add_like",
    "add_message",
    "add_profile_view",
    "add_project",
    "add_testimonial",
    "add_user",
    "load_fixture_rows",
    "seed_from_fixture",
]
