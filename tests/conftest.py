"""Shared fixtures: in-memory database, test environment and a recording mailer."""

import pytest

from devlink.config.environment import EnvironmentConfig
from devlink.config.models import AppConfig
from devlink.jobs import ScheduledJobs
from devlink.logging.context import clear_log_context
from devlink.notifications import LinkBuilder, NotificationService
from devlink.persistence import close_database, init_database

from tests.helpers import RecordingMailer
from tests.helpers.factories import BASE_URL, FIXED_NOW

REQUIRED_ENV = {
    "SMTP_HOST": "smtp.example.com",
    "SMTP_PORT": "587",
    "FROM_EMAIL": "noreply@devlink.example.com",
    "NEXTAUTH_URL": BASE_URL,
}


@pytest.fixture
def database():
    """Fresh in-memory database with the full mapped schema."""
    init_database("sqlite:///:memory:")
    yield
    close_database()


@pytest.fixture
def env_config():
    return EnvironmentConfig(
        smtp_host="smtp.example.com",
        smtp_port=587,
        smtp_user="mailer",
        smtp_pass="secret",
        from_email="noreply@devlink.example.com",
        app_base_url=BASE_URL,
    )


@pytest.fixture
def required_env(monkeypatch):
    """Set the required environment variables and clear the optional ones."""
    for key, value in REQUIRED_ENV.items():
        monkeypatch.setenv(key, value)
    for key in ("SMTP_USER", "SMTP_PASS", "SMTP_SENDER_NAME", "DATABASE_URL", "LOG_LEVEL"):
        monkeypatch.delenv(key, raising=False)
    return REQUIRED_ENV


@pytest.fixture
def mailer():
    return RecordingMailer()


@pytest.fixture
def notification_service(database, mailer):
    return NotificationService(mailer=mailer, links=LinkBuilder(BASE_URL), bulk_max_workers=4)


@pytest.fixture
def sleeps():
    return []


@pytest.fixture
def app_config():
    return AppConfig()


@pytest.fixture
def scheduled_jobs(notification_service, app_config, sleeps):
    return ScheduledJobs(
        notification_service,
        app_config,
        clock=lambda: FIXED_NOW,
        sleep=sleeps.append,
    )


@pytest.fixture(autouse=True)
def clean_log_context():
    clear_log_context()
    yield
    clear_log_context()
