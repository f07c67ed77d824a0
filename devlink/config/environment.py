"""Environment variable loading and eager validation."""

import os
from typing import List, Optional
from urllib.parse import urlparse

from email_validator import EmailNotValidError, validate_email

from .exceptions import ConfigurationError

DEFAULT_DATABASE_URL = "sqlite:///./data/devlink.db"
DEFAULT_SENDER_NAME = "DevLink"
VALID_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


class EnvironmentConfig:
    """Environment variable configuration holder."""

    def __init__(
        self,
        smtp_host: str,
        smtp_port: int,
        smtp_user: Optional[str],
        smtp_pass: Optional[str],
        from_email: str,
        app_base_url: str,
        smtp_sender_name: Optional[str] = None,
        log_level: Optional[str] = None,
        database_url: Optional[str] = None,
    ):
        self.smtp_host = smtp_host
        self.smtp_port = smtp_port
        self.smtp_user = smtp_user
        self.smtp_pass = smtp_pass
        self.from_email = from_email
        self.app_base_url = app_base_url.rstrip("/")
        self.smtp_sender_name = smtp_sender_name or DEFAULT_SENDER_NAME
        self.log_level = log_level
        self.database_url = database_url or DEFAULT_DATABASE_URL


def load_environment_config() -> EnvironmentConfig:
    """
    Load and validate environment variables.

    Every variable is checked before anything is returned, so a misconfigured
    deployment fails at startup instead of producing broken links or opaque
    transport errors on the first send.

    Required environment variables:
    - SMTP_HOST: SMTP server hostname
    - SMTP_PORT: SMTP server port (1-65535)
    - FROM_EMAIL: Sender address for all outgoing mail
    - NEXTAUTH_URL: Public base URL of the DevLink app, used for links in emails

    Optional environment variables:
    - SMTP_USER / SMTP_PASS: SMTP credentials (both or neither)
    - SMTP_SENDER_NAME: Display name for the sender (default: DevLink)
    - DATABASE_URL: SQLAlchemy database URL (default: sqlite:///./data/devlink.db)
    - LOG_LEVEL: Override log level

    Returns:
        EnvironmentConfig with validated values

    Raises:
        ConfigurationError: If required variables are missing or invalid
    """
    errors: List[str] = []

    smtp_host = os.getenv("SMTP_HOST")
    smtp_port_str = os.getenv("SMTP_PORT")
    from_email = os.getenv("FROM_EMAIL")
    app_base_url = os.getenv("NEXTAUTH_URL")

    smtp_user = os.getenv("SMTP_USER") or None
    smtp_pass = os.getenv("SMTP_PASS") or None
    smtp_sender_name = os.getenv("SMTP_SENDER_NAME")
    log_level = os.getenv("LOG_LEVEL")
    database_url = os.getenv("DATABASE_URL")

    for name, value in (
        ("SMTP_HOST", smtp_host),
        ("SMTP_PORT", smtp_port_str),
        ("FROM_EMAIL", from_email),
        ("NEXTAUTH_URL", app_base_url),
    ):
        if not value:
            errors.append(f"Missing required environment variable: {name}")

    smtp_port = None
    if smtp_port_str:
        try:
            smtp_port = int(smtp_port_str)
            if smtp_port < 1 or smtp_port > 65535:
                errors.append(
                    f"Invalid SMTP_PORT: {smtp_port}. Must be between 1 and 65535."
                )
        except ValueError:
            errors.append(
                f"Invalid SMTP_PORT: '{smtp_port_str}'. Must be a valid integer."
            )

    if from_email:
        try:
            from_email = validate_email(from_email, check_deliverability=False).normalized
        except EmailNotValidError as e:
            errors.append(f"Invalid FROM_EMAIL: '{from_email}' - {e}")

    if app_base_url:
        parsed = urlparse(app_base_url)
        if parsed.scheme not in ("http", "https") or not parsed.netloc:
            errors.append(
                f"Invalid NEXTAUTH_URL: '{app_base_url}'. Must be an absolute http(s) URL."
            )

    if log_level and log_level.upper() not in VALID_LOG_LEVELS:
        errors.append(
            f"Invalid LOG_LEVEL: '{log_level}'. Must be one of: {', '.join(VALID_LOG_LEVELS)}"
        )

    if smtp_user and not smtp_pass:
        errors.append(
            "SMTP_USER is set but SMTP_PASS is not. Both must be set for authentication."
        )
    elif smtp_pass and not smtp_user:
        errors.append(
            "SMTP_PASS is set but SMTP_USER is not. Both must be set for authentication."
        )

    if errors:
        raise ConfigurationError(
            "Environment variable validation failed",
            errors=errors,
            suggestions=[
                "Copy .env.example to .env and fill in your settings",
                "Ensure all required environment variables are set",
                "NEXTAUTH_URL must match the public URL of the DevLink app",
            ],
        )

    return EnvironmentConfig(
        smtp_host=smtp_host,
        smtp_port=smtp_port,
        smtp_user=smtp_user,
        smtp_pass=smtp_pass,
        from_email=from_email,
        app_base_url=app_base_url,
        smtp_sender_name=smtp_sender_name,
        log_level=log_level.upper() if log_level else None,
        database_url=database_url,
    )
