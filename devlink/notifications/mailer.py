"""Single-message send path shared by jobs and dispatch helpers."""

from typing import Optional

from devlink.config.environment import EnvironmentConfig
from devlink.config.models import EmailConfig
from devlink.logging import get_logger

from .models import EmailDeliveryError, InvalidRecipientError
from .smtp_client import SMTPClient, build_message, validate_recipient

logger = get_logger(__name__, component="mailer")


class Mailer:
    """Sends one email per call through an injected SMTP client.

    A failed send is logged and re-raised; deciding whether to continue is
    the caller's job.
    """

    def __init__(
        self,
        env_config: EnvironmentConfig,
        email_config: Optional[EmailConfig] = None,
        smtp_client: Optional[SMTPClient] = None,
    ):
        self.env_config = env_config
        self.email_config = email_config or EmailConfig()
        self.smtp_client = smtp_client or SMTPClient()

        logger.info(
            "Mail transport configured",
            extra={
                "event": "mailer.configured",
                "smtp_host": env_config.smtp_host,
                "smtp_port": env_config.smtp_port,
                "use_tls": self.email_config.use_tls,
                "authenticated": bool(env_config.smtp_user and env_config.smtp_pass),
            },
        )

    def send_email(self, to: str, subject: str, html: str) -> None:
        """Send one HTML email.

        Args:
            to: Recipient address
            subject: Single-line subject
            html: HTML body

        Raises:
            InvalidRecipientError: If ``to`` is not a valid address
            EmailDeliveryError: If the transport fails
        """
        try:
            recipient = validate_recipient(to)
        except InvalidRecipientError as e:
            logger.warning(
                f"Rejected recipient {to!r}: {e}",
                extra={"event": "email.invalid_recipient", "recipient": to},
            )
            raise

        message = build_message(self.env_config, recipient, subject, html)

        try:
            self.smtp_client.send(message, self.env_config, use_tls=self.email_config.use_tls)
        except EmailDeliveryError as e:
            logger.error(
                f"Email to {recipient} failed: {e}",
                extra={"event": "email.failed", "recipient": recipient, "subject": subject},
            )
            raise

        logger.info(
            f"Email sent to {recipient}",
            extra={"event": "email.sent", "recipient": recipient, "subject": subject},
        )
