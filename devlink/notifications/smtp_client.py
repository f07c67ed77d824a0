"""SMTP client wrapper for email delivery.

A thin wrapper around smtplib with TLS/SSL negotiation, optional
authentication and connection cleanup. One connection per message.
"""

import logging
import smtplib
import ssl
from email.headerregistry import Address
from email.message import EmailMessage
from typing import Callable, Optional

from email_validator import EmailNotValidError, validate_email

from devlink.config.environment import EnvironmentConfig

from .models import EmailDeliveryError, InvalidRecipientError

logger = logging.getLogger(__name__)

IMPLICIT_TLS_PORT = 465


class SMTPClient:
    """Wrapper around smtplib for sending email messages.

    The smtplib constructors are injectable so tests never open a socket.
    """

    def __init__(
        self,
        smtp_factory: Optional[Callable] = None,
        smtp_ssl_factory: Optional[Callable] = None,
        timeout: float = 30.0,
    ):
        """Initialize SMTP client with optional factory injection.

        Args:
            smtp_factory: Factory for plain/STARTTLS connections (defaults to smtplib.SMTP)
            smtp_ssl_factory: Factory for implicit TLS connections (defaults to smtplib.SMTP_SSL)
            timeout: Socket timeout in seconds for each connection
        """
        self.smtp_factory = smtp_factory or smtplib.SMTP
        self.smtp_ssl_factory = smtp_ssl_factory or smtplib.SMTP_SSL
        self.timeout = timeout

    def send(
        self,
        message: EmailMessage,
        env_config: EnvironmentConfig,
        use_tls: bool = True,
    ) -> None:
        """Send an email message via SMTP.

        Port 465 uses implicit TLS; any other port connects in plain text and
        upgrades with STARTTLS when ``use_tls`` is set. Logs in only when both
        credentials are configured. The connection is always closed.

        Args:
            message: Fully constructed EmailMessage to send
            env_config: Environment configuration with SMTP settings
            use_tls: Whether to upgrade plain connections with STARTTLS

        Raises:
            EmailDeliveryError: If message delivery fails
        """
        smtp = None
        try:
            if env_config.smtp_port == IMPLICIT_TLS_PORT:
                logger.debug(
                    f"Connecting to {env_config.smtp_host}:{env_config.smtp_port} with implicit TLS"
                )
                context = ssl.create_default_context()
                smtp = self.smtp_ssl_factory(
                    env_config.smtp_host,
                    env_config.smtp_port,
                    context=context,
                    timeout=self.timeout,
                )
            else:
                logger.debug(f"Connecting to {env_config.smtp_host}:{env_config.smtp_port}")
                smtp = self.smtp_factory(
                    env_config.smtp_host, env_config.smtp_port, timeout=self.timeout
                )

                if use_tls:
                    logger.debug("Upgrading connection with STARTTLS")
                    context = ssl.create_default_context()
                    smtp.starttls(context=context)

            if env_config.smtp_user and env_config.smtp_pass:
                logger.debug(f"Authenticating as {env_config.smtp_user}")
                smtp.login(env_config.smtp_user, env_config.smtp_pass)
            else:
                logger.debug("No authentication credentials provided, proceeding without auth")

            smtp.send_message(message)
            logger.debug(f"Message sent successfully to {message['To']}")

        except smtplib.SMTPException as e:
            error_msg = f"SMTP error during message delivery: {e}"
            logger.error(error_msg)
            raise EmailDeliveryError(error_msg) from e
        except OSError as e:
            error_msg = f"Network error during SMTP connection: {e}"
            logger.error(error_msg)
            raise EmailDeliveryError(error_msg) from e
        finally:
            if smtp is not None:
                try:
                    smtp.quit()
                except (smtplib.SMTPException, OSError) as e:
                    logger.warning(f"Error closing SMTP connection: {e}")


def validate_recipient(address: str) -> str:
    """Validate one recipient address and return its normalized form.

    Raises:
        InvalidRecipientError: If the address is empty or malformed
    """
    if not address or not address.strip():
        raise InvalidRecipientError("Recipient address is empty")

    try:
        return validate_email(address.strip(), check_deliverability=False).normalized
    except EmailNotValidError as e:
        raise InvalidRecipientError(f"Invalid recipient address '{address}': {e}") from e


def build_sender_address(env_config: EnvironmentConfig) -> str:
    """Build the 'From' header for outgoing emails.

    Returns:
        Formatted sender address (e.g., "DevLink <noreply@devlink.dev>")
    """
    username, _, domain = env_config.from_email.rpartition("@")
    return str(
        Address(display_name=env_config.smtp_sender_name, username=username, domain=domain)
    )


def build_message(
    env_config: EnvironmentConfig, to: str, subject: str, html: str
) -> EmailMessage:
    """Assemble an HTML email with a short plain-text fallback part."""
    message = EmailMessage()
    message["Subject"] = subject
    message["From"] = build_sender_address(env_config)
    message["To"] = to

    message.set_content(
        "This message is formatted as HTML. Please view it in an HTML-capable email client."
    )
    message.add_alternative(html, subtype="html")

    return message
