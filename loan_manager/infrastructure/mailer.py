"""SMTP mail transport.

Sends HTML email through aiosmtplib. Transient failures are retried with a
linear backoff before giving up with `MailDeliveryError`; permanent refusals
(rejected recipients, 5xx replies) fail on the first attempt.
"""

import asyncio
from email.message import EmailMessage
from typing import Optional

import aiosmtplib
import structlog

from loan_manager.config import Settings
from loan_manager.core.exceptions import MailDeliveryError

logger = structlog.get_logger(__name__)


def header_value(value) -> str:
    """Collapse a value onto one line so it can't inject or break headers."""
    return " ".join(str(value).split())


def is_permanent_failure(error: Exception) -> bool:
    if isinstance(error, aiosmtplib.SMTPRecipientsRefused):
        return True
    return isinstance(error, aiosmtplib.SMTPResponseException) and error.code >= 500


class SmtpMailer:
    """Client for the configured SMTP relay."""

    def __init__(self, settings: Settings):
        self.host = settings.SMTP_HOST
        self.port = settings.SMTP_PORT
        self.secure = settings.SMTP_SECURE
        self.username = settings.SMTP_USER
        self.password = settings.SMTP_PASS
        self.sender = settings.mail_sender
        self.max_retries = max(1, settings.SMTP_MAX_RETRIES)
        self.retry_delay = settings.SMTP_RETRY_DELAY
        self.timeout = 30

    def build_message(self, to: str, subject: str, html: str) -> EmailMessage:
        message = EmailMessage()
        message["From"] = header_value(self.sender)
        message["To"] = header_value(to)
        message["Subject"] = header_value(subject)
        message.set_content("This message requires an HTML-capable email client.")
        message.add_alternative(html, subtype="html")
        return message

    async def send(self, to: str, subject: str, html: str) -> None:
        """
        Send an HTML email.

        Args:
            to: Recipient address
            subject: Subject line
            html: HTML body

        Retries up to max_retries times, waiting retry_delay * attempt between tries.
        """
        try:
            message = self.build_message(to, subject, html)
        except ValueError as e:
            # e.g. an address the email package refuses to parse
            logger.warning("Could not build email", to=to, error=str(e))
            raise MailDeliveryError(details={"to": to, "error": str(e)}) from e

        last_error = None
        for attempt in range(1, self.max_retries + 1):
            try:
                await aiosmtplib.send(
                    message,
                    hostname=self.host,
                    port=self.port,
                    username=self.username,
                    password=self.password,
                    use_tls=self.secure,
                    start_tls=False if self.secure else None,  # None upgrades when offered
                    timeout=self.timeout,
                )
                logger.info("Email sent", to=to, subject=message["Subject"], attempt=attempt)
                return
            except (aiosmtplib.SMTPException, OSError) as e:
                last_error = e
                logger.warning(
                    "SMTP send failed",
                    to=to,
                    attempt=attempt,
                    max_retries=self.max_retries,
                    error=str(e),
                )
                if is_permanent_failure(e):
                    break

            if attempt < self.max_retries:
                await asyncio.sleep(self.retry_delay * attempt)

        raise MailDeliveryError(details={"to": to, "error": str(last_error)})


def build_mailer(settings: Settings) -> Optional[SmtpMailer]:
    """Return a mailer, or None when SMTP credentials are missing."""
    if not settings.smtp_configured:
        logger.warning(
            "SMTP not configured. Emails will NOT be sent. Set SMTP_USER and SMTP_PASS for email capability."
        )
        return None
    return SmtpMailer(settings)
