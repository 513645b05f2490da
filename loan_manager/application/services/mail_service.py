"""Mail service — transactional emails for registration and loan decisions.

Welcome emails are best effort: a missing or failing transport is logged and
never surfaces to the caller. Loan status emails are the whole point of their
request, so their failures propagate.
"""

from html import escape
from typing import Any, Optional, Protocol, Union

import structlog

from loan_manager.core.exceptions import MailTransportUnavailableError, ValidationError
from loan_manager.domain.models.user import User
from loan_manager.domain.schemas.notification import LoanStatusNotification

logger = structlog.get_logger(__name__)


class Mailer(Protocol):
    async def send(self, to: str, subject: str, html: str) -> None:
        ...


def format_welcome_email(name: Any, app_name: str) -> tuple[str, str]:
    subject = f"🎉 Welcome to {app_name}!"
    html = (
        f"<h2>Hi {escape(str(name or 'there'))},</h2>"
        f"<p>Thank you for registering with <b>{escape(app_name)}</b>.</p>"
        f"<br/><p>Regards,<br/>{escape(app_name)} Team</p>"
    )
    return subject, html


def format_loan_status_email(
    name: Any, loan_id: Union[int, str], status: str, app_name: str
) -> tuple[str, str]:
    subject = f"Loan #{loan_id} {status}"
    html = (
        f"<h2>Hi {escape(str(name or 'there'))},</h2>"
        f"<p>Your loan application <b>#{escape(str(loan_id))}</b> has been <b>{escape(status)}</b>.</p>"
        f"<br/><p>Regards,<br/>{escape(app_name)} Team</p>"
    )
    return subject, html


async def send_welcome_email(mailer: Optional[Mailer], user: User, app_name: str = "Loan App") -> bool:
    """Send the welcome email. Returns whether it was delivered."""
    if mailer is None:
        logger.info("Skipping welcome email because SMTP is not configured", user_id=user.id)
        return False

    subject, html = format_welcome_email(user.name, app_name)
    try:
        await mailer.send(user.email, subject, html)
    except Exception as e:
        logger.warning("Failed to send welcome email", user_id=user.id, error=str(e))
        return False
    return True


async def send_loan_status_email(
    mailer: Optional[Mailer], notification: LoanStatusNotification, app_name: str = "Loan App"
) -> None:
    """Notify a borrower about a loan decision.

    Raises:
        ValidationError: email, loanId or status missing.
        MailTransportUnavailableError: SMTP is not configured.
        MailDeliveryError: the SMTP server could not be reached or refused the message.
    """
    if not notification.email or notification.loan_id in (None, "") or not notification.status:
        raise ValidationError("email, loanId and status are required")

    if mailer is None:
        raise MailTransportUnavailableError()

    subject, html = format_loan_status_email(
        notification.name, notification.loan_id, notification.status, app_name
    )
    await mailer.send(notification.email, subject, html)
    logger.info("Loan status notification sent", loan_id=notification.loan_id, status=notification.status)
