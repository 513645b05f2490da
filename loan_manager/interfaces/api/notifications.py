"""Notifications API routes — loan status emails sent on behalf of a manager."""

from typing import Optional

from fastapi import APIRouter, Depends

from loan_manager.application.services.mail_service import Mailer, send_loan_status_email
from loan_manager.config import Settings
from loan_manager.domain.schemas.auth import MessageResponse
from loan_manager.domain.schemas.notification import LoanStatusNotification
from loan_manager.interfaces.deps import get_app_settings, get_mailer

router = APIRouter(tags=["Notifications"])


@router.post("/notify-loan-status", response_model=MessageResponse)
async def notify_loan_status(
    body: LoanStatusNotification,
    mailer: Optional[Mailer] = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
):
    await send_loan_status_email(mailer, body, settings.APP_NAME)
    return MessageResponse(message="Notification email sent")
