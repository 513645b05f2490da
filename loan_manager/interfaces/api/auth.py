"""Auth API routes — register and login."""

from typing import Optional

from fastapi import APIRouter, BackgroundTasks, Depends

from loan_manager.application.services.auth_service import AuthService
from loan_manager.application.services.mail_service import Mailer, send_welcome_email
from loan_manager.application.services.user_service import serialize_user
from loan_manager.config import Settings
from loan_manager.domain.schemas.auth import LoginRequest, LoginResponse, MessageResponse, UserCreate
from loan_manager.interfaces.deps import get_app_settings, get_auth_service, get_mailer

router = APIRouter(tags=["Auth"])


@router.post("/users", response_model=MessageResponse)
async def register(
    body: UserCreate,
    background_tasks: BackgroundTasks,
    auth: AuthService = Depends(get_auth_service),
    mailer: Optional[Mailer] = Depends(get_mailer),
    settings: Settings = Depends(get_app_settings),
):
    user = await auth.register(name=body.name, email=body.email, password=body.password, phone=body.phone)

    # Delivered after the response; its outcome never affects registration
    background_tasks.add_task(send_welcome_email, mailer, user, settings.APP_NAME)

    return MessageResponse(message="Registration successful! Please login.")


@router.post("/login", response_model=LoginResponse)
async def login(
    body: LoginRequest,
    auth: AuthService = Depends(get_auth_service),
    settings: Settings = Depends(get_app_settings),
):
    result = await auth.authenticate(body.email, body.password)
    return LoginResponse(
        user=serialize_user(result.user, redact_password=settings.REDACT_PASSWORDS),
        message="Login successful!",
    )
