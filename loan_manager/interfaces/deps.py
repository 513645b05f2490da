"""
API Dependencies.

Collaborators are built once by `create_app` and kept on `app.state`;
these providers hand them to the routers.
"""

from typing import Optional

from fastapi import Request

from loan_manager.application.services.auth_service import AuthService
from loan_manager.application.services.mail_service import Mailer
from loan_manager.config import Settings
from loan_manager.domain.repositories.user_repository import UserRepository


def get_app_settings(request: Request) -> Settings:
    return request.app.state.settings


def get_user_repository(request: Request) -> UserRepository:
    return request.app.state.user_repository


def get_auth_service(request: Request) -> AuthService:
    return request.app.state.auth_service


def get_mailer(request: Request) -> Optional[Mailer]:
    return request.app.state.mailer
