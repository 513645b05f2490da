"""Users API routes — list and fetch account records."""

from fastapi import APIRouter, Depends, status

from loan_manager.application.services.user_service import get_user, list_users, serialize_user
from loan_manager.config import Settings
from loan_manager.core.exceptions import UserNotFoundError
from loan_manager.domain.repositories.user_repository import UserRepository
from loan_manager.interfaces.deps import get_app_settings, get_user_repository

router = APIRouter(prefix="/users", tags=["Users"])


@router.get("")
def read_users(
    repo: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_app_settings),
):
    return [serialize_user(u, redact_password=settings.REDACT_PASSWORDS) for u in list_users(repo)]


@router.get("/{user_id}")
def read_user(
    user_id: str,
    repo: UserRepository = Depends(get_user_repository),
    settings: Settings = Depends(get_app_settings),
):
    user = get_user(repo, user_id)
    if user is None:
        raise UserNotFoundError(status_code=status.HTTP_404_NOT_FOUND)
    return serialize_user(user, redact_password=settings.REDACT_PASSWORDS)
