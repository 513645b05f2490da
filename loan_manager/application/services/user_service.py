"""User service — read access to account records."""

from typing import Any, Dict, List, Optional

from loan_manager.domain.models.user import User
from loan_manager.domain.repositories.user_repository import UserRepository


def serialize_user(user: User, redact_password: bool = False) -> Dict[str, Any]:
    record = user.to_record()
    if redact_password:
        record.pop("password", None)
    return record


def list_users(repo: UserRepository) -> List[User]:
    return repo.load()


def get_user(repo: UserRepository, user_id: str) -> Optional[User]:
    """Look up by the id exactly as it appears in the URL; "01" or "²" match nothing."""
    return repo.find_by_id(user_id)
