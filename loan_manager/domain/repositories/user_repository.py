"""
User Repository Interface.
Defines the contract every record store backend implements.

Every `persist` overwrites the whole collection. Two writers that interleave
load -> modify -> persist will lose the first writer's changes (last writer
wins); callers that mutate records must serialise that sequence themselves.
"""

from typing import Iterable, List, Optional, Protocol, Union

from loan_manager.domain.models.user import User


class UserRepository(Protocol):
    """Interface for user record storage."""

    def load(self) -> List[User]:
        """Read the full collection, initialising an empty one if absent."""
        ...

    def find_by_email(self, email: str) -> Optional[User]:
        """Case-insensitive exact match on email."""
        ...

    def find_by_id(self, user_id: Union[int, str]) -> Optional[User]:
        """Get a single record whose id reads exactly as `user_id` (so "01" never matches 1)."""
        ...

    def add(self, user: User) -> User:
        """Append a record and persist the collection."""
        ...

    def persist(self, users: List[User]) -> None:
        """Overwrite the backing medium with the full collection."""
        ...


def next_user_id(users: Iterable[User]) -> int:
    """max(existing ids, default 0) + 1. Ids are never reused."""
    # Legacy ids that are not integers (e.g. "7") count as 0
    ids = [u.id if isinstance(u.id, int) and not isinstance(u.id, bool) else 0 for u in users]
    return max(ids, default=0) + 1


def find_user_by_email(users: Iterable[User], email: Optional[str]) -> Optional[User]:
    target = (email or "").lower()
    for user in users:
        if user.normalized_email == target:
            return user
    return None


def find_user_by_id(users: Iterable[User], user_id: Union[int, str]) -> Optional[User]:
    target = str(user_id)
    for user in users:
        if user.id is not None and str(user.id) == target:
            return user
    return None
