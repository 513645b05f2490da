"""
Shared implementation for record stores that keep the whole collection as one document.
"""

from abc import ABC, abstractmethod
from typing import List, Optional, Union

from loan_manager.domain.models.user import User
from loan_manager.domain.repositories.user_repository import find_user_by_email, find_user_by_id


class DocumentUserRepository(ABC):
    """Lookups and appends expressed through `load` / `persist`.

    Subclasses only decide where the document lives.
    """

    @abstractmethod
    def load(self) -> List[User]:
        ...

    @abstractmethod
    def persist(self, users: List[User]) -> None:
        ...

    def find_by_email(self, email: str) -> Optional[User]:
        return find_user_by_email(self.load(), email)

    def find_by_id(self, user_id: Union[int, str]) -> Optional[User]:
        return find_user_by_id(self.load(), user_id)

    def add(self, user: User) -> User:
        users = self.load()
        users.append(user)
        self.persist(users)
        return user
