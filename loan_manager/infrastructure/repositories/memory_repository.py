"""In-memory record store. Nothing survives a restart."""

from typing import Iterable, List, Optional

from loan_manager.domain.models.user import User
from loan_manager.infrastructure.repositories.base_repository import DocumentUserRepository


class InMemoryUserRepository(DocumentUserRepository):
    def __init__(self, users: Optional[Iterable[User]] = None):
        self._records = [u.to_record() for u in users or []]
        self.persist_count = 0

    def load(self) -> List[User]:
        # Hand out copies so callers mutate them the same way they would a decoded file
        return [User.model_validate(record) for record in self._records]

    def persist(self, users: List[User]) -> None:
        self._records = [u.to_record() for u in users]
        self.persist_count += 1
