"""
JSON file record store — `{"users": [...]}` in a single file.

Every persist rewrites the whole file. Concurrent writers are last-writer-wins.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import List, Union

import structlog
from pydantic import ValidationError as PydanticValidationError

from loan_manager.core.exceptions import StorageError
from loan_manager.domain.models.user import User
from loan_manager.infrastructure.repositories.base_repository import DocumentUserRepository

logger = structlog.get_logger(__name__)


class JsonFileUserRepository(DocumentUserRepository):
    """User repository backed by a JSON document on disk."""

    def __init__(self, path: Union[str, Path]):
        self.path = Path(path)

    def load(self) -> List[User]:
        if not self.path.exists():
            logger.info("Initialising empty user store", path=str(self.path))
            self.persist([])

        try:
            data = json.loads(self.path.read_text(encoding="utf-8"))
            return [User.model_validate(record) for record in data.get("users", [])]
        except OSError as e:
            raise StorageError("Failed to read user store", {"path": str(self.path)}) from e
        except (ValueError, AttributeError, PydanticValidationError) as e:
            raise StorageError("User store is corrupted", {"path": str(self.path)}) from e

    def persist(self, users: List[User]) -> None:
        payload = json.dumps({"users": [u.to_record() for u in users]}, indent=2, ensure_ascii=False)
        tmp_name = None
        try:
            self.path.parent.mkdir(parents=True, exist_ok=True)
            # Write beside the target and rename so readers never see a half-written file
            fd, tmp_name = tempfile.mkstemp(dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp")
            with os.fdopen(fd, "w", encoding="utf-8") as fh:
                fh.write(payload)
            os.replace(tmp_name, self.path)
        except OSError as e:
            if tmp_name and os.path.exists(tmp_name):
                os.unlink(tmp_name)
            raise StorageError("Failed to write user store", {"path": str(self.path)}) from e
