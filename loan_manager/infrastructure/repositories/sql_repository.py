"""
SQLAlchemy implementation of the User Repository.

Keeps the same whole-collection semantics as the file store: `persist`
upserts every record it is given.
"""

from typing import List, Optional, Union

from sqlalchemy import Column, Integer, String, Text, func
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.orm import sessionmaker

from loan_manager.core.exceptions import StorageError
from loan_manager.domain.models.user import User
from loan_manager.infrastructure.database import Base


class UserRow(Base):
    __tablename__ = "users"

    id = Column(Integer, primary_key=True, autoincrement=False)
    name = Column(String(200), nullable=True)
    email = Column(String(255), nullable=True, index=True)
    password = Column(Text, nullable=True)
    phone = Column(String(50), nullable=True)
    created_at = Column(String(40), nullable=True)  # ISO-8601 text, kept as written

    def to_user(self) -> User:
        return User(
            id=self.id,
            name=self.name,
            email=self.email,
            password=self.password,
            phone=self.phone,
            created_at=self.created_at,
        )

    def __repr__(self):
        return f"<UserRow {self.email}>"


class SQLAlchemyUserRepository:
    """User repository backed by a relational database."""

    def __init__(self, session_factory: sessionmaker):
        self.session_factory = session_factory
        self._schema_ready = False

    def _ensure_schema(self) -> None:
        if not self._schema_ready:
            Base.metadata.create_all(bind=self.session_factory.kw["bind"])
            self._schema_ready = True

    def load(self) -> List[User]:
        try:
            self._ensure_schema()
            with self.session_factory() as db:
                return [row.to_user() for row in db.query(UserRow).order_by(UserRow.id).all()]
        except SQLAlchemyError as e:
            raise StorageError("Failed to read user store") from e

    def find_by_email(self, email: str) -> Optional[User]:
        try:
            self._ensure_schema()
            with self.session_factory() as db:
                row = (
                    db.query(UserRow)
                    .filter(func.lower(func.coalesce(UserRow.email, "")) == (email or "").lower())
                    .first()
                )
                return row.to_user() if row else None
        except SQLAlchemyError as e:
            raise StorageError("Failed to read user store") from e

    def find_by_id(self, user_id: Union[int, str]) -> Optional[User]:
        key = str(user_id)
        if not (key.isascii() and key.isdigit()) or str(int(key)) != key:
            return None
        try:
            self._ensure_schema()
            with self.session_factory() as db:
                row = db.get(UserRow, int(key))
                return row.to_user() if row else None
        except SQLAlchemyError as e:
            raise StorageError("Failed to read user store") from e

    def add(self, user: User) -> User:
        self.persist([user])
        return user

    def persist(self, users: List[User]) -> None:
        try:
            self._ensure_schema()
            with self.session_factory() as db:
                for user in users:
                    db.merge(
                        UserRow(
                            id=user.id,
                            name=user.name,
                            email=user.email,
                            password=user.password,
                            phone=user.phone,
                            created_at=user.created_at,
                        )
                    )
                db.commit()
        except SQLAlchemyError as e:
            raise StorageError("Failed to write user store") from e
