"""Auth service — password hashing, credential verification and registration.

A login walks one of these paths:

    email unknown                         -> UserNotFoundError
    stored bcrypt hash, verify ok         -> AUTHENTICATED
    stored bcrypt hash, verify fails      -> IncorrectPasswordError
    stored plaintext, equal               -> hash it, write back -> UPGRADED
    stored plaintext, not equal           -> IncorrectPasswordError

Failure paths never touch the store. Plaintext passwords only exist in
records created before registration started hashing; they are migrated one
by one as their owners log in, never in bulk.
"""

import asyncio
import enum
from dataclasses import dataclass
from typing import Optional

import structlog
from passlib.context import CryptContext

from loan_manager.core.exceptions import (
    EmailTakenError,
    IncorrectPasswordError,
    UserNotFoundError,
)
from loan_manager.domain.models.user import User, utc_timestamp
from loan_manager.domain.repositories.user_repository import (
    UserRepository,
    find_user_by_email,
    next_user_id,
)

logger = structlog.get_logger(__name__)

HASH_PREFIX = "$2"  # every bcrypt variant ($2a$, $2b$, $2y$)
DEFAULT_BCRYPT_ROUNDS = 10

pwd_context = CryptContext(schemes=["bcrypt"], deprecated="auto", bcrypt__rounds=DEFAULT_BCRYPT_ROUNDS)


def make_password_context(rounds: int = DEFAULT_BCRYPT_ROUNDS) -> CryptContext:
    return pwd_context.copy(bcrypt__rounds=rounds)


def is_password_hash(value: Optional[str]) -> bool:
    return isinstance(value, str) and value.startswith(HASH_PREFIX)


def hash_password(password: str, context: CryptContext = pwd_context) -> str:
    return context.hash(password)


def verify_password(plain_password: str, hashed_password: str, context: CryptContext = pwd_context) -> bool:
    try:
        return context.verify(plain_password, hashed_password)
    except ValueError:
        # Starts with the bcrypt marker but isn't a parseable hash
        logger.warning("Stored password hash is malformed")
        return False


class AuthState(str, enum.Enum):
    AUTHENTICATED = "authenticated"
    UPGRADED = "upgraded"  # authenticated, and the legacy plaintext was replaced by a hash


@dataclass
class AuthResult:
    user: User
    state: AuthState

    @property
    def upgraded(self) -> bool:
        return self.state is AuthState.UPGRADED


class AuthService:
    """Registration and login against a UserRepository.

    Read-modify-persist sections are serialised by one lock and re-read the
    store once inside it, so concurrent requests in this process never
    overwrite each other's records. Other processes sharing the same store
    are still last-writer-wins.
    """

    def __init__(self, repository: UserRepository, bcrypt_rounds: int = DEFAULT_BCRYPT_ROUNDS):
        self.repository = repository
        self.pwd_context = make_password_context(bcrypt_rounds)
        self._write_lock = asyncio.Lock()

    async def hash_password(self, password: str) -> str:
        return await asyncio.to_thread(hash_password, password, self.pwd_context)

    async def verify_password(self, plain_password: str, hashed_password: str) -> bool:
        return await asyncio.to_thread(verify_password, plain_password, hashed_password, self.pwd_context)

    async def authenticate(self, email: str, password: str) -> AuthResult:
        user = await asyncio.to_thread(self.repository.find_by_email, email)
        if user is None:
            logger.info("Login rejected", reason="user_not_found")
            raise UserNotFoundError()

        if is_password_hash(user.password):
            if not await self.verify_password(password, user.password):
                logger.info("Login rejected", reason="incorrect_password", user_id=user.id)
                raise IncorrectPasswordError()
            logger.info("Login successful", user_id=user.id)
            return AuthResult(user=user, state=AuthState.AUTHENTICATED)

        # Legacy plaintext: plain comparison, the value is about to be replaced.
        # A record with no stored password (or a non-string one) never matches.
        if not isinstance(user.password, str) or password != user.password:
            logger.info("Login rejected", reason="incorrect_password", user_id=user.id, legacy=True)
            raise IncorrectPasswordError()

        user, upgraded = await self._upgrade_legacy_password(user, password)
        logger.info("Login successful", user_id=user.id, upgraded=upgraded)
        return AuthResult(user=user, state=AuthState.UPGRADED if upgraded else AuthState.AUTHENTICATED)

    async def _upgrade_legacy_password(self, user: User, password: str) -> tuple[User, bool]:
        new_hash = await self.hash_password(password)

        async with self._write_lock:
            users = await asyncio.to_thread(self.repository.load)
            current = find_user_by_email(users, user.email)
            if current is None or current.password != password:
                # A concurrent login already stored a hash for this account
                return current or user, False

            current.password = new_hash
            await asyncio.to_thread(self.repository.persist, users)

        logger.info("Legacy password upgraded to bcrypt", user_id=current.id)
        return current, True

    async def register(self, name: str, email: str, password: str, phone: Optional[str] = None) -> User:
        # Cheap check before paying for a hash; repeated under the lock below
        if await asyncio.to_thread(self.repository.find_by_email, email) is not None:
            raise EmailTakenError()

        password_hash = await self.hash_password(password)

        async with self._write_lock:
            users = await asyncio.to_thread(self.repository.load)
            if find_user_by_email(users, email) is not None:
                raise EmailTakenError()

            user = User(
                id=next_user_id(users),
                name=name,
                email=email,
                password=password_hash,
                phone=phone,
                created_at=utc_timestamp(),
            )
            await asyncio.to_thread(self.repository.add, user)

        logger.info("User registered", user_id=user.id)
        return user
