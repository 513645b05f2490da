"""FastAPI application — main entry point."""

from contextlib import asynccontextmanager
from typing import Optional

import structlog
from fastapi import FastAPI

from loan_manager import __version__
from loan_manager.application.services.auth_service import AuthService
from loan_manager.application.services.mail_service import Mailer
from loan_manager.config import Settings, get_settings
from loan_manager.core.exceptions import register_exception_handlers
from loan_manager.core.logging import configure_logging
from loan_manager.core.middleware import setup_middleware
from loan_manager.domain.repositories.user_repository import UserRepository
from loan_manager.infrastructure.mailer import build_mailer
from loan_manager.infrastructure.repositories.json_repository import JsonFileUserRepository
from loan_manager.infrastructure.repositories.memory_repository import InMemoryUserRepository

from loan_manager.interfaces.api.auth import router as auth_router
from loan_manager.interfaces.api.health import router as health_router
from loan_manager.interfaces.api.notifications import router as notifications_router
from loan_manager.interfaces.api.users import router as users_router

logger = structlog.get_logger(__name__)


def build_user_repository(settings: Settings) -> UserRepository:
    """Pick the record store named by STORAGE_BACKEND."""
    backend = settings.STORAGE_BACKEND.lower()
    if backend == "json":
        return JsonFileUserRepository(settings.DB_PATH)
    if backend == "memory":
        return InMemoryUserRepository()
    if backend == "sql":
        from loan_manager.infrastructure.database import make_session_factory
        from loan_manager.infrastructure.repositories.sql_repository import SQLAlchemyUserRepository

        return SQLAlchemyUserRepository(make_session_factory(settings.DATABASE_URL))
    raise ValueError(f"Unknown STORAGE_BACKEND: {settings.STORAGE_BACKEND!r}")


def create_app(
    settings: Optional[Settings] = None,
    user_repository: Optional[UserRepository] = None,
    mailer: Optional[Mailer] = None,
) -> FastAPI:
    """Build the application.

    Collaborators default to what `settings` describes; tests pass their own.
    """
    settings = settings or get_settings()
    configure_logging(settings)

    repository = user_repository or build_user_repository(settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI):
        logger.info(
            "Starting Manager API",
            env=settings.ENVIRONMENT,
            storage=repository.__class__.__name__,
            mail_enabled=app.state.mailer is not None,
        )
        # Creates the store on first boot
        users = repository.load()
        logger.info("User store ready", users=len(users))
        yield
        logger.info("Manager API stopped")

    app = FastAPI(
        title="Loan Manager API",
        description="User accounts and transactional email for the Loan App",
        version=__version__,
        lifespan=lifespan,
    )

    app.state.settings = settings
    app.state.user_repository = repository
    app.state.auth_service = AuthService(repository, bcrypt_rounds=settings.BCRYPT_ROUNDS)
    app.state.mailer = mailer if mailer is not None else build_mailer(settings)

    setup_middleware(app, settings)
    register_exception_handlers(app)

    app.include_router(health_router)
    app.include_router(users_router)
    app.include_router(auth_router)
    app.include_router(notifications_router)

    return app
