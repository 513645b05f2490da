"""Loan Manager — Configuration via pydantic-settings."""

from functools import lru_cache
from typing import Optional

from pydantic_settings import BaseSettings


class Settings(BaseSettings):
    # Server
    HOST: str = "0.0.0.0"
    PORT: int = 3002
    FRONTEND_URL: str = "*"  # CORS origin

    # Storage
    STORAGE_BACKEND: str = "json"  # "json", "memory" or "sql"
    DB_PATH: str = "./data/db.json"
    DATABASE_URL: str = "sqlite:///./data/users.db"

    # Security
    BCRYPT_ROUNDS: int = 10
    REDACT_PASSWORDS: bool = False

    # Mail (SMTP)
    SMTP_HOST: str = "smtp.gmail.com"
    SMTP_PORT: int = 587
    SMTP_SECURE: bool = False  # True for 465, False for 587
    SMTP_USER: Optional[str] = None
    SMTP_PASS: Optional[str] = None
    EMAIL_FROM: Optional[str] = None
    SMTP_MAX_RETRIES: int = 3
    SMTP_RETRY_DELAY: float = 2.0  # seconds

    # Branding
    APP_NAME: str = "Loan App"

    # Environment
    ENVIRONMENT: str = "development"
    LOG_LEVEL: str = "INFO"

    model_config = {"env_file": ".env", "env_file_encoding": "utf-8", "extra": "ignore"}

    @property
    def smtp_configured(self) -> bool:
        return bool(self.SMTP_USER and self.SMTP_PASS)

    @property
    def mail_sender(self) -> str:
        return self.EMAIL_FROM or f'"{self.APP_NAME}" <{self.SMTP_USER}>'


@lru_cache
def get_settings() -> Settings:
    return Settings()
