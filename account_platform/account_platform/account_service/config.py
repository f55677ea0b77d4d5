"""
Configuration management for the account service
"""
import logging
import os
from typing import List, Optional

from pydantic_settings import BaseSettings, SettingsConfigDict

logger = logging.getLogger(__name__)

DEFAULT_SECRET_KEY = "change-this-secret-in-prod"


class ConfigurationError(RuntimeError):
    """Raised when the service cannot start with the given settings."""


class Settings(BaseSettings):
    """Account service configuration loaded from environment variables"""

    # Runtime
    ENVIRONMENT: str = "development"
    PORT: int = 3000
    LOG_LEVEL: str = "INFO"
    LOG_DIR: Optional[str] = None

    # Storage
    DATA_DIR: str = "./data"

    # Credentials
    SECRET_KEY: str = DEFAULT_SECRET_KEY
    PASSWORD_HASH_ROUNDS: int = 29000

    # CORS Configuration
    CORS_ORIGINS: List[str] = ["*"]

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=True,
        extra="ignore",
    )

    @property
    def is_production(self) -> bool:
        return self.ENVIRONMENT.lower() in ("production", "prod")

    @property
    def database_path(self) -> str:
        return os.path.join(self.DATA_DIR, "users.db")

    def validate_secret(self) -> None:
        """
        Enforce the signing-key policy.

        An empty key is always rejected. The built-in default is tolerated
        outside production with a warning, and rejected in production.

        Raises:
            ConfigurationError: If the key is unusable for this environment
        """
        if not self.SECRET_KEY or not self.SECRET_KEY.strip():
            raise ConfigurationError("SECRET_KEY must not be empty")

        if self.SECRET_KEY == DEFAULT_SECRET_KEY:
            if self.is_production:
                raise ConfigurationError(
                    "SECRET_KEY is using the built-in default in production; set SECRET_KEY"
                )
            logger.warning(
                "[Config] SECRET_KEY is using the built-in default (environment=%s); "
                "tokens are forgeable by anyone who knows it",
                self.ENVIRONMENT,
            )


def get_settings() -> Settings:
    return Settings()
