"""Process-wide configuration loaded once at startup."""

import os

from functools import lru_cache
from datetime import timedelta

from dotenv import load_dotenv

from pydantic import BaseModel, Field, field_validator

from typing import Annotated, List


class Settings(BaseModel):
    """Application settings read from the environment (and `.env` if present)."""

    secret_key: Annotated[str, Field(min_length=16, description="Symmetric key used to sign access tokens")]
    access_token_expire_seconds: Annotated[int, Field(default=900, gt=0)]
    refresh_token_expire_days: Annotated[int, Field(default=10, gt=0)]
    max_sessions_per_user: Annotated[int, Field(default=10, gt=0)]
    database_connection_string: Annotated[str, Field(default="mongodb://localhost:27017")]
    database_name: Annotated[str, Field(default="Mapster")]
    cors_origins: Annotated[List[str], Field(default=["*"])]
    logfire_write_token: Annotated[str | None, Field(default=None)]

    @field_validator("cors_origins", mode="before")
    @classmethod
    def split_origins(cls, value):
        if isinstance(value, str):
            return [origin.strip() for origin in value.split(",") if origin.strip()]
        return value

    @property
    def access_token_lifetime(self) -> timedelta:
        return timedelta(seconds=self.access_token_expire_seconds)

    @property
    def refresh_token_lifetime(self) -> timedelta:
        return timedelta(days=self.refresh_token_expire_days)

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables.

        Raises:
            ValueError: If `SECRET_KEY` is not configured.

        Returns:
            Settings: The loaded settings.
        """
        load_dotenv()

        secret_key = os.getenv("SECRET_KEY")
        if not secret_key:
            raise ValueError("SECRET_KEY must be set before the application starts")

        values = {
            "secret_key": secret_key,
            "access_token_expire_seconds": os.getenv("ACCESS_TOKEN_EXPIRE_SECONDS"),
            "refresh_token_expire_days": os.getenv("REFRESH_TOKEN_EXPIRE_DAYS"),
            "max_sessions_per_user": os.getenv("MAX_SESSIONS_PER_USER"),
            "database_connection_string": os.getenv("DATABASE_CONNECTION_STRING"),
            "database_name": os.getenv("DATABASE_NAME"),
            "cors_origins": os.getenv("CORS_ORIGINS"),
            "logfire_write_token": os.getenv("LOGFIRE_WRITE_TOKEN"),
        }

        # Unset variables fall back to the field defaults
        return cls(**{key: value for key, value in values.items() if value is not None})


@lru_cache
def get_settings() -> Settings:
    """Get the settings instance for this process."""
    return Settings.from_env()
