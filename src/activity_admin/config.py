"""Application configuration."""

import os

from pydantic_settings import BaseSettings, SettingsConfigDict

_ENVIRONMENT = os.getenv("ENVIRONMENT", "local")

KNOWN_USER_TYPES = frozenset({"staff", "teacher", "student"})


class Settings(BaseSettings):
    """Application settings loaded from environment variables."""

    api_base_url: str
    api_token: str
    admin_token: str
    api_timeout_seconds: float = 15.0
    default_user_type: str = "staff"
    environment: str = _ENVIRONMENT

    model_config = SettingsConfigDict(
        env_file=(f".env.{_ENVIRONMENT}", ".env"),
        extra="ignore",
    )


def parse_user_type(raw: str | None) -> str | None:
    """Normalize a console user type, returning None when unknown."""
    if raw is None:
        return None
    cleaned = raw.strip().lower()
    if cleaned in KNOWN_USER_TYPES:
        return cleaned
    return None
