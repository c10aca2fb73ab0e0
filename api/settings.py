"""
API configuration.

Read from environment variables; a `.env` file in the project root is read as
well, the same file repositories.client loads the Supabase credentials from.

- SALES_REPOSITORY_BACKEND: "supabase" (default) or "memory"
- SALE_MAX_CANCELLATION_DAYS: cancellation window in days (default 30)
- LOG_LEVEL: root log level (default INFO)
- CORS_ALLOW_ORIGINS: comma-separated origins (default "*")

Invalid values fail at startup with a pydantic ValidationError.
"""

from __future__ import annotations

from functools import lru_cache
from pathlib import Path
from typing import Literal, Tuple

from pydantic import AliasChoices, Field, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from domain.specifications import DEFAULT_MAX_CANCELLATION_DAYS

env_path = Path(__file__).parent.parent / ".env"


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_file=env_path,
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
        frozen=True,
    )

    repository_backend: Literal["supabase", "memory"] = Field(
        default="supabase",
        validation_alias=AliasChoices("repository_backend", "SALES_REPOSITORY_BACKEND"),
    )
    max_cancellation_days: int = Field(
        default=DEFAULT_MAX_CANCELLATION_DAYS,
        ge=0,
        validation_alias=AliasChoices("max_cancellation_days", "SALE_MAX_CANCELLATION_DAYS"),
    )
    log_level: str = Field(default="INFO", validation_alias=AliasChoices("log_level", "LOG_LEVEL"))
    cors_allow_origins: str = Field(
        default="*",
        validation_alias=AliasChoices("cors_allow_origins", "CORS_ALLOW_ORIGINS"),
    )

    @field_validator("repository_backend", mode="before")
    @classmethod
    def normalize_backend(cls, v):
        return v.strip().lower() if isinstance(v, str) else v

    @field_validator("log_level")
    @classmethod
    def normalize_log_level(cls, v: str) -> str:
        return v.strip().upper() or "INFO"

    @property
    def cors_origins(self) -> Tuple[str, ...]:
        origins = tuple(origin.strip() for origin in self.cors_allow_origins.split(",") if origin.strip())
        return origins or ("*",)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    return Settings()


__all__ = ["Settings", "get_settings"]
