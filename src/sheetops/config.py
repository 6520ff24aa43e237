"""Configuration using pydantic-settings."""

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Settings loaded from SHEETOPS_* environment variables or a .env file."""

    model_config = SettingsConfigDict(
        env_prefix="SHEETOPS_",
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Range caps
    max_rows: int = Field(default=1000, ge=1)
    max_columns: int = Field(default=50, ge=1)

    # Profiling windows
    sample_rows: int = Field(default=10, ge=1)
    sample_columns: int = Field(default=10, ge=1)

    # Transport
    request_timeout: int = 60  # seconds
    access_token: str = ""

    log_level: str = "WARNING"

    @property
    def has_access_token(self) -> bool:
        return bool(self.access_token)


@lru_cache
def get_settings() -> Settings:
    """Get cached settings instance."""
    return Settings()
