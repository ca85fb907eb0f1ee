from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict
from pathlib import Path
from typing import Literal
from functools import lru_cache
from ..validators.config_validators import to_uppercase, to_lowercase, split_csv


class Settings(BaseSettings):
    """
    Settings loaded from environment / `.env`.
    """

    # Environment
    ENV: Literal["development", "testing", "staging", "production"] = "development"

    # Database
    DATABASE_URL: str = "sqlite+aiosqlite:///./persistguard.db"
    SQLALCHEMY_ECHO: bool = False

    # Error classification (comma-separated lists)
    DUPLICATE_MESSAGE_MARKERS: str = "duplicate"
    DUPLICATE_ERROR_NAMES: str = ""

    # Logging
    LOG_LEVEL: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"
    LOG_FORMAT: Literal["json", "text"] = "json"
    LOG_TO_STDOUT: bool = True
    LOG_DIR: Path = Path("/var/log/persistguard")
    LOG_MAX_BYTES: int = 10_000_000  # 10 MB
    LOG_BACKUP_COUNT: int = 5
    ENABLE_SQL_LOGGING: bool = False

    # --- Derived settings ---
    @property
    def duplicate_message_markers(self) -> tuple[str, ...]:
        """
        Lower-cased substrings that mark a failure message as a duplicate-entry violation.

        Falls back to ("duplicate",) when the variable is set but empty, so the message heuristic can be
        narrowed but never silently disabled by a blank value.
        """
        return tuple(m.lower() for m in split_csv(self.DUPLICATE_MESSAGE_MARKERS)) or ("duplicate",)

    @property
    def duplicate_error_names(self) -> tuple[str, ...]:
        """Extra exception class names treated as duplicate-entry violations."""
        return tuple(split_csv(self.DUPLICATE_ERROR_NAMES))

    # --- Validators ---
    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def normalize_log_level(cls, v: str | None) -> str | None:
        """
        Normalize LOG_LEVEL to uppercase before Literal validation, since the logging module expects
        level names like "DEBUG" / "INFO".
        """
        return to_uppercase(v)

    @field_validator("LOG_FORMAT", mode="before")
    @classmethod
    def normalize_log_format(cls, v: str | None) -> str | None:
        return to_lowercase(v)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )


# get_settings() takes no arguments and always returns the same settings from the environment,
# so it is cached with @lru_cache().
@lru_cache()
def get_settings() -> Settings:
    return Settings()
