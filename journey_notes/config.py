"""
Configuration module for the notes application.
Loads environment variables and provides centralized config access.
"""

import logging
from functools import lru_cache
from pathlib import Path

from pydantic import field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

# ============================================================
# Centralized Data Paths
# ============================================================
# All user data lives under <project>/data/ for easy backup/deletion.
PROJECT_ROOT = Path(__file__).parent.parent
DATA_DIR = PROJECT_ROOT / "data"

# SQLite database holding the folders and notes collections
SQLITE_DB_PATH = DATA_DIR / "journey_notes.db"

# Placeholder used whenever a note is saved without a title
DEFAULT_NOTE_TITLE = "Untitled Note"


class Settings(BaseSettings):
    """
    Application settings loaded from environment variables.
    Uses pydantic-settings for validation and type coercion.

    Every field can be overridden with a JOURNEY_NOTES_ prefixed
    variable, e.g. JOURNEY_NOTES_DB_PATH=/tmp/notes.db
    """

    model_config = SettingsConfigDict(
        env_prefix="JOURNEY_NOTES_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # ============================================================
    # Storage
    # ============================================================
    db_path: Path = SQLITE_DB_PATH
    # Bumped whenever the collections or their indexes change
    db_version: int = 2

    # ============================================================
    # Notes behaviour
    # ============================================================
    untitled_note_title: str = DEFAULT_NOTE_TITLE
    # How long "Saved!" / "No changes detected" stay visible
    status_message_ms: int = 1500
    # Answer given to "discard unsaved changes?" when no UI is attached
    confirm_discard_default: bool = False

    # ============================================================
    # Server Configuration
    # ============================================================
    host: str = "127.0.0.1"
    port: int = 8000
    debug: bool = False
    log_level: str = "INFO"

    @field_validator("untitled_note_title")
    @classmethod
    def _title_not_blank(cls, value: str) -> str:
        if not value.strip():
            raise ValueError("untitled_note_title must not be blank")
        return value

    @field_validator("db_version")
    @classmethod
    def _version_positive(cls, value: int) -> int:
        if value < 1:
            raise ValueError("db_version must be a positive integer")
        return value

    @field_validator("status_message_ms")
    @classmethod
    def _non_negative(cls, value: int) -> int:
        if value < 0:
            raise ValueError("status_message_ms must not be negative")
        return value

    @field_validator("log_level")
    @classmethod
    def _known_level(cls, value: str) -> str:
        level = value.upper()
        if level not in logging.getLevelNamesMapping():
            raise ValueError(f"Unknown log level: {value}")
        return level


@lru_cache()
def get_settings() -> Settings:
    """
    Get cached settings instance.
    Uses lru_cache to avoid reloading env vars on every call.
    """
    return Settings()
