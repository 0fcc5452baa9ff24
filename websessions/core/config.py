"""
Application configuration using Pydantic Settings.

Configuration values can be set via environment variables or .env file.
"""

import json
from typing import Annotated, List, Optional, Tuple

from pydantic import field_validator
from pydantic_settings import BaseSettings, NoDecode, SettingsConfigDict


class Settings(BaseSettings):
    """Application settings with environment variable support."""

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        case_sensitive=False,
        extra="ignore",
    )

    # Application settings
    APP_NAME: str = "websessions"
    DEBUG: bool = False

    # Database holding the session table
    DATABASE_URL: str = "sqlite:///./data/sessions.db"

    # Session store configuration
    SESSION_TABLE: str = "sessions"
    SESSION_COOKIE_NAME: str = "session"
    SESSION_COOKIE_PATH: str = "/"
    SESSION_MAX_AGE: int = 86400 * 7
    SESSION_SECURE: bool = False
    SESSION_HTTP_ONLY: bool = True

    # Codec keys, newest first. Each entry is "hash_key" or "hash_key:block_key".
    # Older entries are only used to decode, which allows key rotation.
    SESSION_KEYS: Annotated[List[str], NoDecode] = ["change-me-session-hash-key-0123456789abcdef"]

    # Logging
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    LOG_FILE: Optional[str] = None

    @field_validator("SESSION_KEYS", mode="before")
    @classmethod
    def parse_session_keys(cls, v):
        """Accept a JSON list or a comma-separated string"""
        if isinstance(v, str):
            try:
                parsed = json.loads(v)
            except json.JSONDecodeError:
                parsed = None
            if isinstance(parsed, list):
                return parsed
            return [key.strip() for key in v.split(",") if key.strip()]
        return v

    @field_validator("SESSION_MAX_AGE")
    @classmethod
    def validate_max_age(cls, v: int) -> int:
        if v < 0:
            raise ValueError("SESSION_MAX_AGE must not be negative")
        return v

    def key_pairs(self) -> List[Tuple[bytes, Optional[bytes]]]:
        """Convert SESSION_KEYS into (hash_key, block_key) byte pairs"""
        pairs = []
        for entry in self.SESSION_KEYS:
            hash_key, _, block_key = entry.partition(":")
            pairs.append(
                (hash_key.encode("utf-8"), block_key.encode("utf-8") if block_key else None)
            )
        return pairs


# Global settings instance
settings = Settings()
