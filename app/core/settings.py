from __future__ import annotations

import logging
from functools import lru_cache
from pathlib import Path
from typing import Optional, List

from dotenv import load_dotenv
from pydantic_settings import BaseSettings, SettingsConfigDict
from pydantic import Field, field_validator, model_validator

# Load environment variables from project root .env if present
# Calculate the path safely with depth validation
current_file_path = Path(__file__).resolve()
project_root_depth = 2  # Two levels up from app/core/settings.py to project root

# Validate directory depth to prevent IndexError
if len(current_file_path.parents) <= project_root_depth:
    # Fallback to current directory if path calculation fails
    project_root = Path.cwd()
else:
    project_root = current_file_path.parents[project_root_depth]

ENV_PATH = project_root / ".env"
load_dotenv(ENV_PATH)

logger = logging.getLogger(__name__)

DEFAULT_GEMINI_MODELS_URL = "https://generativelanguage.googleapis.com/v1beta/models"

_DEFAULT_CORS_ORIGINS = [
    "http://localhost:3000",
    "http://127.0.0.1:3000",
    "http://localhost:8000",
    "http://127.0.0.1:8000",
]


class Settings(BaseSettings):
    """Application configuration loaded from environment variables."""

    # Pydantic v2 settings configuration
    model_config = SettingsConfigDict(
        case_sensitive=False,
        env_file=ENV_PATH,
        extra="ignore",
    )

    environment: str = Field(default="development", alias="ENVIRONMENT")

    # Persistence
    database_url: str = Field(default="sqlite:///./data/gemini_keys.db", alias="DATABASE_URL")
    db_echo: bool = Field(default=False, alias="DB_ECHO")

    # Remote validation endpoint
    gemini_models_url: str = Field(default=DEFAULT_GEMINI_MODELS_URL, alias="GEMINI_MODELS_URL")
    gemini_api_client: str = Field(default="gemini-key-validator/1.0.0", alias="GEMINI_API_CLIENT")
    gemini_request_timeout_sec: float = Field(default=5.0, alias="GEMINI_REQUEST_TIMEOUT_SEC")

    # Key detection pattern (length threshold differs between key generations)
    key_prefix: str = Field(default="AIzaSy", alias="KEY_PREFIX")
    key_min_length: int = Field(default=33, alias="KEY_MIN_LENGTH")
    key_max_length: Optional[int] = Field(default=33, alias="KEY_MAX_LENGTH")

    # Batch processing
    batch_size: int = Field(default=10, alias="BATCH_SIZE")
    api_base_url: str = Field(default="http://127.0.0.1:8000", alias="API_BASE_URL")

    # Rate limiting (slowapi)
    rate_limit_enabled: bool = Field(default=True, alias="RATE_LIMIT_ENABLED")
    validate_rate_limit: str = Field(default="30/minute", alias="VALIDATE_RATE_LIMIT")
    read_rate_limit: str = Field(default="60/minute", alias="READ_RATE_LIMIT")

    cors_allow_origins: str = Field(default="", alias="CORS_ALLOW_ORIGINS")

    @field_validator('key_max_length', mode='before')
    @classmethod
    def parse_key_max_length(cls, v):
        """Treat an empty KEY_MAX_LENGTH as 'no upper bound'."""
        if isinstance(v, str) and not v.strip():
            return None
        return v

    @field_validator('batch_size', 'key_min_length')
    @classmethod
    def validate_positive(cls, v: int) -> int:
        if v < 1:
            raise ValueError("value must be at least 1")
        return v

    @model_validator(mode='after')
    def validate_key_length_bounds(self) -> "Settings":
        if self.key_max_length is not None and self.key_max_length < self.key_min_length:
            raise ValueError("KEY_MAX_LENGTH must be greater than or equal to KEY_MIN_LENGTH")
        return self

    def is_production_mode(self) -> bool:
        """Production mode is detected from ENVIRONMENT=production/prod."""
        return self.environment.strip().lower() in ("production", "prod")

    def get_cors_origins(self) -> List[str]:
        """Return explicit CORS origins, falling back to local dev defaults."""
        raw = self.cors_allow_origins.strip()
        if raw:
            return [o.strip() for o in raw.split(",") if o.strip()]
        return list(_DEFAULT_CORS_ORIGINS)


@lru_cache()
def get_settings() -> Settings:
    """
    Return a singleton instance of the application settings.

    Uses an internal cache to ensure the same Settings instance is returned on each call.
    """
    return Settings()

# Instantiate settings at import time for convenience
settings: Settings = get_settings()
