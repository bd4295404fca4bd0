# devai_security/core/config.py
import logging
from typing import Optional
from pydantic import Field
from pydantic_settings import BaseSettings

logger = logging.getLogger(__name__)


class SecuritySettings(BaseSettings):
    """Settings for the security utility layer"""
    APP_NAME: str = "DevAI Security"
    DEBUG: bool = False

    # Storage
    REDIS_URL: Optional[str] = Field(default=None)

    # Anti-forgery tokens
    TOKEN_STORAGE_KEY: str = "csrf-token"
    TOKEN_BYTES: int = 32
    TOKEN_MAX_AGE_MS: Optional[int] = None
    TOKEN_HEADER_NAME: str = "X-CSRF-Token"

    # Rate limiting
    RATE_LIMIT_KEY_PREFIX: str = "rateLimit_"
    RATE_LIMIT_WINDOW_MS: int = 60_000
    RATE_LIMIT_BLOCK_MS: int = 900_000

    # Event journal
    EVENT_LOG_STORAGE_KEY: str = "security-events"
    EVENT_LOG_MAX_ENTRIES: int = 1000

    # Input validation
    PASSWORD_MIN_LENGTH: int = 8
    MAX_INPUT_LENGTH: int = 1000

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
        "case_sensitive": False,
        "extra": "ignore"
    }


# Settings singleton
settings = SecuritySettings()


def validate_settings(current: Optional[SecuritySettings] = None) -> bool:
    """Checks the settings for values the components cannot work with"""
    current = current or settings
    problems = []

    if current.TOKEN_BYTES < 16:
        problems.append("TOKEN_BYTES must be at least 16")

    if current.RATE_LIMIT_WINDOW_MS <= 0:
        problems.append("RATE_LIMIT_WINDOW_MS must be positive")

    if current.RATE_LIMIT_BLOCK_MS <= 0:
        problems.append("RATE_LIMIT_BLOCK_MS must be positive")

    if current.EVENT_LOG_MAX_ENTRIES < 1:
        problems.append("EVENT_LOG_MAX_ENTRIES must be at least 1")

    if current.TOKEN_MAX_AGE_MS is not None and current.TOKEN_MAX_AGE_MS <= 0:
        problems.append("TOKEN_MAX_AGE_MS must be positive when set")

    if problems:
        logger.warning(f"Invalid security settings: {'; '.join(problems)}")
        logger.warning("Components fall back to their built-in behaviour where possible.")
        return False

    return True
