"""
Settings loaded from environment variables (and an optional .env file).
"""

from __future__ import annotations
import logging
import os
from dataclasses import dataclass

from dotenv import find_dotenv, load_dotenv

from study_engine.exceptions import ConfigurationError
from study_engine.memory_model.constants import (
    DEFAULT_RETENTION,
    LEECH_THRESHOLD,
    NEW_PER_SESSION,
    ACTIVITY_CAP,
    DEFAULT_PROJECT_ID,
)


DEFAULT_DATABASE_URL = "sqlite:///logs/study.sqlite"
LOG_FORMAT = "%(asctime)s - %(levelname)s - %(message)s"


@dataclass(frozen=True)
class Settings:
    database_url: str = DEFAULT_DATABASE_URL
    desired_retention: float = DEFAULT_RETENTION
    leech_threshold: int = LEECH_THRESHOLD
    new_per_session: int = NEW_PER_SESSION
    activity_cap: int = ACTIVITY_CAP
    enable_fuzzing: bool = False
    default_project_id: str = DEFAULT_PROJECT_ID
    log_level: str = "INFO"

    def __post_init__(self):
        if not 0 < self.desired_retention < 1:
            raise ConfigurationError(
                f"DESIRED_RETENTION must be between 0 and 1, got {self.desired_retention}"
            )
        if self.leech_threshold <= 0:
            raise ConfigurationError(
                f"LEECH_THRESHOLD must be positive, got {self.leech_threshold}"
            )
        if self.new_per_session < 0:
            raise ConfigurationError(
                f"NEW_PER_SESSION cannot be negative, got {self.new_per_session}"
            )
        if self.activity_cap <= 0:
            raise ConfigurationError(
                f"ACTIVITY_CAP must be positive, got {self.activity_cap}"
            )


def is_test_mode() -> bool:
    """Check if running in test mode."""
    return os.getenv("TEST_MODE", "false").lower() == "true"


def get_database_url() -> str:
    """
    Get the database URL from environment variables.

    Uses TEST_MODE env var to determine which database to connect to.
    For test mode, replaces 'study.sqlite' with 'test_study.sqlite' in the URL.

    Returns:
        SQLAlchemy database URL
    """
    url = os.getenv("DATABASE_URL") or DEFAULT_DATABASE_URL
    if is_test_mode():
        url = url.replace("/study.sqlite", "/test_study.sqlite")
    return url


def _env_number(name: str, default, cast):
    raw = os.getenv(name)
    if raw is None or raw == "":
        return default
    try:
        return cast(raw)
    except ValueError:
        raise ConfigurationError(f"{name} is not a valid {cast.__name__}: {raw!r}")


def load_settings() -> Settings:
    """
    Build Settings from the environment, reading .env first if present.

    Raises:
        ConfigurationError: If a value cannot be parsed or is out of range
    """
    load_dotenv(find_dotenv(usecwd=True))

    return Settings(
        database_url=get_database_url(),
        desired_retention=_env_number("DESIRED_RETENTION", DEFAULT_RETENTION, float),
        leech_threshold=_env_number("LEECH_THRESHOLD", LEECH_THRESHOLD, int),
        new_per_session=_env_number("NEW_PER_SESSION", NEW_PER_SESSION, int),
        activity_cap=_env_number("ACTIVITY_CAP", ACTIVITY_CAP, int),
        enable_fuzzing=os.getenv("ENABLE_FUZZING", "false").lower() == "true",
        default_project_id=os.getenv("DEFAULT_PROJECT_ID", DEFAULT_PROJECT_ID),
        log_level=os.getenv("LOG_LEVEL", "INFO").upper(),
    )


def configure_logging(level: str = "INFO") -> None:
    """Install the root logging format used across the engine and scripts."""
    logging.basicConfig(level=level, format=LOG_FORMAT)
