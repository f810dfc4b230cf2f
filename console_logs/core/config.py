"""Application configuration."""

import logging
import os
from pathlib import Path

from dotenv import load_dotenv
from pydantic import BaseModel

load_dotenv()

DEFAULT_MAX_AGE_HOURS = 336.0  # 2 weeks


def _max_age_from_env() -> float:
    """Read CONSOLE_LOG_MAX_AGE_HOURS, falling back to two weeks when unset or invalid."""
    raw = os.getenv("CONSOLE_LOG_MAX_AGE_HOURS")
    if not raw:
        return DEFAULT_MAX_AGE_HOURS
    try:
        return float(raw)
    except ValueError:
        return DEFAULT_MAX_AGE_HOURS


class Settings(BaseModel):
    """Application settings loaded from environment variables."""

    # Environment
    env: str = os.getenv("APP_ENV", "development")
    log_level: str = os.getenv("LOG_LEVEL", "INFO")

    # Storage
    log_dir: str = os.getenv(
        "CONSOLE_LOG_DIR", str(Path.home() / ".console-logs")
    )
    database_filename: str = os.getenv("CONSOLE_LOG_DB_NAME", "console_logs.db")
    busy_timeout: float = float(os.getenv("CONSOLE_LOG_BUSY_TIMEOUT", "30"))

    # Retention
    max_age_hours: float = _max_age_from_env()
    max_age_from_env: bool = bool(os.getenv("CONSOLE_LOG_MAX_AGE_HOURS"))

    @property
    def database_path(self) -> Path:
        return Path(self.log_dir).expanduser() / self.database_filename

    @property
    def database_url(self) -> str:
        return f"sqlite:///{self.database_path}"


settings = Settings()


def configure_logging() -> None:
    """Configure root logging from settings.log_level."""
    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s %(message)s",
        datefmt="%H:%M:%S",
    )
