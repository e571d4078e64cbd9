"""Configuration handling for the notice tracker."""

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from dotenv import load_dotenv


DEFAULT_NOTICE_SOURCE_URL = "https://gurucharancollege.ac.in"
DEFAULT_DATA_FILE = "notices_data.json"
DEFAULT_HOST = "0.0.0.0"
DEFAULT_PORT = 3000
DEFAULT_FETCH_TIMEOUT = 10.0
DEFAULT_SHUTDOWN_FLUSH_TIMEOUT = 5.0
DEFAULT_LOG_LEVEL = "INFO"
LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


@dataclass
class Settings:
    """Application settings loaded from environment variables."""

    notice_source_url: str = DEFAULT_NOTICE_SOURCE_URL
    data_file: Path = Path(DEFAULT_DATA_FILE)
    backup_dir: Optional[Path] = None
    host: str = DEFAULT_HOST
    port: int = DEFAULT_PORT
    fetch_timeout: float = DEFAULT_FETCH_TIMEOUT
    shutdown_flush_timeout: float = DEFAULT_SHUTDOWN_FLUSH_TIMEOUT
    log_level: str = DEFAULT_LOG_LEVEL


def _get_int(name: str, default: int) -> int:
    raw = os.getenv(name, str(default))
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer") from exc


def _get_float(name: str, default: float) -> float:
    raw = os.getenv(name, str(default))
    try:
        value = float(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be a number") from exc
    if value <= 0:
        raise ValueError(f"{name} must be positive")
    return value


def get_settings() -> Settings:
    """Load settings from environment variables (and a .env file if present)."""
    load_dotenv()

    data_file = Path(os.getenv("NOTICE_DATA_FILE", DEFAULT_DATA_FILE).strip())

    backup_raw = os.getenv("NOTICE_BACKUP_DIR", "").strip()
    backup_dir = Path(backup_raw) if backup_raw else None

    port = _get_int("PORT", DEFAULT_PORT)
    if not 0 < port < 65536:
        raise ValueError("PORT must be between 1 and 65535")

    log_level = os.getenv("LOG_LEVEL", DEFAULT_LOG_LEVEL).strip().upper()
    if log_level not in LOG_LEVELS:
        raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}")

    return Settings(
        notice_source_url=os.getenv("NOTICE_SOURCE_URL", DEFAULT_NOTICE_SOURCE_URL).strip(),
        data_file=data_file,
        backup_dir=backup_dir,
        host=os.getenv("HOST", DEFAULT_HOST).strip(),
        port=port,
        fetch_timeout=_get_float("FETCH_TIMEOUT", DEFAULT_FETCH_TIMEOUT),
        shutdown_flush_timeout=_get_float(
            "SHUTDOWN_FLUSH_TIMEOUT", DEFAULT_SHUTDOWN_FLUSH_TIMEOUT
        ),
        log_level=log_level,
    )
