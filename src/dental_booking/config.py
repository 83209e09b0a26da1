"""Runtime configuration for the dental booking system."""

import os
from dataclasses import dataclass, field
from datetime import timedelta
from pathlib import Path

SLOT_DURATION = timedelta(hours=1)
LOCKOUT_WINDOW = timedelta(hours=24)


def _parse_env_line(raw_line: str) -> tuple[str, str] | None:
    line = raw_line.strip().removeprefix("export ").strip()
    if not line or line.startswith("#") or "=" not in line:
        return None
    key, value = line.split("=", 1)
    return key.strip(), value.strip().strip("\"'")


def _load_env_file() -> None:
    """Apply the first readable .env (cwd, then project root); set variables win."""
    candidates = (Path.cwd() / ".env", Path(__file__).resolve().parents[2] / ".env")
    for env_path in candidates:
        try:
            content = env_path.read_text()
        except OSError:
            continue
        pairs = filter(None, map(_parse_env_line, content.splitlines()))
        for key, value in pairs:
            os.environ.setdefault(key, value)
        return


def _default_db_url() -> str:
    default_path = Path.cwd() / "data" / "dental_booking.db"
    return f"sqlite:///{default_path}"


@dataclass(frozen=True)
class Settings:
    database_url: str = field(default_factory=_default_db_url)
    slot_duration: timedelta = SLOT_DURATION
    lockout_window: timedelta = LOCKOUT_WINDOW
    log_level: str = "INFO"
    log_file: str | None = None


def load_settings() -> Settings:
    """Build settings from the environment, reading .env first."""
    _load_env_file()
    return Settings(
        database_url=os.environ.get("DENTAL_BOOKING_DB_URL") or _default_db_url(),
        log_level=os.environ.get("DENTAL_BOOKING_LOG_LEVEL", "INFO").upper(),
        log_file=os.environ.get("DENTAL_BOOKING_LOG_FILE") or None,
    )
