import logging
from pathlib import Path
from typing import Optional

from pydantic import field_validator
from pydantic_settings import BaseSettings

# Get the directory where this config file is located.
_BACKEND_DIR = Path(__file__).parent.resolve()


def _detect_project_root(backend_dir: Path) -> Path:
    """Resolve project root from the backend directory in the repo layout."""
    return backend_dir.parent.resolve()


_PROJECT_ROOT = _detect_project_root(_BACKEND_DIR)
_DEFAULT_SNAPSHOT_DIR = (_PROJECT_ROOT / "data" / "odds_snapshots").resolve()
_MIN_POLL_INTERVAL_SECONDS = 5
_LOGGER = logging.getLogger(__name__)


class Settings(BaseSettings):
    # Odds source
    ODDS_API_URL: str = "http://localhost:9000/api"
    ODDS_API_APP_KEY: Optional[str] = None  # Sent as X-Application when set
    ODDS_API_TIMEOUT_SECONDS: float = 30.0
    ODDS_DATE_OFFSET_DAYS: int = 0  # 0 = today's card

    # Polling
    POLLING_ENABLED: bool = True  # Start the poll loop inside the API process
    POLL_INTERVAL_SECONDS: int = 120
    POLL_ON_STARTUP: bool = True  # Run the first cycle immediately

    # Snapshot ledger - canonical path under project-root data directory
    SNAPSHOT_DIR: str = str(_DEFAULT_SNAPSHOT_DIR)

    # Market analytics
    # Race start times in the event string are shifted by this many hours
    # before being used as the group key (display timezone).
    EVENT_TIME_OFFSET_HOURS: int = 1

    # Production Settings
    LOG_LEVEL: str = "INFO"
    LOG_JSON: bool = True
    LOG_FILE: Optional[str] = None
    CORS_ORIGINS: list[str] = ["*"]
    PORT: int = 8080

    @field_validator("ODDS_API_URL", mode="before")
    @classmethod
    def _normalize_url_field(cls, value: object) -> object:
        """Trim accidental quotes/whitespace from URL env vars."""
        if value is None:
            return value
        text = str(value).strip().strip('"').strip("'")
        if not text:
            return text
        return text.rstrip("/")

    @field_validator("SNAPSHOT_DIR", mode="before")
    @classmethod
    def _normalize_snapshot_dir(cls, value: object) -> object:
        """Resolve relative snapshot dirs against the project root so the API
        and the standalone poller never split the ledger."""
        if value is None:
            return value
        text = str(value).strip().strip('"').strip("'")
        if not text:
            return str(_DEFAULT_SNAPSHOT_DIR)
        path = Path(text).expanduser()
        if not path.is_absolute():
            path = _PROJECT_ROOT / path
        return str(path.resolve())

    @field_validator("POLL_INTERVAL_SECONDS", mode="after")
    @classmethod
    def _clamp_poll_interval(cls, value: int) -> int:
        if value < _MIN_POLL_INTERVAL_SECONDS:
            _LOGGER.warning(
                "POLL_INTERVAL_SECONDS below minimum; clamping",
                extra={"requested": value, "minimum": _MIN_POLL_INTERVAL_SECONDS},
            )
            return _MIN_POLL_INTERVAL_SECONDS
        return value

    @field_validator("LOG_LEVEL", mode="before")
    @classmethod
    def _normalize_log_level(cls, value: object) -> object:
        if value is None:
            return "INFO"
        text = str(value).strip().upper()
        return text or "INFO"

    class Config:
        # Load project-root .env first (common workflow), then backend/.env
        # as an override if present.
        env_file = (
            str(_PROJECT_ROOT / ".env"),
            str(_BACKEND_DIR / ".env"),
        )
        env_file_encoding = "utf-8"


settings = Settings()
