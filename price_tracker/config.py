"""Settings read from the environment (and `.env`, loaded by the CLI)."""

import logging
import os
from dataclasses import dataclass

logger = logging.getLogger(__name__)

DEFAULT_API_URL = "http://localhost:8080/api"


def _get_int(name: str, default: int) -> int:
    val = os.environ.get(name)
    if val is None or val == "":
        return default
    try:
        return int(val)
    except ValueError:
        logger.warning("%s=%r is not an integer, using %d", name, val, default)
        return default


def _get_float(name: str, default: float) -> float:
    val = os.environ.get(name)
    if val is None or val == "":
        return default
    try:
        return float(val)
    except ValueError:
        logger.warning("%s=%r is not a number, using %s", name, val, default)
        return default


def _get_bool(name: str, default: bool) -> bool:
    val = os.environ.get(name)
    if val is None or val == "":
        return default
    return val.lower() in ("true", "1", "yes")


@dataclass
class Settings:
    """Client configuration."""

    api_url: str = DEFAULT_API_URL
    request_timeout: float = 15.0
    desktop_notifications: bool = True
    notification_timeout: float = 5.0
    tag_per_product: bool = False
    check_interval_minutes: int = 60
    jitter_max_seconds: int = 180
    check_batch_size: int = 10
    log_level: str = "INFO"

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        return cls(
            api_url=os.environ.get("API_URL", DEFAULT_API_URL).rstrip("/"),
            request_timeout=_get_float("REQUEST_TIMEOUT_SECONDS", 15.0),
            desktop_notifications=_get_bool("DESKTOP_NOTIFICATIONS_ENABLED", True),
            notification_timeout=_get_float("NOTIFICATION_TIMEOUT_SECONDS", 5.0),
            tag_per_product=_get_bool("NOTIFICATION_TAG_PER_PRODUCT", False),
            check_interval_minutes=max(1, _get_int("CHECK_INTERVAL_MINUTES", 60)),
            jitter_max_seconds=max(0, _get_int("JITTER_MAX_SECONDS", 180)),
            check_batch_size=max(1, _get_int("CHECK_BATCH_SIZE", 10)),
            log_level=os.environ.get("LOG_LEVEL", "INFO").upper(),
        )
