"""Centralized configuration for environment variables and external services.

This module is the single source of truth for configuration used across the
application. Import constants or accessors from here rather than calling
os.getenv directly in multiple places.
"""

from __future__ import annotations

import logging
import os
from datetime import tzinfo
from typing import Final
from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from dotenv import load_dotenv

from core.units import SpeedUnit, validate_unit

# Load environment variables from .env if present
load_dotenv()

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}


def _env_flag(name: str, default: bool) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    value = raw.strip().lower()
    if value in _TRUE_VALUES:
        return True
    if value in _FALSE_VALUES:
        return False
    msg = f"{name} must be a boolean flag, got {raw!r}"
    raise RuntimeError(msg)


# --- Speed-limit lookup service ---
# JSON endpoint answering ?lat=..&lon=.. with {speedLimit, roadName, isSchoolZone}
SPEED_LIMIT_SERVICE_URL: Final[str] = os.getenv("SPEED_LIMIT_SERVICE_URL", "")
SPEED_LIMIT_TIMEOUT_SECONDS: Final[float] = float(
    os.getenv("SPEED_LIMIT_TIMEOUT_SECONDS", "10"),
)

# --- Logging ---
LOG_LEVEL: Final[str] = os.getenv("LOG_LEVEL", "INFO").upper()


def require_speed_limit_service_url() -> str:
    """Return the lookup endpoint, failing loudly when it is not configured."""
    url = os.getenv("SPEED_LIMIT_SERVICE_URL", SPEED_LIMIT_SERVICE_URL).strip()
    if not url:
        msg = "SPEED_LIMIT_SERVICE_URL is not configured"
        raise RuntimeError(msg)
    if not url.startswith(("http://", "https://")):
        msg = f"SPEED_LIMIT_SERVICE_URL must be an http(s) URL, got {url!r}"
        raise RuntimeError(msg)
    return url


def speed_limit_service_configured() -> bool:
    return bool(os.getenv("SPEED_LIMIT_SERVICE_URL", SPEED_LIMIT_SERVICE_URL).strip())


def get_speed_unit() -> SpeedUnit:
    """Display/announcement unit, ``km/h`` unless SPEED_UNIT says otherwise."""
    raw = os.getenv("SPEED_UNIT", "km/h").strip()
    try:
        return validate_unit(raw)
    except ValueError as e:
        raise RuntimeError(str(e)) from e


def zone_announcements_enabled() -> bool:
    return _env_flag("ZONE_ANNOUNCEMENTS_ENABLED", default=True)


def hands_free_readout_enabled() -> bool:
    return _env_flag("HANDS_FREE_READOUT", default=False)


def get_local_timezone() -> tzinfo | None:
    """
    Timezone used for time-of-day fatigue factors.

    Returns None (system local time) when LOCAL_TIMEZONE is unset.
    """
    name = os.getenv("LOCAL_TIMEZONE", "").strip()
    if not name:
        return None
    try:
        return ZoneInfo(name)
    except ZoneInfoNotFoundError as e:
        msg = f"Unknown LOCAL_TIMEZONE {name!r}"
        raise RuntimeError(msg) from e


def get_log_level() -> int:
    level = logging.getLevelName(os.getenv("LOG_LEVEL", LOG_LEVEL).upper())
    return level if isinstance(level, int) else logging.INFO


__all__ = [
    "LOG_LEVEL",
    "SPEED_LIMIT_SERVICE_URL",
    "SPEED_LIMIT_TIMEOUT_SECONDS",
    "get_local_timezone",
    "get_log_level",
    "get_speed_unit",
    "hands_free_readout_enabled",
    "require_speed_limit_service_url",
    "zone_announcements_enabled",
]
