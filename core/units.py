"""Speed unit handling for spoken and displayed values."""

from __future__ import annotations

from typing import Literal

from core.constants import KMH_TO_MPH
from core.math_utils import round_half_up

SpeedUnit = Literal["km/h", "mph"]

SPEED_UNITS: tuple[SpeedUnit, ...] = ("km/h", "mph")

_SPOKEN_UNIT_NAMES: dict[str, str] = {
    "km/h": "kilometers per hour",
    "mph": "miles per hour",
}


def validate_unit(unit: str) -> SpeedUnit:
    if unit not in SPEED_UNITS:
        msg = f"Unsupported speed unit '{unit}'. Use 'km/h' or 'mph'."
        raise ValueError(msg)
    return unit  # type: ignore[return-value]


def kmh_to_unit(speed_kmh: float, unit: SpeedUnit) -> float:
    """Convert a km/h speed into the requested display unit."""
    if unit == "mph":
        return speed_kmh * KMH_TO_MPH
    return speed_kmh


def display_limit(limit_kmh: float | None, unit: SpeedUnit) -> int | None:
    """Posted limits are shown as whole numbers in the display unit."""
    if limit_kmh is None:
        return None
    return int(round_half_up(kmh_to_unit(limit_kmh, unit)))


def spoken_unit(unit: SpeedUnit) -> str:
    return _SPOKEN_UNIT_NAMES[unit]
