"""
Spatial and geometry utilities.

Centralizes great-circle distance calculations used by the kinematic
tracker and the speed-limit lookup gate.
"""

from __future__ import annotations

import logging
import math

logger = logging.getLogger(__name__)


class GeometryService:
    """Authoritative geometry operations for the application."""

    EARTH_RADIUS_M = 6371000.0

    @staticmethod
    def haversine_distance(
        lon1: float,
        lat1: float,
        lon2: float,
        lat2: float,
        unit: str = "meters",
    ) -> float:
        """Calculate the great-circle distance using the Haversine formula."""
        phi1 = math.radians(lat1)
        phi2 = math.radians(lat2)
        dphi = math.radians(lat2 - lat1)
        dlmb = math.radians(lon2 - lon1)
        a = (
            math.sin(dphi / 2) ** 2
            + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
        )
        distance_m = (
            2 * GeometryService.EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(a)))
        )
        if unit == "meters":
            return distance_m
        if unit == "miles":
            return distance_m / 1609.344
        if unit == "km":
            return distance_m / 1000.0
        msg = "Invalid unit. Use 'meters', 'miles', or 'km'."
        raise ValueError(msg)

    @staticmethod
    def has_moved_beyond(
        lat1: float,
        lon1: float,
        lat2: float,
        lon2: float,
        threshold_deg: float,
    ) -> bool:
        """True when either axis moved at least ``threshold_deg`` degrees."""
        return (
            abs(lat2 - lat1) >= threshold_deg or abs(lon2 - lon1) >= threshold_deg
        )
