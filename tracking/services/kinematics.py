"""
Kinematic tracking for the live position stream.

Turns raw position fixes into the live trip statistics shown to the driver:
current speed, running max/average speed, cumulative distance and elapsed
duration. This is the leaf of the tick pipeline; every downstream component
consumes the ``MotionState`` produced here.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING, Protocol

from pydantic import BaseModel, ConfigDict, Field, ValidationError

from core.constants import (
    DISTANCE_JITTER_FLOOR_M,
    MS_TO_KMH,
    SPEED_NOISE_FLOOR_KMH,
)
from core.exceptions import PositionSourceError, ValidationException
from core.spatial import GeometryService

if TYPE_CHECKING:
    from collections.abc import Callable
    from typing import Any

logger = logging.getLogger(__name__)

SOURCE_ERROR_MESSAGES: dict[str, str] = {
    PositionSourceError.UNSUPPORTED: "Geolocation is not supported by this device",
    PositionSourceError.PERMISSION_DENIED: (
        "Location permission denied. Please enable location access in your "
        "device settings."
    ),
    PositionSourceError.POSITION_UNAVAILABLE: "Location information is unavailable.",
    PositionSourceError.TIMEOUT: "The request to get location timed out.",
}


class PositionSample(BaseModel):
    """One fix from the position sensor."""

    latitude: float = Field(ge=-90, le=90)
    longitude: float = Field(ge=-180, le=180)
    speed: float | None = None  # m/s
    heading: float | None = None  # degrees from north
    altitude: float | None = None
    accuracy: float | None = None
    timestamp: float  # epoch ms

    model_config = ConfigDict(extra="ignore", frozen=True)

    @classmethod
    def parse(cls, payload: dict[str, Any]) -> PositionSample:
        """Build a sample from a raw payload, raising the domain error type."""
        try:
            return cls.model_validate(payload)
        except ValidationError as e:
            msg = "Invalid position sample"
            raise ValidationException(msg, {"errors": e.errors()}) from e

    @property
    def speed_kmh(self) -> float:
        if self.speed is None:
            return 0.0
        kmh = self.speed * MS_TO_KMH
        return 0.0 if kmh < SPEED_NOISE_FLOOR_KMH else kmh


class PositionSource(Protocol):
    """Anything that can deliver position fixes to the tracker."""

    def is_available(self) -> bool:
        """Whether the device exposes a position source at all."""
        ...


@dataclass
class MotionState:
    """Live kinematic state owned by ``KinematicTracker``."""

    speed: float | None = None
    latitude: float | None = None
    longitude: float | None = None
    accuracy: float | None = None
    heading: float | None = None
    altitude: float | None = None
    timestamp: float | None = None
    error: str | None = None
    is_tracking: bool = False
    max_speed: float = 0.0
    avg_speed: float = 0.0
    distance: float = 0.0
    duration: float = 0.0

    def as_dict(self) -> dict[str, Any]:
        return {
            "speed": self.speed,
            "latitude": self.latitude,
            "longitude": self.longitude,
            "accuracy": self.accuracy,
            "heading": self.heading,
            "altitude": self.altitude,
            "timestamp": self.timestamp,
            "error": self.error,
            "isTracking": self.is_tracking,
            "maxSpeed": self.max_speed,
            "avgSpeed": self.avg_speed,
            "distance": self.distance,
            "duration": self.duration,
        }


class KinematicTracker:
    """
    Converts position samples into speed, distance and duration.

    Speeds below 1 km/h are treated as sensor noise and clamped to zero.
    Displacements of 2 m or less between consecutive fixes are treated as
    jitter and not added to the distance. Max and average speed only look at
    moving samples, so time spent stationary does not drag the average down.
    """

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self.state = MotionState()
        self._prev_fix: tuple[float, float] | None = None
        self._speed_sum = 0.0
        self._speed_count = 0
        self._started_at: float | None = None

    @property
    def is_tracking(self) -> bool:
        return self.state.is_tracking

    def start(self, source: PositionSource | None) -> MotionState:
        """
        Begin a trip.

        Raises:
            PositionSourceError: If no position source is available. Tracking
                does not start and the message is kept on ``state.error``.
        """
        if source is None or not source.is_available():
            message = SOURCE_ERROR_MESSAGES[PositionSourceError.UNSUPPORTED]
            self.state.error = message
            self.state.is_tracking = False
            logger.warning("Cannot start tracking: %s", message)
            raise PositionSourceError(message, PositionSourceError.UNSUPPORTED)

        self._reset_accumulators()
        self.state.is_tracking = True
        self.state.error = None
        self.state.max_speed = 0.0
        self.state.avg_speed = 0.0
        self.state.distance = 0.0
        self.state.duration = 0.0
        logger.info("Kinematic tracking started")
        return self.state

    def ingest(self, sample: PositionSample) -> MotionState:
        """Fold one position fix into the motion state."""
        if not self.state.is_tracking:
            logger.debug("Ignoring position sample while not tracking")
            return self.state

        speed_kmh = sample.speed_kmh

        if self._prev_fix is not None:
            prev_lat, prev_lon = self._prev_fix
            step_m = GeometryService.haversine_distance(
                prev_lon,
                prev_lat,
                sample.longitude,
                sample.latitude,
            )
            if step_m > DISTANCE_JITTER_FLOOR_M:
                self.state.distance += step_m

        self._prev_fix = (sample.latitude, sample.longitude)

        if speed_kmh > 0:
            self._speed_sum += speed_kmh
            self._speed_count += 1
            self.state.max_speed = max(self.state.max_speed, speed_kmh)
        self.state.avg_speed = (
            self._speed_sum / self._speed_count if self._speed_count else 0.0
        )

        self.state.speed = speed_kmh
        self.state.latitude = sample.latitude
        self.state.longitude = sample.longitude
        self.state.accuracy = sample.accuracy
        self.state.heading = sample.heading
        self.state.altitude = sample.altitude
        self.state.timestamp = sample.timestamp
        self.state.error = None
        self.state.duration = self.elapsed_seconds()
        return self.state

    def elapsed_seconds(self) -> float:
        if self._started_at is None:
            return 0.0
        return max(0.0, (self._clock() - self._started_at) / 1000.0)

    def fail(self, reason: str) -> MotionState:
        """Record a position source failure reported mid-trip and stop."""
        message = SOURCE_ERROR_MESSAGES.get(reason, "Unknown error")
        logger.warning("Position source failed (%s): %s", reason, message)
        self.state.error = message
        self.state.is_tracking = False
        return self.state

    def stop(self) -> MotionState:
        if self.state.is_tracking:
            self.state.duration = self.elapsed_seconds()
            logger.info(
                "Kinematic tracking stopped after %.0fs, %.0fm",
                self.state.duration,
                self.state.distance,
            )
        self.state.is_tracking = False
        return self.state

    def reset_trip(self) -> MotionState:
        """Zero the trip statistics without leaving the tracking state."""
        self._reset_accumulators()
        self.state.max_speed = 0.0
        self.state.avg_speed = 0.0
        self.state.distance = 0.0
        self.state.duration = 0.0
        return self.state

    def _reset_accumulators(self) -> None:
        self._prev_fix = None
        self._speed_sum = 0.0
        self._speed_count = 0
        self._started_at = self._clock()
