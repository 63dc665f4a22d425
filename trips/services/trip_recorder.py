"""
Trip recording and speeding-incident segmentation.

While a trip is recording, every tick is classified as compliant or over the
posted limit. Consecutive over-limit ticks are merged into one
``SpeedingIncident``; the first compliant tick closes it. ``stop()`` closes
anything still open and freezes the trip into a ``TripRecord``.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING

from trips.models import EcoSnapshot, SpeedingIncident, TripRecord

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclass
class _OpenIncident:
    start_time: float
    max_over_speed: float
    speed_limit: float
    max_speed: float

    def close(self, end_time: float) -> SpeedingIncident:
        return SpeedingIncident(
            start_time=self.start_time,
            end_time=end_time,
            max_over_speed=self.max_over_speed,
            speed_limit=self.speed_limit,
            max_speed=self.max_speed,
        )


class TripRecorder:
    """Segments over-limit periods and produces the final trip summary."""

    def __init__(self, clock: Callable[[], float]) -> None:
        self._clock = clock
        self.is_recording = False
        self.trip_record: TripRecord | None = None
        self._reset()

    def _reset(self) -> None:
        self._start_time = self._clock()
        self._incidents: list[SpeedingIncident] = []
        self._current: _OpenIncident | None = None
        self._time_over_limit = 0.0
        self._last_over_tick: float | None = None
        self._worst_overspeed = 0.0
        self._max_speed = 0.0
        self._speed_sum = 0.0
        self._speed_count = 0

    @property
    def incidents(self) -> list[SpeedingIncident]:
        return list(self._incidents)

    @property
    def has_open_incident(self) -> bool:
        return self._current is not None

    @property
    def time_over_limit(self) -> float:
        return self._time_over_limit

    @property
    def worst_overspeed(self) -> float:
        return self._worst_overspeed

    def start(self) -> None:
        self._reset()
        self.is_recording = True
        self.trip_record = None
        logger.info("Trip recording started")

    def tick(
        self,
        speed: float,
        speed_limit: float | None,
        timestamp_ms: float | None = None,
    ) -> None:
        if not self.is_recording:
            return
        now = self._clock() if timestamp_ms is None else timestamp_ms

        if speed > 0:
            self._speed_sum += speed
            self._speed_count += 1
        self._max_speed = max(self._max_speed, speed)

        if speed_limit is None or speed_limit <= 0 or speed <= speed_limit:
            self._close_incident(now)
            self._last_over_tick = None
            return

        over_by = speed - speed_limit

        if self._last_over_tick is not None:
            self._time_over_limit += (now - self._last_over_tick) / 1000.0
        self._last_over_tick = now

        self._worst_overspeed = max(self._worst_overspeed, over_by)

        if self._current is None:
            self._current = _OpenIncident(
                start_time=now,
                max_over_speed=over_by,
                speed_limit=speed_limit,
                max_speed=speed,
            )
            logger.info(
                "Speeding incident opened: %.1f km/h in a %.0f zone",
                speed,
                speed_limit,
            )
        else:
            self._current.max_over_speed = max(self._current.max_over_speed, over_by)
            self._current.max_speed = max(self._current.max_speed, speed)
            self._current.speed_limit = speed_limit

    def _close_incident(self, end_time: float) -> None:
        if self._current is None:
            return
        incident = self._current.close(end_time)
        self._incidents.append(incident)
        self._current = None
        logger.info(
            "Speeding incident closed: max %.1f over for %.1fs",
            incident.max_over_speed,
            incident.duration_seconds,
        )

    def stop(
        self,
        total_distance: float,
        duration: float,
        eco: EcoSnapshot | None = None,
    ) -> TripRecord | None:
        """Finalize the trip. Returns None if nothing was recording."""
        if not self.is_recording:
            return None

        end_time = self._clock()
        self._close_incident(end_time)

        avg_speed = self._speed_sum / self._speed_count if self._speed_count else 0.0
        record = TripRecord(
            start_time=self._start_time,
            end_time=end_time,
            total_distance=total_distance,
            duration=duration,
            max_speed=self._max_speed,
            avg_speed=avg_speed,
            speeding_incidents=tuple(self._incidents),
            time_over_limit=self._time_over_limit,
            worst_overspeed=self._worst_overspeed,
            eco=eco,
        )

        self.is_recording = False
        self.trip_record = record
        self._reset()
        logger.info(
            "Trip finalized: %.0fm, %d speeding incidents",
            total_distance,
            record.incident_count,
        )
        return record

    def clear(self) -> None:
        self.is_recording = False
        self.trip_record = None
        self._reset()
