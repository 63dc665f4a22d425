"""
Driving session orchestration.

A ``DrivingSession`` owns one instance of every tick-driven component and is
the only place where data crosses between them. Each position sample is
folded into the kinematic tracker first; the resulting speed and heading are
then handed to the alarm, turn detector, trip recorder and eco scorer as
plain arguments, so every consumer sees the same snapshot of the tick.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from datetime import tzinfo
from typing import Any

from alerts import (
    AlarmTierController,
    BreakReminder,
    SpeedReadout,
    TurnDetector,
    ZoneAnnouncer,
)
from analytics.services.eco_scoring import DEFAULT_POLICY, BehaviorScorer, EcoPolicy, EcoReport
from core.exceptions import (
    PositionSourceError,
    ResourceNotFoundException,
    TrackingStateException,
)
from core.feedback import FeedbackChannel
from core.timers import AsyncioScheduler, Scheduler
from core.units import SpeedUnit
from tracking.services.kinematics import (
    KinematicTracker,
    MotionState,
    PositionSample,
    PositionSource,
)
from tracking.services.speed_limit import SpeedLimitMonitor, SpeedLimitResult
from trips.models import TripRecord
from trips.services.trip_recorder import TripRecorder

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class StaticPositionSource:
    """Position source whose availability is known up front."""

    available: bool = True

    def is_available(self) -> bool:
        return self.available


class DrivingSession:
    """Wires the tracker, scorer, alarms and recorder into one tick pipeline."""

    def __init__(
        self,
        scheduler: Scheduler | None = None,
        feedback: FeedbackChannel | None = None,
        *,
        speed_limit_monitor: SpeedLimitMonitor | None = None,
        unit: SpeedUnit = "km/h",
        announcements_enabled: bool = True,
        hands_free: bool = False,
        eco_policy: EcoPolicy = DEFAULT_POLICY,
        tz: tzinfo | None = None,
    ) -> None:
        self.scheduler = scheduler or AsyncioScheduler()
        self.feedback = feedback or FeedbackChannel()
        clock = self.scheduler.now_ms

        self.kinematics = KinematicTracker(clock)
        self.eco = BehaviorScorer(clock, eco_policy, tz)
        self.alarm = AlarmTierController(self.scheduler, self.feedback)
        self.turns = TurnDetector(self.scheduler, self.feedback)
        self.recorder = TripRecorder(clock)
        self.zones = ZoneAnnouncer(
            self.scheduler,
            self.feedback,
            unit=unit,
            enabled=announcements_enabled,
        )
        self.breaks = BreakReminder(self.scheduler, self.feedback)
        self.readout = SpeedReadout(
            self.scheduler,
            self.feedback,
            lambda: self.kinematics.state.speed,
            unit=unit,
        )
        self.speed_limit_monitor = speed_limit_monitor
        self.speed_limit = SpeedLimitResult()
        self.unit: SpeedUnit = unit
        self.hands_free = hands_free

    @property
    def is_tracking(self) -> bool:
        return self.kinematics.is_tracking

    @property
    def motion(self) -> MotionState:
        return self.kinematics.state

    def over_limit_by(self) -> float:
        """km/h above the posted limit, 0 when under it or no limit is known."""
        limit = self.speed_limit.speed_limit
        speed = self.kinematics.state.speed
        if limit is None or speed is None:
            return 0.0
        return max(0.0, speed - limit)

    def start(self, source: PositionSource | None = None) -> MotionState:
        """
        Begin a trip.

        Raises:
            PositionSourceError: If the position source is unavailable. No
                component is started in that case, and a trip already in
                progress is abandoned.
        """
        if source is None:
            source = StaticPositionSource()
        try:
            state = self.kinematics.start(source)
        except PositionSourceError:
            self._abandon_trip()
            raise
        self.recorder.start()
        self.eco.start()
        self.alarm.stop()
        self.turns.stop()
        self.breaks.start()
        if self.hands_free:
            self.readout.start()
        if self.speed_limit_monitor is not None:
            self.speed_limit_monitor.reset()
        logger.info("Driving session started")
        return state

    def ingest(self, sample: PositionSample) -> MotionState:
        """Run one position sample through every component."""
        if not self.is_tracking:
            msg = "Tracking is not active"
            raise TrackingStateException(msg)

        state = self.kinematics.ingest(sample)
        speed = state.speed or 0.0
        heading = state.heading
        limit = self.speed_limit.speed_limit

        self.alarm.update(self.over_limit_by())
        self.turns.update_heading(heading, state.speed, sample.timestamp)
        self.recorder.tick(speed, limit, sample.timestamp)
        self.eco.tick(speed, limit, sample.timestamp, heading)
        return state

    def apply_speed_limit(self, result: SpeedLimitResult) -> None:
        """Adopt a new lookup result and re-evaluate limit-dependent alerts."""
        if result.speed_limit != self.speed_limit.speed_limit:
            logger.info(
                "Speed limit now %s (%s)",
                result.speed_limit,
                result.road_name or "unknown road",
            )
        self.speed_limit = result
        self.zones.update(result.speed_limit, result.is_school_zone)
        if self.is_tracking:
            self.alarm.update(self.over_limit_by())

    async def refresh_speed_limit(self) -> SpeedLimitResult | None:
        """Ask the lookup gate for the limit at the current position."""
        state = self.kinematics.state
        if (
            self.speed_limit_monitor is None
            or not self.is_tracking
            or state.latitude is None
            or state.longitude is None
        ):
            return None
        result = await self.speed_limit_monitor.refresh(state.latitude, state.longitude)
        if result is not None and self.is_tracking:
            self.apply_speed_limit(result)
        return result

    def eco_report(self) -> EcoReport:
        return self.eco.report()

    def fail(self, reason: str) -> MotionState:
        """Position source failed mid-trip: stop sensing and silence alerts."""
        state = self.kinematics.fail(reason)
        self._cancel_timers()
        return state

    def stop(self) -> TripRecord | None:
        """
        End the trip and cancel every pending timer.

        Returns the finalized trip, or None when no trip was recording.
        """
        report = self.eco.report()
        self.eco.stop()
        motion = self.kinematics.stop()
        record = self.recorder.stop(
            motion.distance,
            motion.duration,
            report.to_snapshot(),
        )
        self._cancel_timers()
        logger.info("Driving session stopped")
        return record

    def _abandon_trip(self) -> None:
        self.eco.stop()
        if self.recorder.is_recording:
            self.recorder.clear()
        self._cancel_timers()

    def _cancel_timers(self) -> None:
        self.alarm.stop()
        self.turns.stop()
        self.breaks.stop()
        self.readout.stop()
        self.zones.cancel()
        if self.speed_limit_monitor is not None:
            self.speed_limit_monitor.cancel()

    def reset_trip(self) -> MotionState:
        """Restart trip statistics without leaving the tracking state."""
        state = self.kinematics.reset_trip()
        if self.is_tracking:
            self.recorder.start()
            self.eco.start()
        return state

    def trip_record(self) -> TripRecord:
        if self.recorder.trip_record is None:
            msg = "No completed trip"
            raise ResourceNotFoundException(msg)
        return self.recorder.trip_record

    def clear_trip(self) -> None:
        self.recorder.clear()

    def set_hands_free(self, enabled: bool) -> None:
        self.hands_free = enabled
        if enabled and self.is_tracking:
            self.readout.start()
        elif not enabled:
            self.readout.stop()

    def set_unit(self, unit: SpeedUnit) -> None:
        self.unit = unit
        self.zones.set_unit(unit)
        self.readout.unit = unit

    def snapshot(self) -> dict[str, Any]:
        """Consumer-facing view of every component."""
        monitor = self.speed_limit_monitor
        record = self.recorder.trip_record
        return {
            "motion": self.kinematics.state.as_dict(),
            "speedLimit": {
                "speedLimit": self.speed_limit.speed_limit,
                "roadName": self.speed_limit.road_name,
                "isSchoolZone": self.speed_limit.is_school_zone,
                "isLoading": monitor.is_loading if monitor else False,
                "error": monitor.error if monitor else None,
            },
            "overLimitBy": self.over_limit_by(),
            "alarm": self.alarm.state.as_dict(),
            "turn": self.turns.as_dict(),
            "zone": self.zones.as_dict(),
            "breakReminder": self.breaks.as_dict(),
            "handsFree": self.hands_free,
            "unit": self.unit,
            "isRecording": self.recorder.is_recording,
            "eco": self.eco.report().model_dump() if self.eco.is_tracking else None,
            "tripRecord": record.model_dump() if record else None,
        }
