"""
Eco-driving and behavior scoring.

Consumes one tick per position update (speed, posted limit, timestamp,
heading) and accumulates acceleration, braking, cornering, idle and
speed-discipline statistics. The scores themselves are projected on demand
by ``BehaviorScorer.report()``, which never mutates the accumulator, so it
can be polled as often as the caller likes.

Score weights are empirical. They live in ``EcoPolicy`` so they can be tuned
without touching the accumulation logic.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from datetime import datetime, tzinfo
from typing import TYPE_CHECKING

from pydantic import BaseModel, ConfigDict

from core.constants import (
    GRAVITY_MS2,
    MAX_TICK_INTERVAL_S,
    MIN_TICK_INTERVAL_S,
    MS_TO_KMH,
)
from core.math_utils import (
    clamp,
    mean,
    normalize_heading_delta,
    population_variance,
    round_half_up,
)
from trips.models import EcoSnapshot

if TYPE_CHECKING:
    from collections.abc import Callable

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class EcoPolicy:
    """Thresholds and weights for the eco, smoothness and fatigue scores."""

    # Event detection (m/s^2 unless noted)
    event_accel: float = 0.3
    harsh_accel: float = 2.5
    harsh_brake: float = -3.0
    coast_brake: float = -1.0
    idle_speed_kmh: float = 2.0
    corner_min_speed_kmh: float = 5.0
    lateral_g_noise: float = 0.05
    hard_corner_g: float = 0.3
    eco_speed_min_kmh: float = 50.0
    eco_speed_max_kmh: float = 90.0

    # Eco score
    harsh_ratio_weight: float = 30.0
    idle_ratio_weight: float = 40.0
    idle_penalty_cap: float = 20.0
    consistency_divisor: float = 3.0
    consistency_penalty_cap: float = 15.0
    discipline_flat_penalty: float = 15.0
    discipline_bonus_max: float = 15.0
    optimal_flat_penalty: float = 5.0
    optimal_bonus_max: float = 10.0
    avg_accel_penalty_rate: float = 5.0
    avg_accel_penalty_cap: float = 10.0
    eco_corner_rate: float = 2.0
    eco_corner_cap: float = 10.0

    # Smoothness score
    smooth_corner_rate: float = 4.0
    smooth_corner_cap: float = 20.0

    # Fatigue risk score
    fatigue_long_drive_min: float = 60.0
    fatigue_long_drive_rate: float = 4.0
    fatigue_long_drive_cap: float = 30.0
    fatigue_very_long_drive_min: float = 120.0
    fatigue_very_long_drive_rate: float = 3.0
    fatigue_very_long_drive_cap: float = 20.0
    fatigue_stdev_floor: float = 20.0
    fatigue_stdev_rate: float = 2.0
    fatigue_stdev_cap: float = 15.0
    fatigue_night_points: float = 20.0
    fatigue_afternoon_points: float = 10.0
    fatigue_recent_after_min: float = 30.0
    fatigue_recent_samples: int = 30
    fatigue_recent_stdev: float = 25.0
    fatigue_recent_points: float = 15.0


DEFAULT_POLICY = EcoPolicy()


@dataclass
class EcoAccumulator:
    """Per-trip counters mutated only by ``BehaviorScorer.tick``."""

    started_at: float = 0.0
    last_tick_at: float | None = None

    prev_speed: float | None = None
    prev_timestamp: float | None = None
    prev_heading: float | None = None

    harsh_accelerations: int = 0
    harsh_brakes: int = 0
    total_accelerations: int = 0
    total_brakes: int = 0
    coast_down_events: int = 0
    accel_magnitudes: list[float] = field(default_factory=list)
    decel_magnitudes: list[float] = field(default_factory=list)

    hard_corners: int = 0
    in_hard_corner: bool = False
    lateral_g_samples: list[float] = field(default_factory=list)
    max_lateral_g: float = 0.0

    tick_count: int = 0
    within_limit_ticks: int = 0
    optimal_speed_ticks: int = 0

    idle_time: float = 0.0
    idle_periods: int = 0
    is_idle: bool = False
    last_idle_tick: float | None = None

    speed_samples: list[float] = field(default_factory=list)


class EcoReport(BaseModel):
    """Point-in-time projection of an ``EcoAccumulator``."""

    eco_score: int
    smoothness_score: int
    fatigue_risk_score: int
    harsh_accelerations: int
    harsh_brakes: int
    hard_corners: int
    total_accelerations: int
    total_brakes: int
    idle_time: float
    idle_periods: int
    speed_discipline_percent: int
    optimal_speed_percent: int
    avg_acceleration: float
    avg_deceleration: float
    avg_lateral_g: float
    max_lateral_g: float
    coast_down_events: int
    speed_variance: float

    model_config = ConfigDict(frozen=True)

    def to_snapshot(self) -> EcoSnapshot:
        """Reduce to the subset stored alongside a finished trip."""
        return EcoSnapshot(
            eco_score=self.eco_score,
            smoothness_score=self.smoothness_score,
            fatigue_risk_score=self.fatigue_risk_score,
            harsh_accelerations=self.harsh_accelerations,
            harsh_brakes=self.harsh_brakes,
            hard_corners=self.hard_corners,
            idle_time=self.idle_time,
            idle_periods=self.idle_periods,
            speed_discipline_percent=self.speed_discipline_percent,
            optimal_speed_percent=self.optimal_speed_percent,
            coast_down_events=self.coast_down_events,
            max_lateral_g=self.max_lateral_g,
        )


def _valid_interval(dt_s: float) -> bool:
    return MIN_TICK_INTERVAL_S < dt_s < MAX_TICK_INTERVAL_S


class BehaviorScorer:
    """
    Accumulates driving-behavior statistics and projects an ``EcoReport``.

    Args:
        clock: Returns the current time in epoch ms; used to stamp the trip
            start when ``start()`` is called without an explicit time.
        policy: Score thresholds and weights.
        tz: Timezone for time-of-day fatigue factors. None means the system
            local timezone.
    """

    def __init__(
        self,
        clock: Callable[[], float],
        policy: EcoPolicy = DEFAULT_POLICY,
        tz: tzinfo | None = None,
    ) -> None:
        self._clock = clock
        self.policy = policy
        self._tz = tz
        self._acc = EcoAccumulator(started_at=clock())
        self._tracking = False

    @property
    def is_tracking(self) -> bool:
        return self._tracking

    @property
    def accumulator(self) -> EcoAccumulator:
        return self._acc

    def start(self, started_at: float | None = None) -> None:
        self._acc = EcoAccumulator(
            started_at=self._clock() if started_at is None else started_at,
        )
        self._tracking = True
        logger.debug("Eco tracking started at %.0f", self._acc.started_at)

    def stop(self) -> None:
        self._tracking = False

    def reset(self) -> None:
        self.start()
        self._tracking = False

    def tick(
        self,
        speed_kmh: float,
        speed_limit_kmh: float | None,
        timestamp_ms: float,
        heading_deg: float | None = None,
    ) -> None:
        """Fold one tick into the accumulator. Ignored while not tracking."""
        if not self._tracking:
            return

        acc = self._acc
        policy = self.policy
        acc.tick_count += 1
        acc.speed_samples.append(speed_kmh)
        acc.last_tick_at = timestamp_ms

        self._track_cornering(speed_kmh, timestamp_ms, heading_deg)
        if heading_deg is not None:
            acc.prev_heading = heading_deg

        if speed_limit_kmh is None or speed_kmh <= speed_limit_kmh:
            acc.within_limit_ticks += 1

        if policy.eco_speed_min_kmh <= speed_kmh <= policy.eco_speed_max_kmh:
            acc.optimal_speed_ticks += 1
        elif (
            0 < speed_kmh < policy.eco_speed_min_kmh
            and speed_limit_kmh is not None
            and speed_limit_kmh < policy.eco_speed_min_kmh
        ):
            acc.optimal_speed_ticks += 1

        self._track_idle(speed_kmh, timestamp_ms)
        self._track_acceleration(speed_kmh, timestamp_ms)

        acc.prev_speed = speed_kmh
        acc.prev_timestamp = timestamp_ms

    def _track_cornering(
        self,
        speed_kmh: float,
        timestamp_ms: float,
        heading_deg: float | None,
    ) -> None:
        acc = self._acc
        policy = self.policy
        if (
            heading_deg is None
            or acc.prev_heading is None
            or acc.prev_timestamp is None
            or speed_kmh <= policy.corner_min_speed_kmh
        ):
            return

        dt = (timestamp_ms - acc.prev_timestamp) / 1000.0
        if not _valid_interval(dt):
            return

        d_heading = normalize_heading_delta(heading_deg - acc.prev_heading)
        heading_rate = math.radians(abs(d_heading)) / dt
        lateral_g = (speed_kmh / MS_TO_KMH) * heading_rate / GRAVITY_MS2

        if lateral_g <= policy.lateral_g_noise:
            acc.in_hard_corner = False
            return

        acc.lateral_g_samples.append(lateral_g)
        acc.max_lateral_g = max(acc.max_lateral_g, lateral_g)
        if lateral_g > policy.hard_corner_g:
            if not acc.in_hard_corner:
                acc.hard_corners += 1
                acc.in_hard_corner = True
                logger.debug("Hard corner detected (%.2f g)", lateral_g)
        else:
            acc.in_hard_corner = False

    def _track_idle(self, speed_kmh: float, timestamp_ms: float) -> None:
        acc = self._acc
        if speed_kmh < self.policy.idle_speed_kmh:
            if not acc.is_idle:
                acc.is_idle = True
                acc.idle_periods += 1
                acc.last_idle_tick = timestamp_ms
            elif acc.last_idle_tick is not None:
                acc.idle_time += (timestamp_ms - acc.last_idle_tick) / 1000.0
                acc.last_idle_tick = timestamp_ms
        else:
            acc.is_idle = False
            acc.last_idle_tick = None

    def _track_acceleration(self, speed_kmh: float, timestamp_ms: float) -> None:
        acc = self._acc
        policy = self.policy
        if acc.prev_speed is None or acc.prev_timestamp is None:
            return

        dt = (timestamp_ms - acc.prev_timestamp) / 1000.0
        if not _valid_interval(dt):
            return

        accel = ((speed_kmh - acc.prev_speed) / MS_TO_KMH) / dt
        if accel > policy.event_accel:
            acc.total_accelerations += 1
            acc.accel_magnitudes.append(accel)
            if accel > policy.harsh_accel:
                acc.harsh_accelerations += 1
        elif accel < -policy.event_accel:
            acc.total_brakes += 1
            acc.decel_magnitudes.append(abs(accel))
            if accel < policy.harsh_brake:
                acc.harsh_brakes += 1
            if policy.coast_brake < accel:
                acc.coast_down_events += 1

    def report(self, now_ms: float | None = None) -> EcoReport:
        """
        Project the current accumulator into an ``EcoReport``.

        ``now_ms`` anchors the duration and time-of-day factors. It defaults
        to the last tick time (or the trip start), so repeated calls without
        new ticks return identical reports.
        """
        acc = self._acc
        policy = self.policy
        if now_ms is None:
            now_ms = acc.last_tick_at if acc.last_tick_at is not None else acc.started_at

        ticks = acc.tick_count or 1
        discipline_pct = acc.within_limit_ticks / ticks * 100
        optimal_pct = acc.optimal_speed_ticks / ticks * 100

        samples = acc.speed_samples
        speed_variance = population_variance(samples)
        speed_stdev = math.sqrt(speed_variance)

        avg_accel = mean(acc.accel_magnitudes)
        avg_decel = mean(acc.decel_magnitudes)
        avg_lateral_g = mean(acc.lateral_g_samples)

        total_events = acc.total_accelerations + acc.total_brakes
        harsh_events = acc.harsh_accelerations + acc.harsh_brakes
        harsh_ratio = harsh_events / total_events if total_events > 0 else 0.0

        smoothness = (1 - harsh_ratio) * 100 - min(
            policy.smooth_corner_cap,
            acc.hard_corners * policy.smooth_corner_rate,
        )

        duration_s = (now_ms - acc.started_at) / 1000.0
        duration_min = duration_s / 60.0
        idle_ratio = acc.idle_time / duration_s if duration_s > 0 else 0.0

        eco = 100.0
        eco -= harsh_ratio * policy.harsh_ratio_weight
        eco -= min(policy.idle_penalty_cap, idle_ratio * policy.idle_ratio_weight)
        eco -= min(
            policy.consistency_penalty_cap,
            speed_stdev / policy.consistency_divisor,
        )
        eco += (
            discipline_pct / 100 * policy.discipline_bonus_max
            - policy.discipline_flat_penalty
        )
        eco += optimal_pct / 100 * policy.optimal_bonus_max - policy.optimal_flat_penalty
        if avg_accel > policy.harsh_accel:
            eco -= min(
                policy.avg_accel_penalty_cap,
                (avg_accel - policy.harsh_accel) * policy.avg_accel_penalty_rate,
            )
        eco -= min(policy.eco_corner_cap, acc.hard_corners * policy.eco_corner_rate)

        fatigue = self._fatigue_risk(now_ms, duration_min, speed_stdev)

        return EcoReport(
            eco_score=int(round_half_up(clamp(eco, 0, 100))),
            smoothness_score=int(round_half_up(clamp(smoothness, 0, 100))),
            fatigue_risk_score=int(round_half_up(clamp(fatigue, 0, 100))),
            harsh_accelerations=acc.harsh_accelerations,
            harsh_brakes=acc.harsh_brakes,
            hard_corners=acc.hard_corners,
            total_accelerations=acc.total_accelerations,
            total_brakes=acc.total_brakes,
            idle_time=acc.idle_time,
            idle_periods=acc.idle_periods,
            speed_discipline_percent=int(round_half_up(discipline_pct)),
            optimal_speed_percent=int(round_half_up(optimal_pct)),
            avg_acceleration=round_half_up(avg_accel, 2),
            avg_deceleration=round_half_up(avg_decel, 2),
            avg_lateral_g=round_half_up(avg_lateral_g, 2),
            max_lateral_g=round_half_up(acc.max_lateral_g, 2),
            coast_down_events=acc.coast_down_events,
            speed_variance=round_half_up(speed_variance, 1),
        )

    def _fatigue_risk(
        self,
        now_ms: float,
        duration_min: float,
        speed_stdev: float,
    ) -> float:
        policy = self.policy
        samples = self._acc.speed_samples
        risk = 0.0

        if duration_min > policy.fatigue_long_drive_min:
            risk += min(
                policy.fatigue_long_drive_cap,
                (duration_min - policy.fatigue_long_drive_min)
                / policy.fatigue_long_drive_rate,
            )
        if duration_min > policy.fatigue_very_long_drive_min:
            risk += min(
                policy.fatigue_very_long_drive_cap,
                (duration_min - policy.fatigue_very_long_drive_min)
                / policy.fatigue_very_long_drive_rate,
            )
        if speed_stdev > policy.fatigue_stdev_floor:
            risk += min(
                policy.fatigue_stdev_cap,
                (speed_stdev - policy.fatigue_stdev_floor) / policy.fatigue_stdev_rate,
            )

        hour = datetime.fromtimestamp(now_ms / 1000.0, tz=self._tz).hour
        if hour >= 23 or hour < 5:
            risk += policy.fatigue_night_points
        elif 13 <= hour <= 15:
            risk += policy.fatigue_afternoon_points

        if duration_min > policy.fatigue_recent_after_min and samples:
            recent = samples[-policy.fatigue_recent_samples :]
            if math.sqrt(population_variance(recent)) > policy.fatigue_recent_stdev:
                risk += policy.fatigue_recent_points

        return risk
