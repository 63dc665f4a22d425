"""Pydantic models for finished trips and their speeding incidents."""

from __future__ import annotations

from pydantic import BaseModel, ConfigDict, Field


class SpeedingIncident(BaseModel):
    """A continuous interval during which speed exceeded the posted limit."""

    start_time: float
    end_time: float
    max_over_speed: float
    speed_limit: float
    max_speed: float

    model_config = ConfigDict(frozen=True)

    @property
    def duration_seconds(self) -> float:
        return max(0.0, (self.end_time - self.start_time) / 1000.0)


class EcoSnapshot(BaseModel):
    """Eco scores captured at the moment a trip was stopped."""

    eco_score: int
    smoothness_score: int
    fatigue_risk_score: int
    harsh_accelerations: int
    harsh_brakes: int
    hard_corners: int
    idle_time: float
    idle_periods: int
    speed_discipline_percent: int
    optimal_speed_percent: int
    coast_down_events: int
    max_lateral_g: float

    model_config = ConfigDict(frozen=True)


class TripRecord(BaseModel):
    """Immutable summary of a completed trip."""

    start_time: float
    end_time: float
    total_distance: float
    duration: float
    max_speed: float
    avg_speed: float
    speeding_incidents: tuple[SpeedingIncident, ...] = Field(default_factory=tuple)
    time_over_limit: float = 0.0
    worst_overspeed: float = 0.0
    eco: EcoSnapshot | None = None

    model_config = ConfigDict(frozen=True)

    @property
    def incident_count(self) -> int:
        return len(self.speeding_incidents)
