"""Trip services module."""

from trips.services.trip_recorder import TripRecorder

__all__ = ["TripRecorder"]
