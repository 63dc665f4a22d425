import pytest

from core.exceptions import PositionSourceError, ValidationException
from core.timers import ManualScheduler
from tracking.services.kinematics import (
    SOURCE_ERROR_MESSAGES,
    KinematicTracker,
    PositionSample,
)
from tracking.services.session import StaticPositionSource


def _sample(lat: float, lon: float, speed_ms: float | None, ts: float, **extra):
    return PositionSample(
        latitude=lat,
        longitude=lon,
        speed=speed_ms,
        timestamp=ts,
        **extra,
    )


def _started(scheduler: ManualScheduler) -> KinematicTracker:
    tracker = KinematicTracker(scheduler.now_ms)
    tracker.start(StaticPositionSource())
    return tracker


def test_start_without_source_reports_unsupported() -> None:
    tracker = KinematicTracker(lambda: 0.0)

    with pytest.raises(PositionSourceError) as raised:
        tracker.start(StaticPositionSource(available=False))

    assert raised.value.reason == PositionSourceError.UNSUPPORTED
    assert not tracker.is_tracking
    assert tracker.state.error == SOURCE_ERROR_MESSAGES[PositionSourceError.UNSUPPORTED]


def test_speed_is_converted_and_noise_clamped(scheduler: ManualScheduler) -> None:
    tracker = _started(scheduler)

    tracker.ingest(_sample(0.0, 0.0, 10.0, scheduler.now_ms()))
    assert tracker.state.speed == pytest.approx(36.0)

    tracker.ingest(_sample(0.0, 0.0, 0.2, scheduler.now_ms() + 1000))
    assert tracker.state.speed == 0.0

    tracker.ingest(_sample(0.0, 0.0, None, scheduler.now_ms() + 2000))
    assert tracker.state.speed == 0.0


def test_distance_ignores_gps_jitter(scheduler: ManualScheduler) -> None:
    tracker = _started(scheduler)
    now = scheduler.now_ms()

    tracker.ingest(_sample(0.0, 0.0, 10.0, now))
    # ~1.1 m north: jitter, not movement
    tracker.ingest(_sample(0.00001, 0.0, 10.0, now + 1000))
    assert tracker.state.distance == 0.0

    # ~111 m east of the previous fix
    tracker.ingest(_sample(0.00001, 0.001, 10.0, now + 2000))
    assert tracker.state.distance == pytest.approx(111.2, abs=0.5)


def test_max_and_average_only_count_moving_samples(scheduler: ManualScheduler) -> None:
    tracker = _started(scheduler)
    now = scheduler.now_ms()

    tracker.ingest(_sample(0.0, 0.0, 10.0, now))  # 36 km/h
    tracker.ingest(_sample(0.0, 0.0, 0.0, now + 1000))
    tracker.ingest(_sample(0.0, 0.0, 20.0, now + 2000))  # 72 km/h

    assert tracker.state.max_speed == pytest.approx(72.0)
    assert tracker.state.avg_speed == pytest.approx(54.0)


def test_duration_tracks_elapsed_time(scheduler: ManualScheduler) -> None:
    tracker = _started(scheduler)
    scheduler.advance(90_000)

    tracker.ingest(_sample(0.0, 0.0, 10.0, scheduler.now_ms()))
    assert tracker.state.duration == pytest.approx(90.0)

    scheduler.advance(10_000)
    state = tracker.stop()
    assert state.duration == pytest.approx(100.0)
    assert not state.is_tracking


def test_samples_are_ignored_when_not_tracking() -> None:
    tracker = KinematicTracker(lambda: 0.0)
    tracker.ingest(_sample(1.0, 1.0, 10.0, 0.0))
    assert tracker.state.speed is None
    assert tracker.state.latitude is None


def test_reset_trip_keeps_tracking(scheduler: ManualScheduler) -> None:
    tracker = _started(scheduler)
    now = scheduler.now_ms()
    tracker.ingest(_sample(0.0, 0.0, 10.0, now))
    tracker.ingest(_sample(0.0, 0.001, 10.0, now + 1000))

    tracker.reset_trip()
    assert tracker.is_tracking
    assert tracker.state.distance == 0.0
    assert tracker.state.max_speed == 0.0

    # The first fix after a reset has no predecessor
    tracker.ingest(_sample(0.0, 0.01, 10.0, now + 2000))
    assert tracker.state.distance == 0.0


def test_fail_records_reason_and_stops(scheduler: ManualScheduler) -> None:
    tracker = _started(scheduler)
    state = tracker.fail(PositionSourceError.PERMISSION_DENIED)

    assert not state.is_tracking
    assert state.error == SOURCE_ERROR_MESSAGES[PositionSourceError.PERMISSION_DENIED]


def test_parse_rejects_out_of_range_coordinates() -> None:
    with pytest.raises(ValidationException):
        PositionSample.parse({"latitude": 95.0, "longitude": 0.0, "timestamp": 0})

    sample = PositionSample.parse(
        {"latitude": 32.0, "longitude": -97.0, "timestamp": 1, "extra": "ignored"},
    )
    assert sample.heading is None
