import pytest

from core.spatial import GeometryService


def test_haversine_small_step() -> None:
    distance = GeometryService.haversine_distance(0.001, 0.0, 0.0, 0.0)
    assert distance == pytest.approx(111.2, abs=0.5)


def test_haversine_units() -> None:
    meters = GeometryService.haversine_distance(-97.0, 32.0, -97.1, 32.1)
    km = GeometryService.haversine_distance(-97.0, 32.0, -97.1, 32.1, unit="km")
    miles = GeometryService.haversine_distance(-97.0, 32.0, -97.1, 32.1, unit="miles")
    assert km == pytest.approx(meters / 1000.0)
    assert miles == pytest.approx(meters / 1609.344)

    with pytest.raises(ValueError):
        GeometryService.haversine_distance(0, 0, 1, 1, unit="furlongs")


def test_has_moved_beyond_checks_each_axis() -> None:
    assert not GeometryService.has_moved_beyond(32.0, -97.0, 32.0003, -97.0003, 0.0005)
    assert GeometryService.has_moved_beyond(32.0, -97.0, 32.0006, -97.0, 0.0005)
    assert GeometryService.has_moved_beyond(32.0, -97.0, 32.0, -97.0006, 0.0005)
