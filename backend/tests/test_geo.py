"""Tests for the geodesic helpers in vtms.utils.geo."""
import pytest

from vtms.models.vessel import Position
from vtms.utils.geo import (
    angle_diff,
    centroid,
    dead_reckon,
    destination_point,
    distance_nm,
    haversine_nm,
    initial_bearing,
    midpoint,
)


def test_haversine_is_symmetric():
    a, b = (55.0, 20.0), (55.7, 21.3)
    assert haversine_nm(*a, *b) == pytest.approx(haversine_nm(*b, *a))


def test_one_degree_latitude_at_equator():
    assert haversine_nm(0.0, 0.0, 1.0, 0.0) == pytest.approx(60.04, abs=0.01)


def test_distance_to_self_is_zero():
    p = Position(40.0, 49.0)
    assert distance_nm(p, p) == 0.0


@pytest.mark.parametrize(
    "target,expected",
    [
        (Position(1.0, 0.0), 0.0),
        (Position(0.0, 1.0), 90.0),
        (Position(-1.0, 0.0), 180.0),
        (Position(0.0, -1.0), 270.0),
    ],
)
def test_initial_bearing_cardinal_directions(target, expected):
    assert initial_bearing(Position(0.0, 0.0), target) == pytest.approx(expected, abs=1e-6)


def test_initial_bearing_is_normalized():
    bearing = initial_bearing(Position(10.0, 10.0), Position(9.0, 9.0))
    assert 0.0 <= bearing < 360.0


def test_destination_point_travels_requested_distance():
    origin = Position(55.0, 20.0)
    dest = destination_point(origin, 45.0, 12.5)
    assert distance_nm(origin, dest) == pytest.approx(12.5, rel=1e-6)
    assert initial_bearing(origin, dest) == pytest.approx(45.0, abs=1e-6)


def test_dead_reckon_uses_speed_and_minutes():
    origin = Position(55.0, 20.0)
    after_half_hour = dead_reckon(origin, 0.0, 10.0, 30.0)
    assert distance_nm(origin, after_half_hour) == pytest.approx(5.0, rel=1e-6)


def test_midpoint_and_centroid():
    a, b = Position(10.0, 20.0), Position(12.0, 24.0)
    assert midpoint(a, b) == Position(11.0, 22.0)
    assert centroid([a, b]) == Position(11.0, 22.0)
    assert centroid([]) == Position(0.0, 0.0)


def test_angle_diff_wraps():
    assert angle_diff(350.0, 10.0) == pytest.approx(20.0)
    assert angle_diff(10.0, 350.0) == pytest.approx(340.0)
    assert angle_diff(90.0, 270.0) == pytest.approx(180.0)
