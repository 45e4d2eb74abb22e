"""Tests for pairwise CPA/TCPA and candidate pair generation."""
import math

import pytest

from vtms.models.base import AlertLevel
from vtms.models.vessel import Position
from vtms.modules.collision_detector import determine_alert_level
from vtms.modules.proximity import (
    CollisionConfig,
    ProximityEngine,
    calculate_proximity,
    calculate_relative_course,
    calculate_relative_speed,
    predict_position,
)
from vtms.utils.geo import destination_point, distance_nm

ORIGIN = Position(55.0, 20.0)


def _head_on(make_vessel, separation_nm, speed=10.0):
    a = make_vessel("A", ORIGIN, course=90.0, speed=speed)
    b = make_vessel("B", destination_point(ORIGIN, 90.0, separation_nm), course=270.0, speed=speed)
    return a, b


def test_reciprocal_courses_have_positive_tcpa(make_vessel):
    a, b = _head_on(make_vessel, 0.8)
    proximity = calculate_proximity(a, b)

    assert proximity.relative_speed == 0.0
    assert proximity.tcpa_min > 0
    assert proximity.tcpa_min == pytest.approx(2.4, abs=0.05)
    assert proximity.cpa_nm < 0.05
    assert proximity.relative_course == pytest.approx(180.0)


def test_reciprocal_courses_reach_danger_and_critical(make_vessel):
    config = CollisionConfig()
    danger = calculate_proximity(*_head_on(make_vessel, 0.8))
    critical = calculate_proximity(*_head_on(make_vessel, 0.4))

    assert determine_alert_level(danger, config) == AlertLevel.DANGER
    assert determine_alert_level(critical, config) == AlertLevel.CRITICAL


def test_parallel_same_speed_has_no_approach(make_vessel):
    a = make_vessel("A", ORIGIN, course=0.0, speed=10.0)
    b = make_vessel("B", destination_point(ORIGIN, 90.0, 1.0), course=0.0, speed=10.0)
    proximity = calculate_proximity(a, b)

    assert proximity.tcpa_min == -1
    assert proximity.cpa_nm == pytest.approx(proximity.distance_nm)
    assert determine_alert_level(proximity, CollisionConfig()) == AlertLevel.INFO


def test_unknown_kinematics_fall_back_to_current_distance(make_vessel):
    a = make_vessel("A", ORIGIN)
    b = make_vessel("B", destination_point(ORIGIN, 0.0, 1.0), course=180.0, speed=12.0)
    proximity = calculate_proximity(a, b)

    assert proximity.tcpa_min == -1
    assert proximity.cpa_nm == pytest.approx(1.0, rel=1e-6)
    assert proximity.relative_speed == 0.0
    assert proximity.relative_course == 0.0


def test_nan_speed_is_treated_as_unknown(make_vessel):
    a = make_vessel("A", ORIGIN, course=90.0, speed=math.nan)
    b = make_vessel("B", destination_point(ORIGIN, 90.0, 0.5), course=270.0, speed=10.0)
    proximity = calculate_proximity(a, b)

    assert proximity.tcpa_min == -1
    assert calculate_relative_speed(a, b) == 0.0


def test_tcpa_is_clamped_to_prediction_horizon(make_vessel):
    a = make_vessel("A", ORIGIN, course=0.0, speed=5.0)
    b = make_vessel("B", destination_point(ORIGIN, 0.0, 1.9), course=0.0, speed=5.2)
    proximity = calculate_proximity(a, b, max_prediction_time=30.0)
    assert 0 <= proximity.tcpa_min <= 30.0


def test_relative_course_and_speed(make_vessel):
    a = make_vessel("A", ORIGIN, course=350.0, speed=8.0)
    b = make_vessel("B", ORIGIN, course=20.0, speed=11.0)
    assert calculate_relative_course(a, b) == pytest.approx(30.0)
    assert calculate_relative_speed(a, b) == pytest.approx(3.0)


def test_predict_position_without_kinematics_stays_put(make_vessel):
    vessel = make_vessel("A", ORIGIN)
    assert predict_position(vessel, 10.0) == ORIGIN


def test_predict_position_dead_reckons(make_vessel):
    vessel = make_vessel("A", ORIGIN, course=0.0, speed=12.0)
    assert distance_nm(ORIGIN, predict_position(vessel, 10.0)) == pytest.approx(2.0, rel=1e-6)


def test_find_pairs_skips_pairs_of_slow_vessels(make_vessel):
    engine = ProximityEngine(config=CollisionConfig())
    a = make_vessel("A", ORIGIN, course=0.0, speed=0.1)
    b = make_vessel("B", destination_point(ORIGIN, 90.0, 0.5), course=0.0, speed=0.2)
    assert engine.find_pairs([a, b]) == []


def test_find_pairs_includes_slow_vessel_as_victim(make_vessel):
    engine = ProximityEngine(config=CollisionConfig())
    moving = make_vessel("A", ORIGIN, course=90.0, speed=12.0)
    anchored = make_vessel("B", destination_point(ORIGIN, 90.0, 0.5), course=0.0, speed=0.0)

    pairs = engine.find_pairs([moving, anchored])

    assert len(pairs) == 1
    assert pairs[0].pair_key == ("A", "B")


def test_find_pairs_deduplicates_unordered_pairs(make_vessel):
    engine = ProximityEngine(config=CollisionConfig())
    a, b = _head_on(make_vessel, 1.0)
    pairs = engine.find_pairs([a, b])
    assert len(pairs) == 1

