"""Tests for CollisionAlertTracker alert lifecycle."""
from datetime import timedelta
from unittest.mock import MagicMock

from vtms.models.base import AlertLevel
from vtms.models.vessel import Position
from vtms.modules.collision_detector import CollisionAlertTracker
from vtms.modules.proximity import CollisionConfig
from vtms.utils.geo import destination_point

ORIGIN = Position(55.0, 20.0)


def _pair(make_vessel, separation_nm, timestamp):
    a = make_vessel("A", ORIGIN, course=90.0, speed=10.0, timestamp=timestamp)
    b = make_vessel(
        "B", destination_point(ORIGIN, 90.0, separation_nm), course=270.0, speed=10.0, timestamp=timestamp
    )
    return a, b


def test_close_pair_raises_one_alert(make_vessel, t0):
    tracker = CollisionAlertTracker(config=CollisionConfig())
    result = tracker.detect(list(_pair(make_vessel, 0.8, t0)), now=t0)

    assert len(result.alerts) == 1
    assert result.new_alerts == result.alerts
    alert = result.alerts[0]
    assert alert.level == AlertLevel.DANGER
    assert alert.pair_key == ("A", "B")
    assert alert.predicted_point is not None
    assert alert.predicted_time > t0
    assert result.processed_vessels == 2


def test_repeated_ticks_update_instead_of_duplicating(make_vessel, t0):
    tracker = CollisionAlertTracker(config=CollisionConfig())
    first = tracker.detect(list(_pair(make_vessel, 1.5, t0)), now=t0)
    later = t0 + timedelta(seconds=5)
    second = tracker.detect(list(_pair(make_vessel, 0.4, later)), now=later)

    assert len(second.alerts) == 1
    assert second.new_alerts == []
    assert second.alerts[0].id == first.alerts[0].id
    assert second.alerts[0].level == AlertLevel.CRITICAL
    assert second.alerts[0].updated_at == later


def test_reversed_snapshot_order_maps_to_same_alert(make_vessel, t0):
    tracker = CollisionAlertTracker(config=CollisionConfig())
    a, b = _pair(make_vessel, 0.8, t0)
    tracker.detect([a, b], now=t0)
    result = tracker.detect([b, a], now=t0 + timedelta(seconds=5))
    assert len(result.alerts) == 1


def test_alert_resolves_when_vessel_leaves_snapshot(make_vessel, t0):
    tracker = CollisionAlertTracker(config=CollisionConfig())
    a, b = _pair(make_vessel, 0.8, t0)
    tracker.detect([a, b], now=t0)

    tracker.detect([a], now=t0 + timedelta(seconds=5))

    assert tracker.get_active_alerts() == []
    alert = tracker.get_all_alerts()[0]
    assert alert.resolved
    assert alert.resolved_at == t0 + timedelta(seconds=5)


def test_drifting_apart_does_not_resolve(make_vessel, t0):
    tracker = CollisionAlertTracker(config=CollisionConfig())
    tracker.detect(list(_pair(make_vessel, 0.8, t0)), now=t0)

    later = t0 + timedelta(minutes=5)
    tracker.detect(list(_pair(make_vessel, 6.0, later)), now=later)

    active = tracker.get_active_alerts()
    assert len(active) == 1
    assert active[0].proximity.distance_nm > 5.0
    assert active[0].level == AlertLevel.INFO


def test_alert_expires_after_max_age(make_vessel, t0):
    tracker = CollisionAlertTracker(config=CollisionConfig(alert_max_age_minutes=30))
    tracker.detect(list(_pair(make_vessel, 0.8, t0)), now=t0)

    later = t0 + timedelta(minutes=31)
    tracker.detect(list(_pair(make_vessel, 6.0, later)), now=later)

    assert tracker.get_active_alerts() == []


def test_clear_resolved_purges_after_grace_period(make_vessel, t0):
    tracker = CollisionAlertTracker(config=CollisionConfig())
    a, b = _pair(make_vessel, 0.8, t0)
    tracker.detect([a, b], now=t0)
    tracker.detect([a], now=t0)

    assert tracker.clear_resolved(60, now=t0 + timedelta(minutes=30)) == 0
    assert tracker.clear_resolved(60, now=t0 + timedelta(minutes=61)) == 1
    assert tracker.get_all_alerts() == []


def test_distant_pair_raises_nothing(make_vessel, t0):
    tracker = CollisionAlertTracker(config=CollisionConfig())
    result = tracker.detect(list(_pair(make_vessel, 10.0, t0)), now=t0)
    assert result.alerts == []


def test_tick_failure_returns_empty_result(make_vessel, t0):
    engine = MagicMock()
    engine.config = CollisionConfig()
    engine.find_pairs.side_effect = RuntimeError("boom")
    tracker = CollisionAlertTracker(engine=engine)

    result = tracker.detect(list(_pair(make_vessel, 0.8, t0)), now=t0)

    assert result.alerts == []
    assert result.processed_vessels == 0


def test_statistics(make_vessel, t0):
    tracker = CollisionAlertTracker(config=CollisionConfig())
    tracker.detect(list(_pair(make_vessel, 0.8, t0)), now=t0)
    stats = tracker.get_statistics()

    assert stats["total_alerts"] == 1
    assert stats["active_alerts"] == 1
    assert stats["alerts_by_level"]["danger"] == 1
    assert stats["vessels_tracked"] == 2
    assert stats["last_update"] == t0
    assert stats["average_processing_time_ms"] >= 0
