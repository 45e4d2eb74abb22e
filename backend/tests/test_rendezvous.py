"""Tests for rendezvous detection and pair history."""
from datetime import timedelta

import pytest

from vtms.models.base import AreaKindEnum
from vtms.models.vessel import Position
from vtms.modules.rendezvous_detector import PairHistoryTracker, RendezvousConfig, RendezvousDetector
from vtms.utils.areas import NamedArea
from vtms.utils.geo import destination_point, midpoint

ORIGIN = Position(55.0, 20.0)


def _detector(**kwargs):
    return RendezvousDetector(config=RendezvousConfig(), ports=kwargs.pop("ports", []), **kwargs)


def _tick(detector, make_vessel, t0, minute, separation_nm, speed):
    now = t0 + timedelta(minutes=minute)
    a = make_vessel("A", ORIGIN, course=90.0, speed=speed, timestamp=now)
    b = make_vessel(
        "B", destination_point(ORIGIN, 90.0, separation_nm), course=270.0, speed=speed, timestamp=now
    )
    return detector.detect([a, b], now=now)


def _approach_and_meet(detector, make_vessel, t0, meet_minutes=8):
    """Five ticks 6 NM apart, then slow at 0.3 NM for ``meet_minutes``."""
    for minute in range(5):
        assert _tick(detector, make_vessel, t0, minute, 6.0, 10.0) == []
    for minute in range(5, 5 + meet_minutes):
        assert _tick(detector, make_vessel, t0, minute, 0.3, 1.0) == []
    return 5 + meet_minutes


def test_approach_meet_depart_yields_one_completed_event(make_vessel, t0):
    detector = _detector()
    minute = _approach_and_meet(detector, make_vessel, t0)

    completed = _tick(detector, make_vessel, t0, minute, 3.0, 10.0)

    assert len(completed) == 1
    event = completed[0]
    assert (event.vessel_a, event.vessel_b) == ("A", "B")
    assert event.start_time == t0 + timedelta(minutes=5)
    assert event.end_time == t0 + timedelta(minutes=minute)
    assert event.duration_sec == pytest.approx(480.0)
    assert event.minimum_distance == pytest.approx(0.3, rel=1e-3)
    assert event.vessel_a_speed_before > 3.0
    assert event.vessel_a_speed_during == 1.0
    assert event.vessel_b_speed_after == 10.0
    assert not event.in_port_area
    assert detector.get_active_rendezvous() == []
    assert detector.get_completed_rendezvous() == [event]


def test_active_record_is_extended_while_close(make_vessel, t0):
    detector = _detector()
    _approach_and_meet(detector, make_vessel, t0, meet_minutes=3)

    active = detector.get_active_rendezvous()
    assert len(active) == 1
    assert active[0].duration_sec == pytest.approx(120.0)
    assert active[0].meeting_location == midpoint(
        ORIGIN, destination_point(ORIGIN, 90.0, 0.3)
    )


def test_pair_that_never_separated_is_not_flagged(make_vessel, t0):
    detector = _detector()
    for minute in range(20):
        _tick(detector, make_vessel, t0, minute, 0.3, 1.0)
    assert detector.get_active_rendezvous() == []
    assert _tick(detector, make_vessel, t0, 20, 3.0, 10.0) == []
    assert detector.get_completed_rendezvous() == []


def test_short_contact_is_discarded(make_vessel, t0):
    detector = _detector()
    minute = _approach_and_meet(detector, make_vessel, t0, meet_minutes=2)

    assert _tick(detector, make_vessel, t0, minute, 3.0, 10.0) == []
    assert detector.get_active_rendezvous() == []
    assert detector.get_completed_rendezvous() == []


def test_fast_vessels_do_not_open_a_record(make_vessel, t0):
    detector = _detector()
    for minute in range(5):
        _tick(detector, make_vessel, t0, minute, 6.0, 10.0)
    _tick(detector, make_vessel, t0, 5, 0.3, 8.0)
    assert detector.get_active_rendezvous() == []


def test_unknown_speed_counts_as_slow(make_vessel, t0):
    detector = _detector()
    for minute in range(5):
        _tick(detector, make_vessel, t0, minute, 6.0, 10.0)
    _tick(detector, make_vessel, t0, 5, 0.3, None)
    assert len(detector.get_active_rendezvous()) == 1


def test_meeting_inside_port_is_flagged(make_vessel, t0):
    port = NamedArea("Test harbour", ORIGIN, 1.0, AreaKindEnum.PORT)
    detector = _detector(ports=[port])
    minute = _approach_and_meet(detector, make_vessel, t0)

    completed = _tick(detector, make_vessel, t0, minute, 3.0, 10.0)

    assert len(completed) == 1
    assert completed[0].in_port_area


def test_vanished_vessel_leaves_record_untouched(make_vessel, t0):
    detector = _detector()
    minute = _approach_and_meet(detector, make_vessel, t0, meet_minutes=3)
    before = detector.get_active_rendezvous()[0].duration_sec

    now = t0 + timedelta(minutes=minute)
    detector.detect([make_vessel("A", ORIGIN, speed=1.0, timestamp=now)], now=now)

    active = detector.get_active_rendezvous()
    assert len(active) == 1
    assert active[0].duration_sec == before


def test_cleanup_drops_old_completed_events(make_vessel, t0):
    detector = _detector()
    minute = _approach_and_meet(detector, make_vessel, t0)
    _tick(detector, make_vessel, t0, minute, 3.0, 10.0)

    assert detector.cleanup(24, now=t0 + timedelta(hours=1)) == 0
    assert detector.cleanup(24, now=t0 + timedelta(hours=25)) == 1
    assert detector.get_completed_rendezvous() == []
    assert detector.get_statistics()["pairs_tracked"] == 0


def test_pair_history_is_capped(make_vessel, t0):
    tracker = PairHistoryTracker()
    a = make_vessel("A", ORIGIN, timestamp=t0)
    b = make_vessel("B", destination_point(ORIGIN, 0.0, 1.0), timestamp=t0)
    for i in range(150):
        tracker.update_pair(b, a, float(i), t0 + timedelta(seconds=i))

    pair = tracker.get_pair("A", "B")
    assert pair.pair_key == ("A", "B")
    assert len(pair.distances) == 100
    assert len(pair.locations) == 100
    assert pair.distances[-1] == 149.0
    assert pair.first_encounter == t0


def test_separation_needs_enough_history(make_vessel, t0):
    tracker = PairHistoryTracker()
    for i in range(4):
        now = t0 + timedelta(minutes=i)
        tracker.track_vessel(make_vessel("A", ORIGIN, timestamp=now), now)
        tracker.track_vessel(make_vessel("B", destination_point(ORIGIN, 0.0, 10.0), timestamp=now), now)
    assert not tracker.were_previously_separated("A", "B", 5.0)


def test_average_speed_window(make_vessel, t0):
    tracker = PairHistoryTracker()
    for i, speed in enumerate([20.0, 20.0, 4.0, 6.0]):
        now = t0 + timedelta(minutes=5 * i)
        tracker.track_vessel(make_vessel("A", ORIGIN, speed=speed, timestamp=now), now)

    now = t0 + timedelta(minutes=15)
    assert tracker.average_speed("A", 10.0, now) == pytest.approx(5.0)
    assert tracker.average_speed("missing", 10.0, now) == 0.0
