"""Shared fixtures: a fixed clock and a vessel snapshot factory."""
from datetime import datetime, timezone

import pytest

from vtms.models.vessel import Position, VesselSnapshot

T0 = datetime(2026, 3, 1, 12, 0, tzinfo=timezone.utc)


@pytest.fixture
def t0():
    return T0


@pytest.fixture
def make_vessel():
    """Factory for VesselSnapshot; positions may be given as Position or (lat, lon)."""

    def _make(vessel_id, position, course=None, speed=None, timestamp=T0, **kwargs):
        if not isinstance(position, Position):
            position = Position(*position)
        return VesselSnapshot(
            vessel_id=vessel_id,
            position=position,
            timestamp=timestamp,
            course=course,
            speed=speed,
            **kwargs,
        )

    return _make
