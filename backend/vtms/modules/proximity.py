"""Pairwise proximity, CPA and TCPA between vessels.

For every vessel moving at or above ``min_speed`` the spatial index is queried
for neighbours inside a box sized to the safety radius; each unordered pair is
evaluated once per tick.  Slow or stationary vessels are never used to
generate candidates but are still indexed, so they show up as the other half
of a pair.

CPA/TCPA use a scalar approximation rather than a full relative-velocity
projection:
  relative speed  = |SOG_b − SOG_a|
  TCPA (minutes)  = (distance − CPA) / closing speed × 60, clamped to
                    [0, max_prediction_time]; −1 when closing speed < 0.1 kn
  CPA             = distance between both vessels dead-reckoned to TCPA
The closing speed is the larger of the scalar relative speed and the
line-of-sight range rate, so head-on pairs at equal speed still register an
approach instead of looking stationary.
"""
from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import Optional

from vtms.config import Settings, settings as _default_settings
from vtms.models.collision_alert import ProximityPair, pair_key
from vtms.models.vessel import Position, VesselSnapshot
from vtms.modules.spatial_index import BoundingBox, QuadTree
from vtms.utils.geo import angle_diff, dead_reckon, distance_nm, initial_bearing

logger = logging.getLogger(__name__)

# Closing speeds below this are treated as "not approaching" (knots)
_MIN_CLOSING_SPEED_KN: float = 0.1


@dataclass(frozen=True)
class CollisionConfig:
    safety_zone_radius: float = 2.0
    warning_threshold: float = 2.0
    danger_threshold: float = 1.0
    critical_threshold: float = 0.5
    tcpa_warning_threshold: float = 15.0
    tcpa_danger_threshold: float = 10.0
    tcpa_critical_threshold: float = 5.0
    min_speed: float = 0.5
    max_prediction_time: float = 30.0
    alert_max_age_minutes: float = 30.0
    quadtree_capacity: int = 10

    @classmethod
    def from_settings(cls, s: Settings) -> CollisionConfig:
        return cls(
            safety_zone_radius=s.SAFETY_ZONE_RADIUS_NM,
            warning_threshold=s.WARNING_THRESHOLD_NM,
            danger_threshold=s.DANGER_THRESHOLD_NM,
            critical_threshold=s.CRITICAL_THRESHOLD_NM,
            tcpa_warning_threshold=s.TCPA_WARNING_MIN,
            tcpa_danger_threshold=s.TCPA_DANGER_MIN,
            tcpa_critical_threshold=s.TCPA_CRITICAL_MIN,
            min_speed=s.COLLISION_MIN_SPEED_KN,
            max_prediction_time=s.MAX_PREDICTION_TIME_MIN,
            alert_max_age_minutes=s.COLLISION_ALERT_MAX_AGE_MIN,
            quadtree_capacity=s.QUADTREE_CAPACITY,
        )


# ── Kinematic helpers ─────────────────────────────────────────────────────────

def _finite(value: Optional[float]) -> Optional[float]:
    """Degrade NaN/inf or non-numeric kinematics to None."""
    if value is None:
        return None
    try:
        value = float(value)
    except (TypeError, ValueError):
        return None
    return value if math.isfinite(value) else None


def _kinematics(vessel: VesselSnapshot) -> Optional[tuple[float, float]]:
    course = _finite(vessel.course)
    speed = _finite(vessel.speed)
    if course is None or speed is None:
        return None
    return course, speed


def calculate_relative_course(a: VesselSnapshot, b: VesselSnapshot) -> float:
    ca, cb = _finite(a.course), _finite(b.course)
    if ca is None or cb is None:
        return 0.0
    return angle_diff(ca, cb)


def calculate_relative_speed(a: VesselSnapshot, b: VesselSnapshot) -> float:
    sa, sb = _finite(a.speed), _finite(b.speed)
    if sa is None or sb is None:
        return 0.0
    return abs(sb - sa)


def _range_rate_closing(a: VesselSnapshot, b: VesselSnapshot) -> float:
    """Line-of-sight closing speed in knots (positive when the gap shrinks)."""
    ka, kb = _kinematics(a), _kinematics(b)
    if ka is None or kb is None:
        return 0.0
    los = math.radians(initial_bearing(a.position, b.position))
    ux, uy = math.sin(los), math.cos(los)
    ca, sa = math.radians(ka[0]), ka[1]
    cb, sb = math.radians(kb[0]), kb[1]
    rel_x = sb * math.sin(cb) - sa * math.sin(ca)
    rel_y = sb * math.cos(cb) - sa * math.cos(ca)
    return -(rel_x * ux + rel_y * uy)


def calculate_closing_speed(a: VesselSnapshot, b: VesselSnapshot) -> float:
    return max(calculate_relative_speed(a, b), _range_rate_closing(a, b))


def predict_position(vessel: VesselSnapshot, minutes: float) -> Position:
    """Dead-reckoned position after ``minutes``; unchanged if kinematics unknown."""
    kin = _kinematics(vessel)
    if kin is None:
        return vessel.position
    course, speed = kin
    return dead_reckon(vessel.position, course, speed, minutes)


def calculate_tcpa(
    a: VesselSnapshot,
    b: VesselSnapshot,
    cpa_nm: float,
    max_prediction_time: float,
) -> float:
    """Minutes until closest approach, or −1 when no meaningful approach exists."""
    if _kinematics(a) is None or _kinematics(b) is None:
        return -1.0

    closing = calculate_closing_speed(a, b)
    if closing < _MIN_CLOSING_SPEED_KN:
        return -1.0

    current = distance_nm(a.position, b.position)
    tcpa = (current - cpa_nm) / closing * 60.0
    return max(0.0, min(tcpa, max_prediction_time))


def calculate_cpa(a: VesselSnapshot, b: VesselSnapshot, max_prediction_time: float) -> float:
    """Predicted minimum separation in nautical miles."""
    current = distance_nm(a.position, b.position)
    if _kinematics(a) is None or _kinematics(b) is None:
        return current

    tcpa = calculate_tcpa(a, b, 0.0, max_prediction_time)
    if tcpa <= 0:
        return current

    return distance_nm(predict_position(a, tcpa), predict_position(b, tcpa))


def calculate_proximity(
    a: VesselSnapshot,
    b: VesselSnapshot,
    max_prediction_time: float = 30.0,
) -> ProximityPair:
    cpa = calculate_cpa(a, b, max_prediction_time)
    return ProximityPair(
        id_a=a.vessel_id,
        id_b=b.vessel_id,
        distance_nm=distance_nm(a.position, b.position),
        bearing=initial_bearing(a.position, b.position),
        relative_course=calculate_relative_course(a, b),
        relative_speed=calculate_relative_speed(a, b),
        cpa_nm=cpa,
        tcpa_min=calculate_tcpa(a, b, cpa, max_prediction_time),
    )


# ── Engine ────────────────────────────────────────────────────────────────────

class ProximityEngine:
    def __init__(self, config: Optional[CollisionConfig] = None, settings: Optional[Settings] = None):
        self.config = config or CollisionConfig.from_settings(settings or _default_settings)
        self.spatial_index: Optional[QuadTree] = None

    def is_active(self, vessel: VesselSnapshot) -> bool:
        speed = _finite(vessel.speed)
        return speed is not None and speed >= self.config.min_speed

    def build_index(self, vessels: list[VesselSnapshot]) -> Optional[QuadTree]:
        self.spatial_index = QuadTree.build(
            ((v.vessel_id, v.position) for v in vessels),
            capacity=self.config.quadtree_capacity,
        )
        return self.spatial_index

    def neighbours(self, vessel: VesselSnapshot, radius_nm: float) -> set[str]:
        if self.spatial_index is None:
            return set()
        found = self.spatial_index.query(BoundingBox.around(vessel.position, radius_nm))
        found.discard(vessel.vessel_id)
        return found

    def find_pairs(self, vessels: list[VesselSnapshot]) -> list[ProximityPair]:
        """Evaluate every unordered pair with an active vessel inside the safety box."""
        by_id = {v.vessel_id: v for v in vessels}
        self.build_index(list(by_id.values()))

        processed: set[tuple[str, str]] = set()
        pairs: list[ProximityPair] = []
        for vessel in by_id.values():
            if not self.is_active(vessel):
                continue
            for other_id in self.neighbours(vessel, self.config.safety_zone_radius):
                key = pair_key(vessel.vessel_id, other_id)
                if key in processed:
                    continue
                processed.add(key)
                other = by_id.get(other_id)
                if other is None:
                    continue
                pairs.append(calculate_proximity(vessel, other, self.config.max_prediction_time))

        logger.debug(
            "Proximity: %d vessels indexed, %d candidate pairs evaluated",
            len(by_id),
            len(pairs),
        )
        return pairs
