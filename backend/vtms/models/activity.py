"""SuspiciousActivity entity and its per-kind evidence payloads.

Evidence is a tagged union: each detector kind carries its own typed payload,
and ``metrics`` is derived from that payload rather than stored free-form.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Literal, Optional, Union

from vtms.models.base import ActivityType, AlertState, Severity
from vtms.models.loitering_event import LoiteringEvent
from vtms.models.rendezvous_event import RendezvousEvent
from vtms.models.vessel import Position


@dataclass(frozen=True)
class ActivityEvent:
    timestamp: datetime
    type: str
    description: str
    data: Optional[dict[str, Any]] = None


@dataclass
class CollisionEvidence:
    description: str
    distance_nm: float
    cpa_nm: float
    tcpa_min: float
    bearing: float
    relative_speed: float
    level: str
    timeline: list[ActivityEvent] = field(default_factory=list)
    kind: Literal["collision_risk"] = "collision_risk"

    @property
    def metrics(self) -> dict[str, float]:
        return {
            "distance": self.distance_nm,
            "cpa": self.cpa_nm,
            "tcpa": self.tcpa_min,
            "bearing": self.bearing,
            "relativeSpeed": self.relative_speed,
        }


@dataclass
class RendezvousEvidence:
    description: str
    minimum_distance: float
    duration_sec: float
    vessel_a_speed_before: float
    vessel_a_speed_during: float
    vessel_b_speed_before: float
    vessel_b_speed_during: float
    timeline: list[ActivityEvent] = field(default_factory=list)
    kind: Literal["suspicious_rendezvous"] = "suspicious_rendezvous"

    @property
    def metrics(self) -> dict[str, float]:
        return {
            "minimumDistance": self.minimum_distance,
            "duration": self.duration_sec,
            "vessel1SpeedBefore": self.vessel_a_speed_before,
            "vessel1SpeedDuring": self.vessel_a_speed_during,
            "vessel2SpeedBefore": self.vessel_b_speed_before,
            "vessel2SpeedDuring": self.vessel_b_speed_during,
        }


@dataclass
class LoiteringEvidence:
    description: str
    duration_sec: float
    radius_nm: float
    average_speed: float
    max_speed: float
    timeline: list[ActivityEvent] = field(default_factory=list)
    kind: Literal["loitering"] = "loitering"

    @property
    def metrics(self) -> dict[str, float]:
        return {
            "duration": self.duration_sec,
            "radius": self.radius_nm,
            "averageSpeed": self.average_speed,
            "maxSpeed": self.max_speed,
        }


@dataclass
class GenericEvidence:
    """Evidence for activity kinds raised outside the bundled detectors."""

    description: str
    values: dict[str, float] = field(default_factory=dict)
    timeline: list[ActivityEvent] = field(default_factory=list)
    kind: Literal["generic"] = "generic"

    @property
    def metrics(self) -> dict[str, float]:
        return dict(self.values)


Evidence = Union[CollisionEvidence, RendezvousEvidence, LoiteringEvidence, GenericEvidence]


@dataclass
class SuspiciousActivity:
    id: str
    type: ActivityType
    severity: Severity
    vessels: list[str]
    detected_at: datetime
    location: Position
    evidence: Evidence
    state: AlertState = AlertState.NEW
    assigned_to: Optional[str] = None
    notes: list[str] = field(default_factory=list)
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    escalated_at: Optional[datetime] = None
    escalated_to: Optional[str] = None

    @property
    def is_pending(self) -> bool:
        return self.state in (AlertState.NEW, AlertState.ACKNOWLEDGED)

    @property
    def is_closed(self) -> bool:
        return self.state in (AlertState.RESOLVED, AlertState.FALSE_POSITIVE)


@dataclass
class ActivityDetectionResult:
    activities: list[SuspiciousActivity]
    rendezvous_events: list[RendezvousEvent]
    loitering_events: list[LoiteringEvent]
    processed_vessels: int
    processing_time_ms: float
    timestamp: datetime
    new_activities: list[SuspiciousActivity] = field(default_factory=list)
