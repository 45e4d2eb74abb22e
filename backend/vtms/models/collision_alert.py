"""ProximityPair and CollisionAlert — pairwise close-approach records."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from vtms.models.base import AlertLevel
from vtms.models.vessel import Position


@dataclass(frozen=True)
class ProximityPair:
    id_a: str
    id_b: str
    distance_nm: float
    bearing: float
    relative_course: float
    relative_speed: float
    cpa_nm: float
    tcpa_min: float

    @property
    def pair_key(self) -> tuple[str, str]:
        return pair_key(self.id_a, self.id_b)


@dataclass
class CollisionAlert:
    id: str
    vessels: tuple[str, str]
    proximity: ProximityPair
    level: AlertLevel
    created_at: datetime
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    predicted_point: Optional[Position] = None
    predicted_time: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @property
    def pair_key(self) -> tuple[str, str]:
        return pair_key(*self.vessels)


@dataclass
class CollisionDetectionResult:
    alerts: list[CollisionAlert]
    processed_vessels: int
    processing_time_ms: float
    timestamp: datetime
    new_alerts: list[CollisionAlert] = field(default_factory=list)


def pair_key(id_a: str, id_b: str) -> tuple[str, str]:
    """Order-independent key for an unordered vessel pair."""
    return (id_a, id_b) if id_a <= id_b else (id_b, id_a)
