"""Position and VesselSnapshot — one kinematic report per vessel per tick."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional


@dataclass(frozen=True)
class Position:
    latitude: float
    longitude: float


@dataclass(frozen=True)
class VesselSnapshot:
    vessel_id: str
    position: Position
    timestamp: datetime
    course: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    name: Optional[str] = None
    vessel_type: Optional[int] = None

    @property
    def has_kinematics(self) -> bool:
        return self.course is not None and self.speed is not None
