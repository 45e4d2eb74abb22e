"""RendezvousEvent and PairHistory — slow close meetings between two vessels."""
from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Optional

from vtms.models.vessel import Position


@dataclass
class RendezvousEvent:
    id: str
    vessel_a: str
    vessel_b: str
    start_time: datetime
    meeting_location: Position
    approach_distance: float
    minimum_distance: float
    vessel_a_speed_before: float
    vessel_a_speed_during: float
    vessel_b_speed_before: float
    vessel_b_speed_during: float
    in_port_area: bool = False
    duration_sec: float = 0.0
    end_time: Optional[datetime] = None
    vessel_a_speed_after: Optional[float] = None
    vessel_b_speed_after: Optional[float] = None
    last_update: Optional[datetime] = None

    @property
    def completed(self) -> bool:
        return self.end_time is not None


@dataclass
class PairHistory:
    pair_key: tuple[str, str]
    first_encounter: datetime
    last_update: datetime
    encounters: int = 0
    distances: list[float] = field(default_factory=list)
    locations: list[Position] = field(default_factory=list)
