"""LoiteringEvent — a single vessel dwelling at low speed in a small area."""
from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from typing import Optional

from vtms.models.vessel import Position


@dataclass
class LoiteringEvent:
    id: str
    vessel_id: str
    start_time: datetime
    centroid: Position
    duration_sec: float
    max_radius_nm: float
    avg_speed: float
    max_speed: float
    in_anchorage_area: bool = False
    vessel_type: Optional[int] = None
    end_time: Optional[datetime] = None

    @property
    def completed(self) -> bool:
        return self.end_time is not None
