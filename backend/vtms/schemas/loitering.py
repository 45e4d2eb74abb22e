"""Pydantic schemas for loitering event responses."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from vtms.schemas.vessel import PositionRead


class LoiteringEventRead(BaseModel):
    id: str
    vessel_id: str
    start_time: datetime
    end_time: Optional[datetime] = None
    centroid: PositionRead
    duration_sec: float
    max_radius_nm: float
    avg_speed: float
    max_speed: float
    in_anchorage_area: bool
    vessel_type: Optional[int] = None
    completed: bool

    model_config = {"from_attributes": True}
