"""Pydantic schemas for rendezvous event responses."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from vtms.schemas.vessel import PositionRead


class RendezvousEventRead(BaseModel):
    id: str
    vessel_a: str
    vessel_b: str
    start_time: datetime
    end_time: Optional[datetime] = None
    meeting_location: PositionRead
    approach_distance: float
    minimum_distance: float
    duration_sec: float
    vessel_a_speed_before: float
    vessel_a_speed_during: float
    vessel_a_speed_after: Optional[float] = None
    vessel_b_speed_before: float
    vessel_b_speed_during: float
    vessel_b_speed_after: Optional[float] = None
    in_port_area: bool
    completed: bool

    model_config = {"from_attributes": True}
