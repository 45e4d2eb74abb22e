"""Pydantic schemas for positions and vessel snapshots."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel


class PositionRead(BaseModel):
    latitude: float
    longitude: float

    model_config = {"from_attributes": True}


class VesselSnapshotRead(BaseModel):
    vessel_id: str
    position: PositionRead
    timestamp: datetime
    course: Optional[float] = None
    speed: Optional[float] = None
    heading: Optional[float] = None
    name: Optional[str] = None
    vessel_type: Optional[int] = None

    model_config = {"from_attributes": True}
