"""Pydantic schemas for collision alert responses."""
from __future__ import annotations

from datetime import datetime
from typing import Optional

from pydantic import BaseModel

from vtms.models.base import AlertLevel
from vtms.schemas.vessel import PositionRead


class ProximityPairRead(BaseModel):
    id_a: str
    id_b: str
    distance_nm: float
    bearing: float
    relative_course: float
    relative_speed: float
    cpa_nm: float
    tcpa_min: float

    model_config = {"from_attributes": True}


class CollisionAlertRead(BaseModel):
    id: str
    vessels: tuple[str, str]
    proximity: ProximityPairRead
    level: AlertLevel
    created_at: datetime
    updated_at: Optional[datetime] = None
    resolved: bool = False
    resolved_at: Optional[datetime] = None
    predicted_point: Optional[PositionRead] = None
    predicted_time: Optional[datetime] = None

    model_config = {"from_attributes": True}
