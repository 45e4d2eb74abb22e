"""Pydantic schemas for suspicious activities and their evidence.

Evidence payloads are told apart by their ``kind`` literal, so a serialized
activity round-trips to the right evidence model.
"""
from __future__ import annotations

from datetime import datetime
from typing import Annotated, Any, Literal, Optional, Union

from pydantic import BaseModel, Field

from vtms.models.base import ActivityType, AlertState, Severity
from vtms.schemas.loitering import LoiteringEventRead
from vtms.schemas.rendezvous import RendezvousEventRead
from vtms.schemas.vessel import PositionRead


class ActivityEventRead(BaseModel):
    timestamp: datetime
    type: str
    description: str
    data: Optional[dict[str, Any]] = None

    model_config = {"from_attributes": True}


class _EvidenceBase(BaseModel):
    description: str
    timeline: list[ActivityEventRead] = []
    metrics: dict[str, float] = {}

    model_config = {"from_attributes": True}


class CollisionEvidenceRead(_EvidenceBase):
    kind: Literal["collision_risk"]
    distance_nm: float
    cpa_nm: float
    tcpa_min: float
    bearing: float
    relative_speed: float
    level: str


class RendezvousEvidenceRead(_EvidenceBase):
    kind: Literal["suspicious_rendezvous"]
    minimum_distance: float
    duration_sec: float
    vessel_a_speed_before: float
    vessel_a_speed_during: float
    vessel_b_speed_before: float
    vessel_b_speed_during: float


class LoiteringEvidenceRead(_EvidenceBase):
    kind: Literal["loitering"]
    duration_sec: float
    radius_nm: float
    average_speed: float
    max_speed: float


class GenericEvidenceRead(_EvidenceBase):
    kind: Literal["generic"]
    values: dict[str, float] = {}


EvidenceRead = Annotated[
    Union[
        CollisionEvidenceRead,
        RendezvousEvidenceRead,
        LoiteringEvidenceRead,
        GenericEvidenceRead,
    ],
    Field(discriminator="kind"),
]


class SuspiciousActivityRead(BaseModel):
    id: str
    type: ActivityType
    severity: Severity
    vessels: list[str]
    detected_at: datetime
    location: PositionRead
    evidence: EvidenceRead
    state: AlertState
    assigned_to: Optional[str] = None
    notes: list[str] = []
    acknowledged_at: Optional[datetime] = None
    acknowledged_by: Optional[str] = None
    resolved_at: Optional[datetime] = None
    resolved_by: Optional[str] = None
    escalated_at: Optional[datetime] = None
    escalated_to: Optional[str] = None

    model_config = {"from_attributes": True}


class ActivityDetectionResultRead(BaseModel):
    activities: list[SuspiciousActivityRead]
    new_activities: list[SuspiciousActivityRead] = []
    rendezvous_events: list[RendezvousEventRead]
    loitering_events: list[LoiteringEventRead]
    processed_vessels: int
    processing_time_ms: float
    timestamp: datetime

    model_config = {"from_attributes": True}
