"""Import all domain records so callers can use ``from vtms.models import ...``."""
from vtms.models.base import ActivityType, AlertLevel, AlertState, AreaKindEnum, Severity
from vtms.models.vessel import Position, VesselSnapshot
from vtms.models.collision_alert import (
    CollisionAlert,
    CollisionDetectionResult,
    ProximityPair,
    pair_key,
)
from vtms.models.rendezvous_event import PairHistory, RendezvousEvent
from vtms.models.loitering_event import LoiteringEvent
from vtms.models.activity import (
    ActivityDetectionResult,
    ActivityEvent,
    CollisionEvidence,
    Evidence,
    GenericEvidence,
    LoiteringEvidence,
    RendezvousEvidence,
    SuspiciousActivity,
)
