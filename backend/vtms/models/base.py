"""Shared enums for all domain records."""
from __future__ import annotations

import enum


class AlertLevel(str, enum.Enum):
    INFO = "info"
    WARNING = "warning"
    DANGER = "danger"
    CRITICAL = "critical"


class AlertState(str, enum.Enum):
    NEW = "new"
    ACKNOWLEDGED = "acknowledged"
    INVESTIGATING = "investigating"
    RESOLVED = "resolved"
    FALSE_POSITIVE = "false_positive"
    ESCALATED = "escalated"


class ActivityType(str, enum.Enum):
    COLLISION_RISK = "collision_risk"
    SUSPICIOUS_RENDEZVOUS = "suspicious_rendezvous"
    LOITERING = "loitering"
    # Not produced by the bundled detectors; accepted by the alert manager
    # for activities raised by external analysers.
    AIS_MANIPULATION = "ais_manipulation"
    ZONE_VIOLATION = "zone_violation"
    DARK_VESSEL = "dark_vessel"
    SPEED_ANOMALY = "speed_anomaly"
    COURSE_DEVIATION = "course_deviation"


class Severity(str, enum.Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"

    @property
    def rank(self) -> int:
        return _SEVERITY_RANK[self]


_SEVERITY_RANK = {
    Severity.LOW: 0,
    Severity.MEDIUM: 1,
    Severity.HIGH: 2,
    Severity.CRITICAL: 3,
}


class AreaKindEnum(str, enum.Enum):
    PORT = "port"
    ANCHORAGE = "anchorage"
