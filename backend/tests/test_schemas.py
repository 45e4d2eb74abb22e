"""Tests for the pydantic read schemas."""
import pytest
from pydantic import ValidationError

from vtms.models.activity import LoiteringEvidence, SuspiciousActivity
from vtms.models.base import ActivityType, Severity
from vtms.models.vessel import Position
from vtms.schemas.activity import LoiteringEvidenceRead, SuspiciousActivityRead


def test_activity_serializes_with_typed_evidence(t0):
    activity = SuspiciousActivity(
        id="loitering_L1_1",
        type=ActivityType.LOITERING,
        severity=Severity.LOW,
        vessels=["L1"],
        detected_at=t0,
        location=Position(55.0, 20.0),
        evidence=LoiteringEvidence("Vessel L1 loitering", 7200.0, 0.1, 0.3, 0.8),
    )

    read = SuspiciousActivityRead.model_validate(activity)

    assert isinstance(read.evidence, LoiteringEvidenceRead)
    assert read.evidence.metrics == {
        "duration": 7200.0,
        "radius": 0.1,
        "averageSpeed": 0.3,
        "maxSpeed": 0.8,
    }
    dumped = read.model_dump(mode="json")
    assert dumped["state"] == "new"
    assert dumped["evidence"]["kind"] == "loitering"
    assert dumped["location"] == {"latitude": 55.0, "longitude": 20.0}


def test_evidence_union_selects_model_by_kind(t0):
    activity = SuspiciousActivity(
        id="loitering_L1_1",
        type=ActivityType.LOITERING,
        severity=Severity.LOW,
        vessels=["L1"],
        detected_at=t0,
        location=Position(55.0, 20.0),
        evidence=LoiteringEvidence("Vessel L1 loitering", 7200.0, 0.1, 0.3, 0.8),
    )
    dumped = SuspiciousActivityRead.model_validate(activity).model_dump(mode="json")

    restored = SuspiciousActivityRead.model_validate(dumped)
    assert isinstance(restored.evidence, LoiteringEvidenceRead)

    dumped["evidence"]["kind"] = "unknown"
    with pytest.raises(ValidationError):
        SuspiciousActivityRead.model_validate(dumped)
