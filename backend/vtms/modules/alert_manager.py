"""Suspicious-activity lifecycle: state machine, notes and audit history.

Transitions:
  acknowledge          NEW → ACKNOWLEDGED
  investigate          NEW | ACKNOWLEDGED → INVESTIGATING
  resolve              any → RESOLVED
  mark_false_positive  any → FALSE_POSITIVE
  escalate             any except RESOLVED → ESCALATED

Every mutator returns a bool and never raises: an unknown id or a transition
that is not allowed from the current state returns False and leaves the
activity untouched.  Each successful mutation appends an ActivityEvent to the
activity's history, which is kept separately from the activity itself and is
only removed together with it by ``cleanup``.
"""
from __future__ import annotations

import logging
from collections import Counter
from datetime import datetime, timedelta, timezone
from typing import Optional

from vtms.models.activity import ActivityEvent, CollisionEvidence, Evidence, SuspiciousActivity
from vtms.models.base import ActivityType, AlertLevel, AlertState, Severity
from vtms.models.collision_alert import CollisionAlert
from vtms.models.vessel import Position

logger = logging.getLogger(__name__)

_LEVEL_TO_SEVERITY: dict[AlertLevel, Severity] = {
    AlertLevel.CRITICAL: Severity.CRITICAL,
    AlertLevel.DANGER: Severity.HIGH,
    AlertLevel.WARNING: Severity.MEDIUM,
    AlertLevel.INFO: Severity.LOW,
}


def severity_for_level(level: AlertLevel) -> Severity:
    return _LEVEL_TO_SEVERITY.get(level, Severity.LOW)


def collision_evidence(alert: CollisionAlert) -> CollisionEvidence:
    """Evidence snapshot of a collision alert's current proximity and level."""
    proximity = alert.proximity
    id_a, id_b = alert.vessels
    return CollisionEvidence(
        description=f"Collision risk between vessels {id_a} and {id_b}",
        distance_nm=proximity.distance_nm,
        cpa_nm=proximity.cpa_nm,
        tcpa_min=proximity.tcpa_min,
        bearing=proximity.bearing,
        relative_speed=proximity.relative_speed,
        level=alert.level.value,
        timeline=[
            ActivityEvent(
                timestamp=alert.created_at,
                type="detection",
                description="Collision risk detected",
                data={"alert_id": alert.id, "level": alert.level.value},
            )
        ],
    )


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class AlertLifecycleManager:
    def __init__(self):
        self._activities: dict[str, SuspiciousActivity] = {}
        self._history: dict[str, list[ActivityEvent]] = {}

    # ── Creation ──────────────────────────────────────────────────────────────

    def create(
        self,
        type: ActivityType,
        vessels: list[str],
        location: Position,
        evidence: Evidence,
        severity: Severity,
        now: Optional[datetime] = None,
    ) -> SuspiciousActivity:
        now = now or _utcnow()
        activity = SuspiciousActivity(
            id=self._new_id(type, vessels, now),
            type=type,
            severity=severity,
            vessels=list(vessels),
            detected_at=now,
            location=location,
            evidence=evidence,
        )
        self._activities[activity.id] = activity
        self._record(activity.id, now, "created", f"Activity detected: {evidence.description}")
        logger.info(
            "Activity %s created (%s, severity=%s, vessels=%s)",
            activity.id,
            type.value,
            severity.value,
            ",".join(activity.vessels),
        )
        return activity

    def create_from_collision(
        self,
        alert: CollisionAlert,
        location: Optional[Position] = None,
        now: Optional[datetime] = None,
    ) -> SuspiciousActivity:
        """Wrap a collision alert as a COLLISION_RISK activity.

        ``location`` defaults to the alert's predicted collision point; callers
        without one should pass the pair's current midpoint.
        """
        return self.create(
            ActivityType.COLLISION_RISK,
            list(alert.vessels),
            location or alert.predicted_point or Position(0.0, 0.0),
            collision_evidence(alert),
            severity_for_level(alert.level),
            now=now,
        )

    # ── Transitions ───────────────────────────────────────────────────────────

    def acknowledge(self, activity_id: str, user: str, now: Optional[datetime] = None) -> bool:
        activity = self._activities.get(activity_id)
        if activity is None or activity.state != AlertState.NEW:
            return False
        now = now or _utcnow()
        activity.state = AlertState.ACKNOWLEDGED
        activity.acknowledged_at = now
        activity.acknowledged_by = user
        self._record(activity_id, now, "acknowledged", f"Alert acknowledged by {user}")
        return True

    def investigate(self, activity_id: str, user: str, now: Optional[datetime] = None) -> bool:
        activity = self._activities.get(activity_id)
        if activity is None or activity.state not in (AlertState.NEW, AlertState.ACKNOWLEDGED):
            return False
        now = now or _utcnow()
        activity.state = AlertState.INVESTIGATING
        activity.assigned_to = user
        self._record(activity_id, now, "investigation_started", f"Investigation started by {user}")
        return True

    def resolve(self, activity_id: str, user: str, reason: str, now: Optional[datetime] = None) -> bool:
        activity = self._activities.get(activity_id)
        if activity is None:
            return False
        now = now or _utcnow()
        activity.state = AlertState.RESOLVED
        activity.resolved_at = now
        activity.resolved_by = user
        activity.notes.append(f"Resolution: {reason}")
        self._record(activity_id, now, "resolved", reason, {"user": user})
        return True

    def mark_false_positive(
        self,
        activity_id: str,
        user: str,
        reason: str,
        now: Optional[datetime] = None,
    ) -> bool:
        activity = self._activities.get(activity_id)
        if activity is None:
            return False
        now = now or _utcnow()
        activity.state = AlertState.FALSE_POSITIVE
        activity.resolved_at = now
        activity.resolved_by = user
        activity.notes.append(f"False positive: {reason}")
        self._record(activity_id, now, "false_positive", reason, {"user": user})
        return True

    def escalate(
        self,
        activity_id: str,
        user: str,
        target: str,
        reason: str,
        now: Optional[datetime] = None,
    ) -> bool:
        activity = self._activities.get(activity_id)
        if activity is None or activity.state == AlertState.RESOLVED:
            return False
        now = now or _utcnow()
        activity.state = AlertState.ESCALATED
        activity.escalated_at = now
        activity.escalated_to = target
        activity.notes.append(f"Escalated to {target}: {reason}")
        self._record(activity_id, now, "escalated", f"Escalated to {target}: {reason}", {"user": user})
        return True

    def add_note(self, activity_id: str, note: str, user: str, now: Optional[datetime] = None) -> bool:
        activity = self._activities.get(activity_id)
        if activity is None:
            return False
        now = now or _utcnow()
        activity.notes.append(f"[{now.isoformat()}] {user}: {note}")
        self._record(activity_id, now, "note_added", note, {"user": user})
        return True

    def update_evidence(
        self,
        activity_id: str,
        evidence: Evidence,
        severity: Optional[Severity] = None,
        now: Optional[datetime] = None,
    ) -> bool:
        """Replace an activity's evidence; severity is only ever raised."""
        activity = self._activities.get(activity_id)
        if activity is None:
            return False
        now = now or _utcnow()
        activity.evidence = evidence
        data = None
        if severity is not None and severity.rank > activity.severity.rank:
            data = {"from": activity.severity.value, "to": severity.value}
            activity.severity = severity
        self._record(activity_id, now, "evidence_updated", evidence.description, data)
        return True

    # ── Queries ───────────────────────────────────────────────────────────────

    def get(self, activity_id: str) -> Optional[SuspiciousActivity]:
        return self._activities.get(activity_id)

    def get_all(self) -> list[SuspiciousActivity]:
        return list(self._activities.values())

    def get_by_state(self, state: AlertState) -> list[SuspiciousActivity]:
        return [a for a in self._activities.values() if a.state == state]

    def get_by_type(self, type: ActivityType) -> list[SuspiciousActivity]:
        return [a for a in self._activities.values() if a.type == type]

    def get_by_severity(self, severity: Severity) -> list[SuspiciousActivity]:
        return [a for a in self._activities.values() if a.severity == severity]

    def get_pending(self) -> list[SuspiciousActivity]:
        return [a for a in self._activities.values() if a.is_pending]

    def get_history(self, activity_id: str) -> list[ActivityEvent]:
        return list(self._history.get(activity_id, ()))

    def get_statistics(self) -> dict:
        activities = self._activities.values()
        return {
            "total": len(self._activities),
            "pending": sum(1 for a in activities if a.is_pending),
            "active": sum(1 for a in activities if not a.is_closed),
            "by_state": dict(Counter(a.state.value for a in activities)),
            "by_type": dict(Counter(a.type.value for a in activities)),
            "by_severity": dict(Counter(a.severity.value for a in activities)),
        }

    # ── Maintenance ───────────────────────────────────────────────────────────

    def cleanup(self, max_age_hours: float = 24, now: Optional[datetime] = None) -> int:
        """Remove closed activities (and their history) resolved before the cutoff."""
        cutoff = (now or _utcnow()) - timedelta(hours=max_age_hours)
        stale = [
            activity_id
            for activity_id, activity in self._activities.items()
            if activity.is_closed and activity.resolved_at is not None and activity.resolved_at < cutoff
        ]
        for activity_id in stale:
            del self._activities[activity_id]
            self._history.pop(activity_id, None)
        if stale:
            logger.info("Removed %d closed activities older than %sh", len(stale), max_age_hours)
        return len(stale)

    # ── Internals ─────────────────────────────────────────────────────────────

    def _new_id(self, type: ActivityType, vessels: list[str], now: datetime) -> str:
        base = f"{type.value}_{'-'.join(sorted(vessels))}_{int(now.timestamp() * 1000)}"
        activity_id, n = base, 1
        while activity_id in self._activities:
            activity_id = f"{base}_{n}"
            n += 1
        return activity_id

    def _record(
        self,
        activity_id: str,
        now: datetime,
        event_type: str,
        description: str,
        data: Optional[dict] = None,
    ) -> None:
        self._history.setdefault(activity_id, []).append(
            ActivityEvent(timestamp=now, type=event_type, description=description, data=data)
        )
