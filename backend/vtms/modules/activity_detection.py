"""Activity orchestration — runs the detectors and raises SuspiciousActivity records.

One ``run_detection`` tick:
  1. pulls a single vessel snapshot (or uses the one passed in),
  2. runs collision, rendezvous and loitering detection against it,
  3. turns unresolved collision alerts, completed rendezvous outside ports and
     loitering events outside anchorages into activities via the
     AlertLifecycleManager.

Each collision alert and each loitering event maps to at most one activity.
An open collision alert refreshes its activity's evidence every tick, and a
loitering event reported again on completion does the same, raising severity
when the new level is higher instead of raising a second activity.

Severity rules:
  rendezvous  critical  min distance < 0.1 NM and duration > 10 min
              high      duration > 30 min
              medium    otherwise
  loitering   critical  duration > 12 h and radius < 0.1 NM
              high      duration > 8 h
              medium    duration > 4 h
              low       otherwise
  collision   CRITICAL → critical, DANGER → high, WARNING → medium, INFO → low
"""
from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from typing import Optional

from vtms.config import Settings, settings as _default_settings
from vtms.models.activity import (
    ActivityDetectionResult,
    ActivityEvent,
    LoiteringEvidence,
    RendezvousEvidence,
    SuspiciousActivity,
)
from vtms.models.base import ActivityType, Severity
from vtms.models.collision_alert import CollisionAlert, CollisionDetectionResult
from vtms.models.loitering_event import LoiteringEvent
from vtms.models.rendezvous_event import RendezvousEvent
from vtms.models.vessel import Position, VesselSnapshot
from vtms.modules.alert_manager import AlertLifecycleManager, collision_evidence, severity_for_level
from vtms.modules.collision_detector import CollisionAlertTracker
from vtms.modules.loitering_detector import LoiteringDetector
from vtms.modules.rendezvous_detector import RendezvousDetector
from vtms.modules.vessel_store import VesselSource
from vtms.utils.geo import midpoint

logger = logging.getLogger(__name__)


# ── Severity scoring ──────────────────────────────────────────────────────────

def score_rendezvous(event: RendezvousEvent) -> Severity:
    if event.minimum_distance < 0.1 and event.duration_sec > 600:
        return Severity.CRITICAL
    if event.duration_sec > 1800:
        return Severity.HIGH
    return Severity.MEDIUM


def score_loitering(event: LoiteringEvent) -> Severity:
    if event.duration_sec > 43200 and event.max_radius_nm < 0.1:
        return Severity.CRITICAL
    if event.duration_sec > 28800:
        return Severity.HIGH
    if event.duration_sec > 14400:
        return Severity.MEDIUM
    return Severity.LOW


# ── Evidence builders ─────────────────────────────────────────────────────────

def rendezvous_evidence(event: RendezvousEvent, now: datetime) -> RendezvousEvidence:
    timeline = [
        ActivityEvent(event.start_time, "approach", "Vessels began approaching each other"),
        ActivityEvent(
            now,
            "meeting",
            f"Vessels within {event.minimum_distance:.2f} NM for {int(event.duration_sec // 60)} minutes",
        ),
    ]
    if event.end_time is not None:
        timeline.append(ActivityEvent(event.end_time, "departure", "Vessels departed from meeting location"))

    return RendezvousEvidence(
        description=f"Suspicious meeting detected between vessels {event.vessel_a} and {event.vessel_b}",
        minimum_distance=event.minimum_distance,
        duration_sec=event.duration_sec,
        vessel_a_speed_before=event.vessel_a_speed_before,
        vessel_a_speed_during=event.vessel_a_speed_during,
        vessel_b_speed_before=event.vessel_b_speed_before,
        vessel_b_speed_during=event.vessel_b_speed_during,
        timeline=timeline,
    )


def loitering_evidence(event: LoiteringEvent, now: datetime) -> LoiteringEvidence:
    timeline = [
        ActivityEvent(event.start_time, "loitering_start", "Vessel began loitering in area"),
        ActivityEvent(
            now,
            "loitering_ongoing",
            f"Loitering for {int(event.duration_sec // 60)} minutes "
            f"within {event.max_radius_nm:.2f} NM radius",
        ),
    ]
    if event.end_time is not None:
        timeline.append(ActivityEvent(event.end_time, "loitering_end", "Vessel departed loitering area"))

    return LoiteringEvidence(
        description=f"Vessel {event.vessel_id} loitering in area for extended period",
        duration_sec=event.duration_sec,
        radius_nm=event.max_radius_nm,
        average_speed=event.avg_speed,
        max_speed=event.max_speed,
        timeline=timeline,
    )


# ── Orchestrator ──────────────────────────────────────────────────────────────

class ActivityOrchestrator:
    def __init__(
        self,
        source: Optional[VesselSource] = None,
        settings: Optional[Settings] = None,
        collision: Optional[CollisionAlertTracker] = None,
        rendezvous: Optional[RendezvousDetector] = None,
        loitering: Optional[LoiteringDetector] = None,
        manager: Optional[AlertLifecycleManager] = None,
    ):
        self.settings = settings or _default_settings
        self.source = source
        self.collision = collision or CollisionAlertTracker(settings=self.settings)
        self.rendezvous = rendezvous or RendezvousDetector(settings=self.settings)
        self.loitering = loitering or LoiteringDetector(settings=self.settings)
        self.manager = manager or AlertLifecycleManager()
        # detector record id → activity id
        self._collision_activities: dict[str, str] = {}
        self._loitering_activities: dict[str, str] = {}
        self._last_run: Optional[datetime] = None

    def _snapshot(self, vessels: Optional[list[VesselSnapshot]]) -> list[VesselSnapshot]:
        if vessels is not None:
            return vessels
        if self.source is None:
            return []
        return self.source.get_all_vessels()

    def run_collision(
        self,
        vessels: Optional[list[VesselSnapshot]] = None,
        now: Optional[datetime] = None,
    ) -> CollisionDetectionResult:
        """Collision tick only; activities are raised on the next ``run_detection``."""
        return self.collision.detect(self._snapshot(vessels), now=now)

    def run_detection(
        self,
        vessels: Optional[list[VesselSnapshot]] = None,
        now: Optional[datetime] = None,
    ) -> ActivityDetectionResult:
        started = time.perf_counter()
        now = now or datetime.now(timezone.utc)
        try:
            snapshot = self._snapshot(vessels)
            if not snapshot:
                return self._empty_result(started, now)

            by_id = {v.vessel_id: v for v in snapshot}
            new_activities: list[SuspiciousActivity] = []

            collision_result = self.collision.detect(snapshot, now=now)
            for alert in collision_result.alerts:
                if alert.resolved:
                    continue
                activity_id = self._collision_activities.get(alert.id)
                if activity_id is not None and self.manager.update_evidence(
                    activity_id, collision_evidence(alert), severity_for_level(alert.level), now=now
                ):
                    continue
                activity = self._collision_activity(alert, by_id, now)
                self._collision_activities[alert.id] = activity.id
                new_activities.append(activity)

            for event in self.rendezvous.detect(snapshot, now=now):
                if event.in_port_area:
                    continue
                new_activities.append(
                    self.manager.create(
                        ActivityType.SUSPICIOUS_RENDEZVOUS,
                        [event.vessel_a, event.vessel_b],
                        event.meeting_location,
                        rendezvous_evidence(event, now),
                        score_rendezvous(event),
                        now=now,
                    )
                )

            for event in self.loitering.detect(snapshot, now=now):
                if event.in_anchorage_area:
                    continue
                activity = self._loitering_activity(event, now)
                if activity is not None:
                    new_activities.append(activity)

            self._last_run = now
            if new_activities:
                logger.info(
                    "Activity detection: %d new activities from %d vessels",
                    len(new_activities),
                    len(by_id),
                )
            return ActivityDetectionResult(
                activities=self.manager.get_all(),
                rendezvous_events=self.rendezvous.get_active_rendezvous(),
                loitering_events=self.loitering.get_active_loitering(),
                processed_vessels=len(by_id),
                processing_time_ms=(time.perf_counter() - started) * 1000,
                timestamp=now,
                new_activities=new_activities,
            )
        except Exception:
            logger.exception("Activity detection tick failed")
            return self._empty_result(started, now)

    def _collision_activity(
        self,
        alert: CollisionAlert,
        by_id: dict[str, VesselSnapshot],
        now: datetime,
    ) -> SuspiciousActivity:
        location: Optional[Position] = alert.predicted_point
        if location is None:
            a, b = by_id.get(alert.vessels[0]), by_id.get(alert.vessels[1])
            if a is not None and b is not None:
                location = midpoint(a.position, b.position)
        return self.manager.create_from_collision(alert, location=location, now=now)

    def _loitering_activity(self, event: LoiteringEvent, now: datetime) -> Optional[SuspiciousActivity]:
        evidence = loitering_evidence(event, now)
        severity = score_loitering(event)

        activity_id = self._loitering_activities.get(event.id)
        if activity_id is not None and self.manager.update_evidence(activity_id, evidence, severity, now=now):
            if event.completed:
                del self._loitering_activities[event.id]
            return None

        activity = self.manager.create(
            ActivityType.LOITERING,
            [event.vessel_id],
            event.centroid,
            evidence,
            severity,
            now=now,
        )
        if not event.completed:
            self._loitering_activities[event.id] = activity.id
        return activity

    def _empty_result(self, started: float, now: datetime) -> ActivityDetectionResult:
        return ActivityDetectionResult(
            activities=[],
            rendezvous_events=[],
            loitering_events=[],
            processed_vessels=0,
            processing_time_ms=(time.perf_counter() - started) * 1000,
            timestamp=now,
        )

    # ── Lifecycle pass-throughs ───────────────────────────────────────────────

    def get_activity(self, activity_id: str) -> Optional[SuspiciousActivity]:
        return self.manager.get(activity_id)

    def get_activity_history(self, activity_id: str) -> list[ActivityEvent]:
        return self.manager.get_history(activity_id)

    def get_pending_activities(self) -> list[SuspiciousActivity]:
        return self.manager.get_pending()

    def acknowledge_activity(self, activity_id: str, user: str) -> bool:
        return self.manager.acknowledge(activity_id, user)

    def investigate_activity(self, activity_id: str, user: str) -> bool:
        return self.manager.investigate(activity_id, user)

    def resolve_activity(self, activity_id: str, user: str, reason: str) -> bool:
        return self.manager.resolve(activity_id, user, reason)

    def mark_false_positive(self, activity_id: str, user: str, reason: str) -> bool:
        return self.manager.mark_false_positive(activity_id, user, reason)

    def escalate_activity(self, activity_id: str, user: str, target: str, reason: str) -> bool:
        return self.manager.escalate(activity_id, user, target, reason)

    def add_note(self, activity_id: str, note: str, user: str) -> bool:
        return self.manager.add_note(activity_id, note, user)

    # ── Statistics / maintenance ──────────────────────────────────────────────

    def get_statistics(self) -> dict:
        return {
            "last_run": self._last_run,
            "alerts": self.manager.get_statistics(),
            "collision": self.collision.get_statistics(),
            "rendezvous": self.rendezvous.get_statistics(),
            "loitering": self.loitering.get_statistics(),
        }

    def cleanup(self, now: Optional[datetime] = None) -> dict[str, int]:
        now = now or datetime.now(timezone.utc)
        s = self.settings
        removed = {
            "activities": self.manager.cleanup(s.ACTIVITY_RETENTION_HOURS, now=now),
            "rendezvous": self.rendezvous.cleanup(s.EVENT_RETENTION_HOURS, now=now),
            "loitering": self.loitering.cleanup(s.EVENT_RETENTION_HOURS, now=now),
            "collision_alerts": self.collision.clear_resolved(s.RESOLVED_ALERT_RETENTION_MIN, now=now),
        }
        self._collision_activities = {
            alert_id: activity_id
            for alert_id, activity_id in self._collision_activities.items()
            if self.collision.get_alert(alert_id) is not None
        }
        active_loitering = {e.id for e in self.loitering.get_active_loitering()}
        self._loitering_activities = {
            event_id: activity_id
            for event_id, activity_id in self._loitering_activities.items()
            if event_id in active_loitering
        }
        logger.info("Cleanup removed %s", removed)
        return removed
