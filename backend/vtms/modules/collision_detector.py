"""Collision-risk alert tracking.

Each tick refreshes one alert per unordered vessel pair inside the safety
radius.  Alert level is decided by distance and TCPA jointly, most severe
first:

  CRITICAL  distance ≤ critical_threshold  and 0 ≤ TCPA ≤ tcpa_critical_threshold
  DANGER    distance ≤ danger_threshold    and 0 ≤ TCPA ≤ tcpa_danger_threshold
  WARNING   distance ≤ warning_threshold   and 0 ≤ TCPA ≤ tcpa_warning_threshold
  INFO      otherwise

Alerts are resolved only when one of the two vessels drops out of the snapshot
or the alert has been open longer than ``alert_max_age_minutes``.  A pair
drifting apart keeps its alert (with refreshed proximity) until then.
"""
from __future__ import annotations

import logging
import time
from collections import deque
from datetime import datetime, timedelta, timezone
from typing import Optional

from vtms.config import Settings
from vtms.models.base import AlertLevel
from vtms.models.collision_alert import (
    CollisionAlert,
    CollisionDetectionResult,
    ProximityPair,
    pair_key,
)
from vtms.models.vessel import VesselSnapshot
from vtms.modules.proximity import (
    CollisionConfig,
    ProximityEngine,
    calculate_proximity,
    predict_position,
)
from vtms.utils.geo import midpoint

logger = logging.getLogger(__name__)

# Number of recent ticks averaged for processing-time statistics
_TIMING_WINDOW: int = 100


def determine_alert_level(proximity: ProximityPair, config: CollisionConfig) -> AlertLevel:
    distance, tcpa = proximity.distance_nm, proximity.tcpa_min
    if distance <= config.critical_threshold and 0 <= tcpa <= config.tcpa_critical_threshold:
        return AlertLevel.CRITICAL
    if distance <= config.danger_threshold and 0 <= tcpa <= config.tcpa_danger_threshold:
        return AlertLevel.DANGER
    if distance <= config.warning_threshold and 0 <= tcpa <= config.tcpa_warning_threshold:
        return AlertLevel.WARNING
    return AlertLevel.INFO


class CollisionAlertTracker:
    def __init__(
        self,
        config: Optional[CollisionConfig] = None,
        settings: Optional[Settings] = None,
        engine: Optional[ProximityEngine] = None,
    ):
        self.engine = engine or ProximityEngine(config=config, settings=settings)
        self.config = self.engine.config
        self._alerts: dict[str, CollisionAlert] = {}
        self._open_by_pair: dict[tuple[str, str], str] = {}
        self._timings: deque[float] = deque(maxlen=_TIMING_WINDOW)
        self._last_update: Optional[datetime] = None
        self._vessels_tracked: int = 0

    # ── Tick ──────────────────────────────────────────────────────────────────

    def detect(
        self,
        vessels: list[VesselSnapshot],
        now: Optional[datetime] = None,
    ) -> CollisionDetectionResult:
        """Run one detection tick; never raises."""
        started = time.perf_counter()
        now = now or datetime.now(timezone.utc)
        try:
            by_id = {v.vessel_id: v for v in vessels}
            active = [v for v in by_id.values() if self.engine.is_active(v)]
            touched: set[str] = set()
            new_alerts: list[CollisionAlert] = []

            for proximity in self.engine.find_pairs(list(by_id.values())):
                if proximity.distance_nm > self.config.safety_zone_radius:
                    continue
                alert, created = self._upsert_alert(
                    by_id[proximity.id_a], by_id[proximity.id_b], proximity, now
                )
                touched.add(alert.id)
                if created:
                    new_alerts.append(alert)

            self._refresh_existing(by_id, touched, now)
            self._resolve_old(now)

            elapsed_ms = (time.perf_counter() - started) * 1000
            self._timings.append(elapsed_ms)
            self._last_update = now
            self._vessels_tracked = len(by_id)

            if new_alerts:
                logger.info(
                    "Collision detection: %d new alerts, %d active (%d vessels, %d moving)",
                    len(new_alerts),
                    len(self._open_by_pair),
                    len(by_id),
                    len(active),
                )
            return CollisionDetectionResult(
                alerts=list(self._alerts.values()),
                processed_vessels=len(active),
                processing_time_ms=elapsed_ms,
                timestamp=now,
                new_alerts=new_alerts,
            )
        except Exception:
            logger.exception("Collision detection tick failed")
            return CollisionDetectionResult(
                alerts=[],
                processed_vessels=0,
                processing_time_ms=(time.perf_counter() - started) * 1000,
                timestamp=now,
            )

    def _upsert_alert(
        self,
        a: VesselSnapshot,
        b: VesselSnapshot,
        proximity: ProximityPair,
        now: datetime,
    ) -> tuple[CollisionAlert, bool]:
        key = pair_key(a.vessel_id, b.vessel_id)
        existing_id = self._open_by_pair.get(key)
        if existing_id is not None and existing_id in self._alerts:
            alert = self._alerts[existing_id]
            self._apply_proximity(alert, a, b, proximity, now)
            return alert, False

        alert = CollisionAlert(
            id=f"{key[0]}-{key[1]}-{int(now.timestamp() * 1000)}",
            vessels=(a.vessel_id, b.vessel_id),
            proximity=proximity,
            level=AlertLevel.INFO,
            created_at=now,
        )
        self._apply_proximity(alert, a, b, proximity, now)
        self._alerts[alert.id] = alert
        self._open_by_pair[key] = alert.id
        logger.debug(
            "Collision alert %s opened: %.2f NM, TCPA %.1f min, level=%s",
            alert.id,
            proximity.distance_nm,
            proximity.tcpa_min,
            alert.level.value,
        )
        return alert, True

    def _apply_proximity(
        self,
        alert: CollisionAlert,
        a: VesselSnapshot,
        b: VesselSnapshot,
        proximity: ProximityPair,
        now: datetime,
    ) -> None:
        alert.proximity = proximity
        alert.level = determine_alert_level(proximity, self.config)
        alert.updated_at = now

        tcpa = proximity.tcpa_min
        if 0 < tcpa < self.config.max_prediction_time:
            alert.predicted_point = midpoint(predict_position(a, tcpa), predict_position(b, tcpa))
            alert.predicted_time = now + timedelta(minutes=tcpa)
        else:
            alert.predicted_point = None
            alert.predicted_time = None

    def _refresh_existing(
        self,
        by_id: dict[str, VesselSnapshot],
        touched: set[str],
        now: datetime,
    ) -> None:
        for alert in self._alerts.values():
            if alert.resolved or alert.id in touched:
                continue
            id_a, id_b = alert.vessels
            a, b = by_id.get(id_a), by_id.get(id_b)
            if a is None or b is None:
                self._resolve(alert, now, "vessel left the snapshot")
                continue
            proximity = calculate_proximity(a, b, self.config.max_prediction_time)
            self._apply_proximity(alert, a, b, proximity, now)

    def _resolve_old(self, now: datetime) -> None:
        max_age = timedelta(minutes=self.config.alert_max_age_minutes)
        for alert in self._alerts.values():
            if not alert.resolved and now - alert.created_at > max_age:
                self._resolve(alert, now, "expired")

    def _resolve(self, alert: CollisionAlert, now: datetime, reason: str) -> None:
        alert.resolved = True
        alert.resolved_at = now
        if self._open_by_pair.get(alert.pair_key) == alert.id:
            del self._open_by_pair[alert.pair_key]
        logger.debug("Collision alert %s resolved (%s)", alert.id, reason)

    # ── Queries ───────────────────────────────────────────────────────────────

    def get_active_alerts(self) -> list[CollisionAlert]:
        return [a for a in self._alerts.values() if not a.resolved]

    def get_all_alerts(self) -> list[CollisionAlert]:
        return list(self._alerts.values())

    def get_alert(self, alert_id: str) -> Optional[CollisionAlert]:
        return self._alerts.get(alert_id)

    def clear_resolved(self, max_age_minutes: float = 60, now: Optional[datetime] = None) -> int:
        """Purge resolved alerts whose resolution is older than ``max_age_minutes``."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(minutes=max_age_minutes)
        stale = [
            alert_id
            for alert_id, alert in self._alerts.items()
            if alert.resolved and alert.resolved_at is not None and alert.resolved_at < cutoff
        ]
        for alert_id in stale:
            del self._alerts[alert_id]
        if stale:
            logger.info("Cleared %d resolved collision alerts", len(stale))
        return len(stale)

    def get_statistics(self) -> dict:
        by_level = {level.value: 0 for level in AlertLevel}
        for alert in self._alerts.values():
            if not alert.resolved:
                by_level[alert.level.value] += 1
        return {
            "total_alerts": len(self._alerts),
            "active_alerts": len(self.get_active_alerts()),
            "alerts_by_level": by_level,
            "average_processing_time_ms": (
                sum(self._timings) / len(self._timings) if self._timings else 0.0
            ),
            "last_update": self._last_update,
            "vessels_tracked": self._vessels_tracked,
        }
