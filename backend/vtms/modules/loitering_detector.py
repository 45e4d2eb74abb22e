"""Loitering detection — one vessel dwelling at low speed in a small area.

Each slow vessel (SOG unknown or below ``speed_threshold``) accumulates a
rolling window of positions.  Every tick the window centroid and the largest
distance from it ("radius") are recomputed.  Once the vessel has been slow
for ``duration_threshold`` seconds with a radius inside ``radius_threshold``,
a LoiteringEvent is opened; afterwards only its duration and radius change.

When the vessel speeds up again the open event is completed, or the tracking
state is discarded if no event was ever opened.  A vessel missing from the
snapshot is treated as departed: its state and any open event are dropped
without being reported.
"""
from __future__ import annotations

import logging
from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime, timedelta, timezone
from typing import Optional

from vtms.config import Settings, settings as _default_settings
from vtms.models.loitering_event import LoiteringEvent
from vtms.models.vessel import Position, VesselSnapshot
from vtms.utils.areas import NamedArea, anchorage_areas, find_area
from vtms.utils.geo import centroid, distance_nm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class LoiteringConfig:
    duration_threshold: float = 7200.0
    speed_threshold: float = 3.0
    radius_threshold: float = 0.2
    history_hours: float = 4.0

    @classmethod
    def from_settings(cls, s: Settings) -> LoiteringConfig:
        return cls(
            duration_threshold=s.LOITERING_DURATION_SECONDS,
            speed_threshold=s.LOITERING_SPEED_KN,
            radius_threshold=s.LOITERING_RADIUS_NM,
            history_hours=s.LOITERING_HISTORY_HOURS,
        )


@dataclass
class PositionSample:
    position: Position
    timestamp: datetime
    speed: float


@dataclass
class LoiteringState:
    vessel_id: str
    start_time: datetime
    centroid: Position
    max_radius_nm: float = 0.0
    samples: list[PositionSample] = field(default_factory=list)


class LoiteringDetector:
    def __init__(
        self,
        config: Optional[LoiteringConfig] = None,
        settings: Optional[Settings] = None,
        anchorages: Optional[list[NamedArea]] = None,
    ):
        self.config = config or LoiteringConfig.from_settings(settings or _default_settings)
        self.anchorages = anchorage_areas() if anchorages is None else anchorages
        self._states: dict[str, LoiteringState] = {}
        self._active: dict[str, LoiteringEvent] = {}
        self._completed: list[LoiteringEvent] = []

    def detect(
        self,
        vessels: list[VesselSnapshot],
        now: Optional[datetime] = None,
    ) -> list[LoiteringEvent]:
        """Run one tick; returns events opened or completed during this tick."""
        now = now or datetime.now(timezone.utc)
        by_id = {v.vessel_id: v for v in vessels}

        events: list[LoiteringEvent] = []
        for vessel in by_id.values():
            event = self._check_vessel(vessel, now)
            if event is not None:
                events.append(event)

        self._drop_departed(set(by_id))

        if events:
            logger.info(
                "Loitering detection: %d events (%d active, %d tracked)",
                len(events),
                len(self._active),
                len(self._states),
            )
        return events

    def _is_slow(self, vessel: VesselSnapshot) -> bool:
        return not vessel.speed or vessel.speed < self.config.speed_threshold

    def _check_vessel(self, vessel: VesselSnapshot, now: datetime) -> Optional[LoiteringEvent]:
        if not self._is_slow(vessel):
            return self._handle_departure(vessel.vessel_id, now)

        state = self._states.get(vessel.vessel_id)
        if state is None:
            state = LoiteringState(vessel_id=vessel.vessel_id, start_time=now, centroid=vessel.position)
            self._states[vessel.vessel_id] = state

        cutoff = now - timedelta(hours=self.config.history_hours)
        state.samples.append(PositionSample(vessel.position, now, vessel.speed or 0.0))
        state.samples = [s for s in state.samples if s.timestamp > cutoff]
        state.centroid = centroid(s.position for s in state.samples)
        state.max_radius_nm = max(distance_nm(s.position, state.centroid) for s in state.samples)

        duration = (now - state.start_time).total_seconds()
        if duration < self.config.duration_threshold or state.max_radius_nm > self.config.radius_threshold:
            return None

        event = self._active.get(vessel.vessel_id)
        if event is not None:
            event.duration_sec = duration
            event.max_radius_nm = state.max_radius_nm
            return None

        event = self._open_event(vessel, state, duration, now)
        self._active[vessel.vessel_id] = event
        return event

    def _open_event(
        self,
        vessel: VesselSnapshot,
        state: LoiteringState,
        duration: float,
        now: datetime,
    ) -> LoiteringEvent:
        speeds = [s.speed for s in state.samples]
        anchorage = find_area(state.centroid, self.anchorages)
        event = LoiteringEvent(
            id=f"loitering_{vessel.vessel_id}_{int(now.timestamp() * 1000)}",
            vessel_id=vessel.vessel_id,
            start_time=state.start_time,
            centroid=state.centroid,
            duration_sec=duration,
            max_radius_nm=state.max_radius_nm,
            avg_speed=sum(speeds) / len(speeds),
            max_speed=max(speeds),
            in_anchorage_area=anchorage is not None,
            vessel_type=vessel.vessel_type,
        )
        logger.debug(
            "Loitering opened %s: %.0fs within %.3f NM%s",
            event.id,
            duration,
            state.max_radius_nm,
            f" (anchorage {anchorage.name})" if anchorage else "",
        )
        return event

    def _handle_departure(self, vessel_id: str, now: datetime) -> Optional[LoiteringEvent]:
        self._states.pop(vessel_id, None)
        event = self._active.pop(vessel_id, None)
        if event is None:
            return None

        event.end_time = now
        event.duration_sec = (now - event.start_time).total_seconds()
        self._completed.append(event)
        logger.debug("Loitering completed %s after %.0fs", event.id, event.duration_sec)
        return event

    def _drop_departed(self, present: set[str]) -> None:
        for vessel_id in [v for v in self._states if v not in present]:
            del self._states[vessel_id]
            if self._active.pop(vessel_id, None) is not None:
                logger.debug("Vessel %s left the snapshot; open loitering event dropped", vessel_id)

    # ── Queries / maintenance ─────────────────────────────────────────────────

    def get_active_loitering(self) -> list[LoiteringEvent]:
        return list(self._active.values())

    def get_completed_loitering(self) -> list[LoiteringEvent]:
        return list(self._completed)

    def get_vessel_state(self, vessel_id: str) -> Optional[LoiteringState]:
        return self._states.get(vessel_id)

    def cleanup(self, max_age_hours: float = 24, now: Optional[datetime] = None) -> int:
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=max_age_hours)
        before = len(self._completed)
        self._completed = [e for e in self._completed if e.start_time > cutoff]
        return before - len(self._completed)

    def get_statistics(self) -> dict:
        events = [*self._active.values(), *self._completed]
        by_type = Counter(
            str(e.vessel_type) if e.vessel_type is not None else "unknown" for e in events
        )
        return {
            "active": len(self._active),
            "completed": len(self._completed),
            "vessels_tracked": len(self._states),
            "by_vessel_type": dict(by_type),
            "in_anchorage_area": sum(1 for e in events if e.in_anchorage_area),
        }
