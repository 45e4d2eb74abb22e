"""Rendezvous detection — unscheduled slow meetings between two vessels.

A rendezvous record is opened for a pair when, in the same tick:
  - the vessels are within ``proximity_threshold`` of each other,
  - both are moving slower than ``speed_threshold`` (unknown SOG counts as slow),
  - their recent history shows them at least ``min_separation_before`` apart.
The last condition separates a genuine approach from two vessels that have
been travelling together all along.

While the pair stays close the record is extended (duration, minimum distance,
in-encounter speeds).  Once they separate again the record is finalized and
emitted if it lasted at least ``duration_threshold`` seconds; shorter contacts
are dropped as noise.  Meetings whose midpoint lies inside a named port circle
are flagged ``in_port_area`` so callers can suppress them.
"""
from __future__ import annotations

import logging
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime, timedelta, timezone
from typing import Optional

from vtms.config import Settings, settings as _default_settings
from vtms.models.collision_alert import pair_key
from vtms.models.rendezvous_event import PairHistory, RendezvousEvent
from vtms.models.vessel import Position, VesselSnapshot
from vtms.modules.spatial_index import BoundingBox, QuadTree
from vtms.utils.areas import NamedArea, find_area, port_areas
from vtms.utils.geo import distance_nm, midpoint

logger = logging.getLogger(__name__)

# ── Constants ─────────────────────────────────────────────────────────────────

_PAIR_HISTORY_CAP: int = 100        # samples retained per vessel pair
_MIN_HISTORY_SAMPLES: int = 5       # per-vessel samples needed for the separation check
_SEPARATION_LOOKBACK: int = 10      # most recent samples considered ...
_SEPARATION_PROBES: int = 5         # ... of which the oldest N are probed
_SPEED_BEFORE_MINUTES: float = 10.0


@dataclass(frozen=True)
class RendezvousConfig:
    proximity_threshold: float = 0.5
    duration_threshold: float = 300.0
    speed_threshold: float = 3.0
    min_separation_before: float = 5.0
    history_hours: float = 2.0

    @classmethod
    def from_settings(cls, s: Settings) -> RendezvousConfig:
        return cls(
            proximity_threshold=s.RENDEZVOUS_PROXIMITY_NM,
            duration_threshold=s.RENDEZVOUS_DURATION_SECONDS,
            speed_threshold=s.RENDEZVOUS_SPEED_KN,
            min_separation_before=s.RENDEZVOUS_MIN_SEPARATION_NM,
            history_hours=s.RENDEZVOUS_HISTORY_HOURS,
        )


def _is_slow(vessel: VesselSnapshot, threshold: float) -> bool:
    return not vessel.speed or vessel.speed < threshold


# ── History ───────────────────────────────────────────────────────────────────

class PairHistoryTracker:
    """Rolling per-vessel snapshots and per-pair distance samples."""

    def __init__(self, retention: timedelta = timedelta(hours=2)):
        self.retention = retention
        self._vessels: dict[str, list[VesselSnapshot]] = defaultdict(list)
        self._pairs: dict[tuple[str, str], PairHistory] = {}

    def track_vessel(self, vessel: VesselSnapshot, now: datetime) -> None:
        cutoff = now - self.retention
        history = self._vessels[vessel.vessel_id]
        history.append(vessel)
        self._vessels[vessel.vessel_id] = [v for v in history if v.timestamp > cutoff]

    def vessel_history(self, vessel_id: str) -> list[VesselSnapshot]:
        return list(self._vessels.get(vessel_id, ()))

    def update_pair(self, a: VesselSnapshot, b: VesselSnapshot, distance: float, now: datetime) -> PairHistory:
        key = pair_key(a.vessel_id, b.vessel_id)
        pair = self._pairs.get(key)
        if pair is None:
            pair = PairHistory(pair_key=key, first_encounter=now, last_update=now)
            self._pairs[key] = pair

        pair.last_update = now
        pair.distances.append(distance)
        pair.locations.append(midpoint(a.position, b.position))
        if len(pair.distances) > _PAIR_HISTORY_CAP:
            pair.distances = pair.distances[-_PAIR_HISTORY_CAP:]
            pair.locations = pair.locations[-_PAIR_HISTORY_CAP:]
        return pair

    def get_pair(self, id_a: str, id_b: str) -> Optional[PairHistory]:
        return self._pairs.get(pair_key(id_a, id_b))

    def were_previously_separated(self, id_a: str, id_b: str, min_separation: float) -> bool:
        """True if the pair was at least ``min_separation`` apart in recent history.

        Probes the oldest five of the last ten samples of ``id_a`` against the
        time-closest sample of ``id_b``.
        """
        history_a = self._vessels.get(id_a, [])
        history_b = self._vessels.get(id_b, [])
        if len(history_a) < _MIN_HISTORY_SAMPLES or len(history_b) < _MIN_HISTORY_SAMPLES:
            return False

        recent_a = history_a[-_SEPARATION_LOOKBACK:]
        recent_b = history_b[-_SEPARATION_LOOKBACK:]
        for sample in recent_a[:_SEPARATION_PROBES]:
            closest = min(
                recent_b,
                key=lambda v: abs((v.timestamp - sample.timestamp).total_seconds()),
            )
            if distance_nm(sample.position, closest.position) >= min_separation:
                return True
        return False

    def average_speed(self, vessel_id: str, minutes: float, now: datetime) -> float:
        cutoff = now - timedelta(minutes=minutes)
        recent = [v for v in self._vessels.get(vessel_id, []) if v.timestamp > cutoff]
        if not recent:
            return 0.0
        return sum(v.speed or 0.0 for v in recent) / len(recent)

    def prune(self, now: datetime) -> int:
        """Drop vessels and pairs with no sample inside the retention window."""
        cutoff = now - self.retention
        removed = 0
        for vessel_id in list(self._vessels):
            kept = [v for v in self._vessels[vessel_id] if v.timestamp > cutoff]
            if kept:
                self._vessels[vessel_id] = kept
            else:
                del self._vessels[vessel_id]
        for key in list(self._pairs):
            if self._pairs[key].last_update <= cutoff:
                del self._pairs[key]
                removed += 1
        return removed

    @property
    def vessel_count(self) -> int:
        return len(self._vessels)

    @property
    def pair_count(self) -> int:
        return len(self._pairs)


# ── Detector ──────────────────────────────────────────────────────────────────

class RendezvousDetector:
    def __init__(
        self,
        config: Optional[RendezvousConfig] = None,
        settings: Optional[Settings] = None,
        ports: Optional[list[NamedArea]] = None,
    ):
        self.config = config or RendezvousConfig.from_settings(settings or _default_settings)
        self.history = PairHistoryTracker(timedelta(hours=self.config.history_hours))
        self.ports = port_areas() if ports is None else ports
        self._active: dict[tuple[str, str], RendezvousEvent] = {}
        self._completed: list[RendezvousEvent] = []

    def detect(
        self,
        vessels: list[VesselSnapshot],
        now: Optional[datetime] = None,
    ) -> list[RendezvousEvent]:
        """Run one tick; returns rendezvous events completed during this tick."""
        now = now or datetime.now(timezone.utc)
        by_id = {v.vessel_id: v for v in vessels}
        for vessel in by_id.values():
            self.history.track_vessel(vessel, now)

        completed: list[RendezvousEvent] = []
        for key in self._candidate_pairs(by_id):
            a, b = by_id.get(key[0]), by_id.get(key[1])
            if a is None or b is None:
                # Vessel vanished mid-cycle; leave any open record untouched.
                continue
            event = self._check_pair(a, b, now)
            if event is not None:
                completed.append(event)

        if completed:
            logger.info("Rendezvous detection: %d events completed", len(completed))
        return completed

    def _candidate_pairs(self, by_id: dict[str, VesselSnapshot]) -> set[tuple[str, str]]:
        candidates: set[tuple[str, str]] = set(self._active)
        index = QuadTree.build((v.vessel_id, v.position) for v in by_id.values())
        if index is None:
            return candidates
        for vessel in by_id.values():
            box = BoundingBox.around(vessel.position, self.config.proximity_threshold)
            for other_id in index.query(box):
                if other_id != vessel.vessel_id:
                    candidates.add(pair_key(vessel.vessel_id, other_id))
        return candidates

    def _check_pair(
        self,
        a: VesselSnapshot,
        b: VesselSnapshot,
        now: datetime,
    ) -> Optional[RendezvousEvent]:
        distance = distance_nm(a.position, b.position)
        self.history.update_pair(a, b, distance, now)

        if distance <= self.config.proximity_threshold:
            self._handle_proximity(a, b, distance, now)
            return None
        return self._handle_departure(a, b, now)

    def _handle_proximity(
        self,
        a: VesselSnapshot,
        b: VesselSnapshot,
        distance: float,
        now: datetime,
    ) -> None:
        key = pair_key(a.vessel_id, b.vessel_id)
        event = self._active.get(key)

        if event is not None:
            event.duration_sec = (now - event.start_time).total_seconds()
            event.minimum_distance = min(event.minimum_distance, distance)
            event.vessel_a_speed_during = self._speed_of(event.vessel_a, a, b)
            event.vessel_b_speed_during = self._speed_of(event.vessel_b, a, b)
            event.last_update = now
            return

        if not self.history.were_previously_separated(
            a.vessel_id, b.vessel_id, self.config.min_separation_before
        ):
            return
        if not (_is_slow(a, self.config.speed_threshold) and _is_slow(b, self.config.speed_threshold)):
            return

        first, second = (a, b) if a.vessel_id == key[0] else (b, a)
        location = midpoint(a.position, b.position)
        port = find_area(location, self.ports)
        event = RendezvousEvent(
            id=f"rendezvous_{key[0]}-{key[1]}_{int(now.timestamp() * 1000)}",
            vessel_a=first.vessel_id,
            vessel_b=second.vessel_id,
            start_time=now,
            meeting_location=location,
            approach_distance=distance,
            minimum_distance=distance,
            vessel_a_speed_before=self.history.average_speed(first.vessel_id, _SPEED_BEFORE_MINUTES, now),
            vessel_a_speed_during=first.speed or 0.0,
            vessel_b_speed_before=self.history.average_speed(second.vessel_id, _SPEED_BEFORE_MINUTES, now),
            vessel_b_speed_during=second.speed or 0.0,
            in_port_area=port is not None,
            last_update=now,
        )
        self._active[key] = event
        logger.debug(
            "Rendezvous opened %s at (%.4f, %.4f)%s",
            event.id,
            location.latitude,
            location.longitude,
            f" inside port {port.name}" if port else "",
        )

    def _handle_departure(
        self,
        a: VesselSnapshot,
        b: VesselSnapshot,
        now: datetime,
    ) -> Optional[RendezvousEvent]:
        key = pair_key(a.vessel_id, b.vessel_id)
        event = self._active.pop(key, None)
        if event is None:
            return None

        duration = (now - event.start_time).total_seconds()
        if duration < self.config.duration_threshold:
            logger.debug("Rendezvous %s discarded after %.0fs", event.id, duration)
            return None

        event.end_time = now
        event.duration_sec = duration
        event.vessel_a_speed_after = self._speed_of(event.vessel_a, a, b)
        event.vessel_b_speed_after = self._speed_of(event.vessel_b, a, b)
        event.last_update = now
        self._completed.append(event)
        return event

    @staticmethod
    def _speed_of(vessel_id: str, a: VesselSnapshot, b: VesselSnapshot) -> float:
        vessel = a if a.vessel_id == vessel_id else b
        return vessel.speed or 0.0

    # ── Queries / maintenance ─────────────────────────────────────────────────

    def get_active_rendezvous(self) -> list[RendezvousEvent]:
        return list(self._active.values())

    def get_completed_rendezvous(self) -> list[RendezvousEvent]:
        return list(self._completed)

    def cleanup(self, max_age_hours: float = 24, now: Optional[datetime] = None) -> int:
        """Drop completed events started before the cutoff; also prunes stale history."""
        now = now or datetime.now(timezone.utc)
        cutoff = now - timedelta(hours=max_age_hours)
        before = len(self._completed)
        self._completed = [e for e in self._completed if e.start_time > cutoff]

        stale_cutoff = now - self.history.retention
        for key in [k for k, e in self._active.items() if (e.last_update or e.start_time) <= stale_cutoff]:
            logger.debug("Dropping stale active rendezvous %s", self._active[key].id)
            del self._active[key]
        self.history.prune(now)

        return before - len(self._completed)

    def get_statistics(self) -> dict:
        return {
            "active": len(self._active),
            "completed": len(self._completed),
            "pairs_tracked": self.history.pair_count,
            "vessels_tracked": self.history.vessel_count,
            "in_port_area": sum(1 for e in self._completed if e.in_port_area),
        }
