"""Vessel snapshot sources.

The detectors only need ``get_all_vessels()``; anything exposing that method
(a database-backed repository, a live feed buffer) can drive the orchestrator.
``InMemoryVesselStore`` keeps the latest report per vessel and is what the
CLI replay and the traffic simulation write into.
"""
from __future__ import annotations

import logging
from datetime import datetime, timedelta, timezone
from typing import Optional, Protocol

from vtms.models.vessel import VesselSnapshot

logger = logging.getLogger(__name__)


class VesselSource(Protocol):
    def get_all_vessels(self) -> list[VesselSnapshot]: ...


class InMemoryVesselStore:
    def __init__(self):
        self._vessels: dict[str, VesselSnapshot] = {}

    def upsert(self, vessel: VesselSnapshot) -> None:
        """Store ``vessel`` unless a newer report for the same id is already held."""
        current = self._vessels.get(vessel.vessel_id)
        if current is not None and current.timestamp > vessel.timestamp:
            return
        self._vessels[vessel.vessel_id] = vessel

    def get_vessel(self, vessel_id: str) -> Optional[VesselSnapshot]:
        return self._vessels.get(vessel_id)

    def get_all_vessels(self) -> list[VesselSnapshot]:
        return list(self._vessels.values())

    def remove(self, vessel_id: str) -> bool:
        return self._vessels.pop(vessel_id, None) is not None

    def cleanup_old_vessels(self, max_age_minutes: float = 60, now: Optional[datetime] = None) -> int:
        cutoff = (now or datetime.now(timezone.utc)) - timedelta(minutes=max_age_minutes)
        stale = [vid for vid, v in self._vessels.items() if v.timestamp < cutoff]
        for vessel_id in stale:
            del self._vessels[vessel_id]
        if stale:
            logger.info("Dropped %d vessels with no report since %s", len(stale), cutoff.isoformat())
        return len(stale)

    def __len__(self) -> int:
        return len(self._vessels)
