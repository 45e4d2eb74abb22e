"""Synthetic AIS traffic for demos and soak runs.

Vessels are scattered over the configured bounding box and follow random
waypoint routes at constant speed; a share of them sit at anchor and report
SOG 0.  Every ``step`` advances all vessels and writes the new reports into
the vessel store.  A fixed ``seed`` makes runs reproducible.
"""
from __future__ import annotations

import logging
import random
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Optional

from vtms.config import Settings, settings as _default_settings
from vtms.models.vessel import Position, VesselSnapshot
from vtms.modules.vessel_store import InMemoryVesselStore
from vtms.utils.geo import destination_point, distance_nm, initial_bearing

logger = logging.getLogger(__name__)

_VESSEL_NAMES = [
    "NORTHERN STAR", "ATLANTIC WIND", "PACIFIC DREAM", "BALTIC SEA",
    "NORTH SEA EXPLORER", "ARCTIC FOX", "SOUTHERN CROSS", "EASTERN BELLE",
    "MORNING STAR", "EVENING TIDE", "SILVER MOON", "BLUE WHALE",
]

# (AIS ship type code, weight)
_VESSEL_TYPES = [(70, 0.40), (80, 0.25), (60, 0.10), (30, 0.15), (52, 0.10)]

_ANCHORED_SHARE = 0.1
_WAYPOINT_REACHED_NM = 0.1
_STATUS_FLIP_CHANCE = 0.01
_MMSI_BASE = 200_000_000


@dataclass
class SimulatedVessel:
    mmsi: str
    name: str
    vessel_type: int
    position: Position
    course: float
    speed: float
    anchored: bool
    waypoints: list[Position]
    waypoint_index: int = 0


class AISSimulation:
    def __init__(
        self,
        store: InMemoryVesselStore,
        settings: Optional[Settings] = None,
        vessel_count: Optional[int] = None,
        seed: Optional[int] = None,
    ):
        self.settings = settings or _default_settings
        self.store = store
        self._rng = random.Random(seed)
        count = self.settings.SIMULATION_VESSELS if vessel_count is None else vessel_count
        self.vessels = [self._spawn(i) for i in range(count)]

    def _random_position(self) -> Position:
        s = self.settings
        return Position(
            self._rng.uniform(s.SIMULATION_SOUTH, s.SIMULATION_NORTH),
            self._rng.uniform(s.SIMULATION_WEST, s.SIMULATION_EAST),
        )

    def _random_route(self) -> list[Position]:
        return [self._random_position() for _ in range(self._rng.randint(3, 7))]

    def _spawn(self, i: int) -> SimulatedVessel:
        types, weights = zip(*_VESSEL_TYPES)
        return SimulatedVessel(
            mmsi=str(_MMSI_BASE + i + 1),
            name=f"{_VESSEL_NAMES[i % len(_VESSEL_NAMES)]} {i // len(_VESSEL_NAMES) + 1}",
            vessel_type=self._rng.choices(types, weights)[0],
            position=self._random_position(),
            course=self._rng.uniform(0, 360),
            speed=self._rng.uniform(self.settings.SIMULATION_SPEED_MIN, self.settings.SIMULATION_SPEED_MAX),
            anchored=self._rng.random() < _ANCHORED_SHARE,
            waypoints=self._random_route(),
        )

    def _advance(self, vessel: SimulatedVessel, seconds: float) -> None:
        if self._rng.random() < _STATUS_FLIP_CHANCE:
            vessel.anchored = not vessel.anchored
        if vessel.anchored:
            return

        if vessel.waypoint_index >= len(vessel.waypoints):
            vessel.waypoints, vessel.waypoint_index = self._random_route(), 0
        target = vessel.waypoints[vessel.waypoint_index]
        if distance_nm(vessel.position, target) < _WAYPOINT_REACHED_NM:
            vessel.waypoint_index += 1
            return

        vessel.course = initial_bearing(vessel.position, target)
        vessel.position = destination_point(vessel.position, vessel.course, vessel.speed * seconds / 3600.0)

    def _snapshot(self, vessel: SimulatedVessel, now: datetime) -> VesselSnapshot:
        return VesselSnapshot(
            vessel_id=vessel.mmsi,
            position=vessel.position,
            timestamp=now,
            course=vessel.course,
            speed=0.0 if vessel.anchored else vessel.speed,
            heading=vessel.course,
            name=vessel.name,
            vessel_type=vessel.vessel_type,
        )

    def step(self, seconds: float, now: Optional[datetime] = None) -> list[VesselSnapshot]:
        """Advance every vessel by ``seconds`` and publish the new reports."""
        now = now or datetime.now(timezone.utc)
        snapshots = []
        for vessel in self.vessels:
            self._advance(vessel, seconds)
            snapshot = self._snapshot(vessel, now)
            self.store.upsert(snapshot)
            snapshots.append(snapshot)
        logger.debug("Simulation step: %d vessels updated", len(snapshots))
        return snapshots
