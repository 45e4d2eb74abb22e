"""Named port and anchorage circles.

Loaded from ``config/areas.yaml`` (path configurable via ``AREAS_CONFIG``).
When the file is missing the built-in Caspian defaults are used so detectors
still run in a bare checkout.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

import yaml

from vtms.config import settings
from vtms.models.base import AreaKindEnum
from vtms.models.vessel import Position
from vtms.utils.geo import distance_nm

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class NamedArea:
    name: str
    center: Position
    radius_nm: float
    kind: AreaKindEnum

    def contains(self, position: Position) -> bool:
        return distance_nm(position, self.center) <= self.radius_nm


_DEFAULT_AREAS: dict[str, list[dict[str, Any]]] = {
    "ports": [
        {"name": "Baku", "lat": 40.392, "lon": 49.867, "radius_nm": 0.1},
        {"name": "Sumqayit", "lat": 40.004, "lon": 50.285, "radius_nm": 0.08},
        {"name": "Bandar-e Anzali", "lat": 38.458, "lon": 48.866, "radius_nm": 0.1},
    ],
    "anchorages": [
        {"name": "Baku anchorage", "lat": 40.392, "lon": 49.867, "radius_nm": 0.15},
        {"name": "Sumqayit anchorage", "lat": 40.004, "lon": 50.285, "radius_nm": 0.1},
        {"name": "Bandar-e Anzali anchorage", "lat": 38.458, "lon": 48.866, "radius_nm": 0.12},
        {"name": "Aktau anchorage", "lat": 39.733, "lon": 51.833, "radius_nm": 0.1},
        {"name": "Makhachkala anchorage", "lat": 44.617, "lon": 50.083, "radius_nm": 0.1},
    ],
}

_AREAS_CONFIG: dict[str, list[dict[str, Any]]] | None = None


def _resolve_config_path(path: str) -> Path:
    candidate = Path(path)
    if candidate.is_absolute():
        return candidate
    # Relative paths are resolved against the repository root
    return Path(__file__).resolve().parent.parent.parent.parent / candidate


def _load_areas_config() -> dict[str, list[dict[str, Any]]]:
    global _AREAS_CONFIG
    if _AREAS_CONFIG is None:
        config_path = _resolve_config_path(settings.AREAS_CONFIG)
        if config_path.exists():
            try:
                with open(config_path) as f:
                    _AREAS_CONFIG = yaml.safe_load(f) or {}
                logger.info("Loaded named areas from %s", config_path)
            except yaml.YAMLError as exc:
                logger.warning("Failed to parse %s (%s), using built-in areas", config_path, exc)
                _AREAS_CONFIG = _DEFAULT_AREAS
        else:
            logger.warning("%s not found, using built-in areas", config_path)
            _AREAS_CONFIG = _DEFAULT_AREAS
    return _AREAS_CONFIG


def reload_areas_config() -> dict[str, list[dict[str, Any]]]:
    """Force-reload area config from disk."""
    global _AREAS_CONFIG
    _AREAS_CONFIG = None
    return _load_areas_config()


def _parse_areas(entries: list[dict[str, Any]] | None, kind: AreaKindEnum) -> list[NamedArea]:
    areas = []
    for entry in entries or []:
        try:
            areas.append(
                NamedArea(
                    name=str(entry.get("name", "")),
                    center=Position(float(entry["lat"]), float(entry["lon"])),
                    radius_nm=float(entry["radius_nm"]),
                    kind=kind,
                )
            )
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Skipping malformed %s entry %r: %s", kind.value, entry, exc)
    return areas


def port_areas() -> list[NamedArea]:
    return _parse_areas(_load_areas_config().get("ports"), AreaKindEnum.PORT)


def anchorage_areas() -> list[NamedArea]:
    return _parse_areas(_load_areas_config().get("anchorages"), AreaKindEnum.ANCHORAGE)


def find_area(position: Position, areas: list[NamedArea]) -> Optional[NamedArea]:
    """Return the first area containing ``position``, or None."""
    for area in areas:
        if area.contains(position):
            return area
    return None
