"""Shared geodesic utilities.

Canonical implementations of haversine distance, forward azimuth and
constant-course dead reckoning used by the proximity, rendezvous and
loitering detectors.
"""
from __future__ import annotations

import math
from typing import Iterable

from vtms.models.vessel import Position

EARTH_RADIUS_NM: float = 3440.065   # Earth mean radius in nautical miles
NM_PER_DEGREE: float = 60.0         # approximate, used only for bbox sizing


def haversine_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Great-circle distance in nautical miles between two WGS-84 coordinates."""
    phi1, phi2 = math.radians(lat1), math.radians(lat2)
    dphi = math.radians(lat2 - lat1)
    dlam = math.radians(lon2 - lon1)
    a = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlam / 2) ** 2
    return EARTH_RADIUS_NM * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def distance_nm(p1: Position, p2: Position) -> float:
    return haversine_nm(p1.latitude, p1.longitude, p2.latitude, p2.longitude)


def initial_bearing(p1: Position, p2: Position) -> float:
    """Initial bearing (degrees 0-360) from one point to another."""
    lat1, lon1 = math.radians(p1.latitude), math.radians(p1.longitude)
    lat2, lon2 = math.radians(p2.latitude), math.radians(p2.longitude)
    dlon = lon2 - lon1
    x = math.sin(dlon) * math.cos(lat2)
    y = math.cos(lat1) * math.sin(lat2) - math.sin(lat1) * math.cos(lat2) * math.cos(dlon)
    bearing = math.degrees(math.atan2(x, y))
    return (bearing + 360.0) % 360.0


def destination_point(origin: Position, bearing_deg: float, dist_nm: float) -> Position:
    """Point reached from ``origin`` after ``dist_nm`` along ``bearing_deg``."""
    d = dist_nm / EARTH_RADIUS_NM
    brg = math.radians(bearing_deg)
    lat_r = math.radians(origin.latitude)
    lon_r = math.radians(origin.longitude)

    lat2 = math.asin(
        math.sin(lat_r) * math.cos(d) + math.cos(lat_r) * math.sin(d) * math.cos(brg)
    )
    lon2 = lon_r + math.atan2(
        math.sin(brg) * math.sin(d) * math.cos(lat_r),
        math.cos(d) - math.sin(lat_r) * math.sin(lat2),
    )
    return Position(math.degrees(lat2), math.degrees(lon2))


def dead_reckon(origin: Position, course: float, speed_kn: float, minutes: float) -> Position:
    """Position after ``minutes`` at constant course and speed."""
    return destination_point(origin, course, speed_kn * (minutes / 60.0))


def midpoint(p1: Position, p2: Position) -> Position:
    """Arithmetic midpoint; adequate for the sub-mile separations it is used on."""
    return Position(
        (p1.latitude + p2.latitude) / 2,
        (p1.longitude + p2.longitude) / 2,
    )


def centroid(points: Iterable[Position]) -> Position:
    pts = list(points)
    if not pts:
        return Position(0.0, 0.0)
    return Position(
        sum(p.latitude for p in pts) / len(pts),
        sum(p.longitude for p in pts) / len(pts),
    )


def angle_diff(a: float, b: float) -> float:
    """Clockwise angle from ``a`` to ``b`` in [0, 360)."""
    return (b - a) % 360.0
