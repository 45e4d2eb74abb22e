"""AIS record normalization and CSV replay loading.

Kinematic fields coming off the wire are unreliable: AIS encodes "not
available" with sentinels (COG 360.0, SOG 102.3, heading 511) and exports
regularly contain blanks, text or NaN.  Such values are degraded to None so
the detectors treat the vessel as kinematically unknown.  Only a record
without a usable id, position or timestamp is rejected outright.
"""
from __future__ import annotations

import io
import logging
import math
from collections import defaultdict
from datetime import datetime, timezone
from pathlib import Path
from typing import Any, Iterable

import polars as pl

from vtms.models.vessel import Position, VesselSnapshot

logger = logging.getLogger(__name__)

REQUIRED_COLUMNS = {"mmsi", "timestamp", "lat", "lon"}

_COMMON_TIMESTAMP_FORMATS = [
    "%Y-%m-%d %H:%M:%S",
    "%m/%d/%Y %H:%M:%S",
    "%d/%m/%Y %H:%M:%S",
    "%Y/%m/%d %H:%M:%S",
    "%m/%d/%Y %H:%M",
]

_COLUMN_ALIASES = {
    "latitude": "lat",
    "longitude": "lon",
    "speed": "sog",
    "course": "cog",
    "time": "timestamp",
    "datetime": "timestamp",
    "basedatetime": "timestamp",
    "shipname": "vessel_name",
    "ship_name": "vessel_name",
    "name": "vessel_name",
    "ship_type": "vessel_type",
    "vesseltype": "vessel_type",
}

# AIS "not available" encodings
_SOG_SENTINEL = 102.2
_COG_SENTINEL = 360.0
_HEADING_SENTINEL = 511


def parse_timestamp_flexible(ts: Any) -> datetime | None:
    """Parse ISO 8601, Unix epoch seconds or a handful of common formats.

    Naive results are taken to be UTC.  Returns None if nothing matches.
    """
    parsed: datetime | None = None
    if isinstance(ts, datetime):
        parsed = ts
    elif isinstance(ts, (int, float)) and not isinstance(ts, bool) and ts > 1_000_000_000:
        try:
            parsed = datetime.fromtimestamp(ts, tz=timezone.utc)
        except (OSError, ValueError, OverflowError):
            return None
    elif isinstance(ts, str) and ts.strip():
        text = ts.strip()
        try:
            parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
        except ValueError:
            for fmt in _COMMON_TIMESTAMP_FORMATS:
                try:
                    parsed = datetime.strptime(text, fmt)
                    break
                except ValueError:
                    continue

    if parsed is not None and parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _to_float(value: Any) -> float | None:
    if value is None or isinstance(value, bool):
        return None
    try:
        result = float(value)
    except (TypeError, ValueError):
        return None
    return result if math.isfinite(result) else None


def clean_speed(value: Any) -> float | None:
    sog = _to_float(value)
    if sog is None or sog < 0 or sog >= _SOG_SENTINEL:
        return None
    return sog


def clean_course(value: Any) -> float | None:
    cog = _to_float(value)
    if cog is None or cog < 0 or cog >= _COG_SENTINEL:
        return None
    return cog


def clean_heading(value: Any) -> float | None:
    heading = _to_float(value)
    if heading is None or heading == _HEADING_SENTINEL or not (0 <= heading < 360):
        return None
    return heading


def snapshot_from_record(record: dict[str, Any]) -> VesselSnapshot | None:
    """Build a VesselSnapshot from one normalized record, or None if unusable."""
    raw_id = record.get("mmsi")
    vessel_id = str(raw_id).strip() if raw_id is not None else ""
    if not vessel_id:
        logger.warning("Rejected record without vessel id: %s", record)
        return None

    lat, lon = _to_float(record.get("lat")), _to_float(record.get("lon"))
    if lat is None or lon is None or not (-90 <= lat <= 90) or not (-180 <= lon <= 180):
        logger.warning("Rejected record for %s: invalid position lat=%r lon=%r",
                       vessel_id, record.get("lat"), record.get("lon"))
        return None

    timestamp = parse_timestamp_flexible(record.get("timestamp"))
    if timestamp is None:
        logger.warning("Rejected record for %s: unparseable timestamp %r",
                       vessel_id, record.get("timestamp"))
        return None

    vessel_type = _to_float(record.get("vessel_type"))
    name = record.get("vessel_name")
    return VesselSnapshot(
        vessel_id=vessel_id,
        position=Position(lat, lon),
        timestamp=timestamp,
        course=clean_course(record.get("cog")),
        speed=clean_speed(record.get("sog")),
        heading=clean_heading(record.get("heading")),
        name=(str(name).strip() or None) if name is not None else None,
        vessel_type=int(vessel_type) if vessel_type is not None else None,
    )


def normalize_replay_dataframe(df: pl.DataFrame) -> pl.DataFrame:
    """Lower-case column names and map common aliases onto canonical ones."""
    lowered = {col: col.lower().strip() for col in df.columns if col != col.lower().strip()}
    if lowered:
        df = df.rename(lowered)
    renames = {k: v for k, v in _COLUMN_ALIASES.items() if k in df.columns and v not in df.columns}
    if renames:
        df = df.rename(renames)
    return df


def group_into_ticks(snapshots: Iterable[VesselSnapshot]) -> list[tuple[datetime, list[VesselSnapshot]]]:
    """Group snapshots by timestamp, oldest tick first."""
    ticks: dict[datetime, list[VesselSnapshot]] = defaultdict(list)
    for snapshot in snapshots:
        ticks[snapshot.timestamp].append(snapshot)
    return sorted(ticks.items(), key=lambda item: item[0])


def load_replay_csv(source: str | Path | bytes) -> list[tuple[datetime, list[VesselSnapshot]]]:
    """Read a recorded track CSV into per-timestamp vessel snapshots.

    Expected columns: ``mmsi,timestamp,lat,lon`` plus optional ``sog,cog,
    heading,vessel_name,vessel_type``.
    """
    if isinstance(source, bytes):
        if source[:3] == b"\xef\xbb\xbf":
            source = source[3:]
        df = pl.read_csv(io.BytesIO(source), infer_schema_length=1000)
    else:
        df = pl.read_csv(source, infer_schema_length=1000)

    df = normalize_replay_dataframe(df)
    missing = REQUIRED_COLUMNS - set(df.columns)
    if missing:
        raise ValueError(f"CSV missing required columns: {sorted(missing)}")

    snapshots: list[VesselSnapshot] = []
    rejected = 0
    for row in df.iter_rows(named=True):
        snapshot = snapshot_from_record(row)
        if snapshot is None:
            rejected += 1
            continue
        snapshots.append(snapshot)

    ticks = group_into_ticks(snapshots)
    logger.info(
        "Loaded replay: %d records in %d ticks, %d rejected",
        len(snapshots),
        len(ticks),
        rejected,
    )
    return ticks
