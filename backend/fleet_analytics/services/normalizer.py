"""
Sample normalizer for raw telemetry rows.

Maps heterogeneous column names onto canonical fields, parses values and
applies defaults. Missing or unparsable numeric fields become 0 (never an
error). Rows that cannot be placed in time, or whose width does not match
the column header, are skipped and counted instead of aborting the batch.
"""

from __future__ import annotations

import logging
import math
import re
from dataclasses import dataclass
from datetime import datetime, timezone
from typing import Any, Optional, Sequence

from fleet_analytics.models.raw import RawSeries
from fleet_analytics.models.telemetry import DriveMode, NormalizedSample
from fleet_analytics.services.drive_mode import Classifier, classify_by_speed


logger = logging.getLogger(__name__)


# Logical field -> column aliases, in priority order
FIELD_ALIASES: dict[str, list[str]] = {
    "timestamp": ["time", "timestamp", "ts", "gps_time"],
    "latitude": ["lat", "latitude"],
    "longitude": ["lng", "lon", "long", "longitude"],
    "speed": ["speed", "spd", "gps_speed", "vehicle_speed"],
    "ignition": ["ignition", "ign", "ign_status"],
    "odometer": ["odo", "odometer", "odometer_km"],
    "trip_status": ["trip", "trip_status", "tripStatus"],
    "throttle": ["throttle", "throt", "motor_throt"],
    "brake": ["brake", "brk"],
    "altitude": ["alt", "altitude"],
    "heading": ["hdg", "heading"],
    "satellites": ["sat", "satellites"],
}

EPOCH_MS_THRESHOLD = 1.0e11  # larger epoch values are milliseconds

_TRUTHY = {"1", "true", "on", "yes", "y", "t"}
_NUMERIC = re.compile(r"^[+-]?\d+(?:\.\d+)?(?:[eE][+-]?\d+)?$")
_FRACTION = re.compile(r"(\d{2}:\d{2}:\d{2})\.(\d+)")


class MalformedRowError(ValueError):
    """A row that cannot be normalized (wrong width or no usable timestamp)."""


@dataclass
class ColumnResolver:
    """Resolved positions of every logical field within one column header."""

    width: int
    positions: dict[str, list[int]]

    def has(self, field_name: str) -> bool:
        return bool(self.positions.get(field_name))

    def value(self, row: Sequence[Any], field_name: str) -> Any:
        """First present, non-null value for a field, or None."""
        for pos in self.positions.get(field_name, ()):
            candidate = row[pos]
            if not _is_null(candidate):
                return candidate
        return None


def resolve_columns(columns: Sequence[str]) -> ColumnResolver:
    """
    Build a resolver for a column header.

    Args:
        columns: Column names as delivered by the source

    Returns:
        ColumnResolver mapping each logical field to the positions of the
        aliases present in the header, in alias priority order
    """
    index: dict[str, int] = {}
    for i, name in enumerate(columns):
        index.setdefault(str(name).strip(), i)

    positions: dict[str, list[int]] = {}
    for field_name, aliases in FIELD_ALIASES.items():
        positions[field_name] = [index[a] for a in aliases if a in index]

    missing = [f for f, p in positions.items() if not p]
    if missing and columns:
        logger.debug(f"Columns without a recognised alias (defaulted): {missing}")

    return ColumnResolver(width=len(columns), positions=positions)


def normalize_row(
    row: Sequence[Any],
    resolver: ColumnResolver,
    index: int = 0,
    classifier: Classifier = classify_by_speed,
) -> NormalizedSample:
    """
    Convert one raw row into a NormalizedSample.

    Raises:
        MalformedRowError: if the row width differs from the header or the
            timestamp is missing or unparsable
    """
    if not isinstance(row, (list, tuple)) or len(row) != resolver.width:
        width = len(row) if isinstance(row, (list, tuple)) else "n/a"
        raise MalformedRowError(f"Row width {width} does not match {resolver.width} columns")

    raw_time = resolver.value(row, "timestamp")
    if raw_time is None:
        raise MalformedRowError("Row has no timestamp")
    try:
        timestamp = parse_timestamp(raw_time)
    except ValueError as e:
        raise MalformedRowError(f"Unparsable timestamp {raw_time!r}: {e}") from e

    speed = max(0.0, to_float(resolver.value(row, "speed")))
    throttle = to_float(resolver.value(row, "throttle"))

    odometer: Optional[float] = None
    if resolver.has("odometer"):
        odometer = max(0.0, to_float(resolver.value(row, "odometer")))

    trip_status: Optional[int] = None
    if resolver.has("trip_status"):
        trip_status = int(to_float(resolver.value(row, "trip_status")))

    drive_mode: DriveMode = classifier(speed, throttle)

    return NormalizedSample(
        index=index,
        timestamp=timestamp,
        latitude=to_float(resolver.value(row, "latitude")),
        longitude=to_float(resolver.value(row, "longitude")),
        speed_kmh=speed,
        ignition_on=parse_ignition(resolver.value(row, "ignition")),
        odometer_km=odometer,
        trip_status=trip_status,
        throttle_pct=throttle,
        brake_pct=to_float(resolver.value(row, "brake")),
        altitude_m=to_float(resolver.value(row, "altitude")),
        heading_deg=to_float(resolver.value(row, "heading")),
        satellites=int(to_float(resolver.value(row, "satellites"))),
        drive_mode=drive_mode,
    )


def normalize_rows(
    series: RawSeries,
    classifier: Classifier = classify_by_speed,
) -> tuple[list[NormalizedSample], int]:
    """
    Normalize every row of a series.

    Returns:
        (samples, skipped_rows). Sample indexes are positions in the accepted
        stream, so they stay contiguous when rows are skipped.
    """
    resolver = resolve_columns(series.columns)
    samples: list[NormalizedSample] = []
    skipped = 0

    for row_number, row in enumerate(series.values):
        try:
            samples.append(normalize_row(row, resolver, len(samples), classifier))
        except MalformedRowError as e:
            skipped += 1
            logger.debug(f"Skipping row {row_number}: {e}")

    if skipped:
        logger.warning(f"Skipped {skipped} malformed rows out of {len(series.values)} ({series.source})")

    return samples, skipped


def to_float(value: Any) -> float:
    """Parse a numeric field. Anything unparsable (or non-finite) is 0."""
    if value is None:
        return 0.0
    if isinstance(value, bool):
        return 1.0 if value else 0.0
    try:
        if isinstance(value, (int, float)):
            result = float(value)
        else:
            result = float(str(value).strip())
    except (ValueError, OverflowError):
        return 0.0
    if math.isnan(result) or math.isinf(result):
        return 0.0
    return result


def parse_ignition(value: Any) -> bool:
    if value is None:
        return False
    if isinstance(value, bool):
        return value
    if isinstance(value, int):
        return value != 0
    if isinstance(value, float):
        return not math.isnan(value) and value != 0
    text = str(value).strip().lower()
    if text in _TRUTHY:
        return True
    if _NUMERIC.match(text):
        return float(text) != 0
    return False


def parse_timestamp(value: Any) -> datetime:
    """
    Parse a source timestamp into an aware datetime.

    Supports ISO-8601 strings (Z suffix, offsets, space separator, date
    only, any number of fractional digits) and epoch seconds/milliseconds
    as numbers or numeric strings. Naive values are taken as UTC.
    """
    if isinstance(value, datetime):
        return value if value.tzinfo is not None else value.replace(tzinfo=timezone.utc)
    if isinstance(value, bool):
        raise ValueError("boolean is not a timestamp")
    if isinstance(value, (int, float)):
        try:
            seconds = float(value)
        except OverflowError as e:
            raise ValueError(f"epoch value out of range: {e}") from e
        return _from_epoch(seconds)

    text = str(value).strip()
    if not text:
        raise ValueError("empty timestamp")
    if _NUMERIC.match(text):
        return _from_epoch(float(text))

    if text[-1] in ("Z", "z"):
        text = text[:-1] + "+00:00"
    # fromisoformat only takes 3 or 6 fractional digits on older interpreters
    text = _FRACTION.sub(lambda m: f"{m.group(1)}.{m.group(2)[:6].ljust(6, '0')}", text, count=1)

    parsed = datetime.fromisoformat(text)
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def _from_epoch(seconds: float) -> datetime:
    if math.isnan(seconds) or math.isinf(seconds):
        raise ValueError("non-finite epoch value")
    if abs(seconds) > EPOCH_MS_THRESHOLD:
        seconds = seconds / 1000.0
    try:
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    except (OverflowError, OSError) as e:
        raise ValueError(str(e)) from e


def _is_null(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    if isinstance(value, str) and value.strip() == "":
        return True
    return False
