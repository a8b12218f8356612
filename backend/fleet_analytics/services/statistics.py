"""
Daily and aggregate statistics over a normalized, classified, segmented
sample stream.

Accumulation runs at full floating-point precision. Distance and speed
outputs are rounded to the configured number of decimals only when the
summary is built.
"""

from datetime import datetime, timezone, tzinfo
from typing import Optional

from zoneinfo import ZoneInfo, ZoneInfoNotFoundError

from fleet_analytics.models.telemetry import (
    AggregateSummary,
    DailyBucket,
    DriveMode,
    NormalizedSample,
    Trip,
)


SOURCE_TIMEZONE = "source"


def resolve_report_timezone(name: Optional[str]) -> Optional[tzinfo]:
    """
    Resolve the reporting timezone option.

    "source" (or empty) returns None, meaning each timestamp's own offset
    decides its calendar day. "UTC" and IANA zone names are supported.
    """
    if name is None or name.strip() == "" or name.strip().lower() == SOURCE_TIMEZONE:
        return None
    if name.strip().upper() == "UTC":
        return timezone.utc
    try:
        return ZoneInfo(name.strip())
    except (ZoneInfoNotFoundError, ValueError):
        raise ValueError(f"Unknown report timezone: {name}")


def day_key(timestamp: datetime, tz: Optional[tzinfo] = None) -> str:
    if tz is not None:
        timestamp = timestamp.astimezone(tz)
    return timestamp.date().isoformat()


class StatisticsBuilder:
    """Folds samples into per-day buckets and one aggregate summary."""

    def __init__(self, tz: Optional[tzinfo] = None, precision: int = 1):
        self.tz = tz
        self.precision = precision

        self._days: dict[str, DailyBucket] = {}
        self._mode_counts: dict[DriveMode, int] = {mode: 0 for mode in DriveMode}

        self._total_distance = 0.0
        self._sum_speed = 0.0
        self._max_speed = 0.0
        self._total = 0
        self._moving = 0

        self._odo_min: Optional[float] = None
        self._odo_max: Optional[float] = None
        self._completed = 0
        self._incomplete = 0

        self._first: Optional[datetime] = None
        self._last: Optional[datetime] = None

    def add(self, sample: NormalizedSample, segment_km: float, moving: bool) -> None:
        key = day_key(sample.timestamp, self.tz)
        bucket = self._days.get(key)
        if bucket is None:
            bucket = DailyBucket(date=key)
            self._days[key] = bucket

        speed = sample.speed_kmh
        bucket.distance_km += segment_km
        bucket.max_speed_kmh = max(bucket.max_speed_kmh, speed)
        bucket.sum_speed_kmh += speed
        bucket.sample_count += 1
        if moving:
            bucket.moving_sample_count += 1
        else:
            bucket.stopped_sample_count += 1

        self._total_distance += segment_km
        self._sum_speed += speed
        self._max_speed = max(self._max_speed, speed)
        self._total += 1
        if moving:
            self._moving += 1
        self._mode_counts[sample.drive_mode] += 1

        if sample.odometer_km is not None:
            self._odo_max = sample.odometer_km if self._odo_max is None else max(self._odo_max, sample.odometer_km)
            if sample.odometer_km > 0:
                self._odo_min = sample.odometer_km if self._odo_min is None else min(self._odo_min, sample.odometer_km)

        if sample.trip_status == 1:
            self._completed += 1
        elif sample.trip_status == 0:
            self._incomplete += 1

        if self._first is None:
            self._first = sample.timestamp
        self._last = sample.timestamp

    def build(
        self,
        trips: list[Trip],
        skipped_rows: int = 0,
    ) -> tuple[AggregateSummary, list[DailyBucket]]:
        """Produce the summary and the day buckets in date order."""
        total = self._total
        days = [self._days[k] for k in sorted(self._days)]

        if total > 0:
            percentages = {mode: self._mode_counts[mode] / total * 100 for mode in DriveMode}
            preferred = max(DriveMode, key=lambda m: self._mode_counts[m])
            avg_speed = self._sum_speed / total
        else:
            percentages = {mode: 0.0 for mode in DriveMode}
            preferred = None
            avg_speed = 0.0

        trip_distances = [t.distance_km for t in trips]
        longest = max(trip_distances) if trip_distances else 0.0
        avg_trip = sum(trip_distances) / len(trip_distances) if trip_distances else 0.0

        avg_daily_max = sum(d.max_speed_kmh for d in days) / len(days) if days else 0.0
        avg_daily_distance = self._total_distance / len(days) if days else 0.0

        odo_max = self._odo_max or 0.0
        odo_min = self._odo_min if self._odo_min is not None else 0.0
        odo_distance = odo_max - self._odo_min if self._odo_min is not None else odo_max

        summary = AggregateSummary(
            total_distance_km=self._round(self._total_distance),
            avg_speed_kmh=self._round(avg_speed),
            max_speed_kmh=self._round(self._max_speed),
            drive_mode_counts=dict(self._mode_counts),
            drive_mode_percentages=percentages,
            preferred_drive_mode=preferred,
            trip_count=len(trips),
            longest_trip_km=self._round(longest),
            avg_trip_distance_km=self._round(avg_trip),
            total_samples=total,
            moving_sample_count=self._moving,
            stopped_sample_count=total - self._moving,
            skipped_rows=skipped_rows,
            average_daily_max_speed_kmh=self._round(avg_daily_max),
            avg_daily_distance_km=self._round(avg_daily_distance),
            odometer_min_km=self._round(odo_min),
            odometer_max_km=self._round(odo_max),
            odometer_distance_km=self._round(odo_distance),
            completed_status_count=self._completed,
            incomplete_status_count=self._incomplete,
            first_timestamp=self._first,
            last_timestamp=self._last,
        )

        rounded_days = [
            DailyBucket(
                date=d.date,
                distance_km=self._round(d.distance_km),
                max_speed_kmh=self._round(d.max_speed_kmh),
                sum_speed_kmh=d.sum_speed_kmh,
                sample_count=d.sample_count,
                moving_sample_count=d.moving_sample_count,
                stopped_sample_count=d.stopped_sample_count,
            )
            for d in days
        ]

        return summary, rounded_days

    def _round(self, value: float) -> float:
        return round(value, self.precision)
