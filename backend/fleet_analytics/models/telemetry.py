"""
Canonical telemetry data model.

Every upstream row is normalized into a NormalizedSample with:
- fixed units (km/h, km, percent, degrees)
- defaults for missing fields (0 / False / None)
- a drive-mode label assigned by the selected classification strategy

Trips, daily buckets and the aggregate summary are derived from a stream of
samples by the aggregation pipeline and never outlive one call.
"""

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Optional


DEFAULT_MOVING_THRESHOLD_KMH = 5.0


class DriveMode(Enum):
    """Operating-style bucket for a single sample."""

    IDLE = "idle"
    ECO = "eco"          # city
    FAMILY = "family"    # mixed / normal
    POWER = "power"      # highway


class DriveModeStrategy(Enum):
    """Rule table used to assign drive modes."""

    SPEED = "speed"          # four-bucket speed table, used for reporting
    THROTTLE = "throttle"    # two-bucket throttle/speed rule


class RideStatus(Enum):
    """Display status derived from the source trip-status code."""

    COMPLETED = "completed"
    ACTIVE = "active"
    PAUSED = "paused"
    STOPPED = "stopped"


@dataclass(frozen=True)
class NormalizedSample:
    """One telemetry row in canonical form."""

    index: int
    timestamp: datetime

    latitude: float = 0.0       # 0 means unknown
    longitude: float = 0.0      # 0 means unknown
    speed_kmh: float = 0.0
    ignition_on: bool = False

    odometer_km: Optional[float] = None
    trip_status: Optional[int] = None

    throttle_pct: float = 0.0
    brake_pct: float = 0.0
    altitude_m: float = 0.0
    heading_deg: float = 0.0
    satellites: int = 0

    drive_mode: DriveMode = DriveMode.IDLE

    @property
    def has_position(self) -> bool:
        return self.latitude != 0 and self.longitude != 0

    def is_moving(self, threshold_kmh: float = DEFAULT_MOVING_THRESHOLD_KMH) -> bool:
        return self.ignition_on and self.speed_kmh > threshold_kmh

    def ride_status(self, threshold_kmh: float = DEFAULT_MOVING_THRESHOLD_KMH) -> RideStatus:
        if self.trip_status == 1:
            return RideStatus.COMPLETED
        if self.trip_status == 0:
            if self.is_moving(threshold_kmh):
                return RideStatus.ACTIVE
            if self.ignition_on:
                return RideStatus.PAUSED
        # No open trip reported (or no trip-status column)
        return RideStatus.STOPPED


@dataclass
class Trip:
    """A contiguous span of moving samples."""

    index: int
    start_index: int
    end_index: int
    start_time: datetime
    end_time: datetime
    distance_km: float = 0.0
    max_speed_kmh: float = 0.0
    sample_count: int = 0

    @property
    def duration_s(self) -> float:
        return (self.end_time - self.start_time).total_seconds()


@dataclass
class DailyBucket:
    """Per-calendar-day accumulation."""

    date: str  # YYYY-MM-DD in the reporting timezone
    distance_km: float = 0.0
    max_speed_kmh: float = 0.0
    sum_speed_kmh: float = 0.0
    sample_count: int = 0
    moving_sample_count: int = 0
    stopped_sample_count: int = 0

    @property
    def avg_speed_kmh(self) -> float:
        if self.sample_count == 0:
            return 0.0
        return self.sum_speed_kmh / self.sample_count


def _zero_modes() -> dict[DriveMode, float]:
    return {mode: 0.0 for mode in DriveMode}


def _zero_mode_counts() -> dict[DriveMode, int]:
    return {mode: 0 for mode in DriveMode}


@dataclass
class AggregateSummary:
    """Read-only view over all daily buckets and trips of one aggregation."""

    total_distance_km: float = 0.0
    avg_speed_kmh: float = 0.0
    max_speed_kmh: float = 0.0

    drive_mode_counts: dict[DriveMode, int] = field(default_factory=_zero_mode_counts)
    drive_mode_percentages: dict[DriveMode, float] = field(default_factory=_zero_modes)
    preferred_drive_mode: Optional[DriveMode] = None

    trip_count: int = 0
    longest_trip_km: float = 0.0
    avg_trip_distance_km: float = 0.0

    total_samples: int = 0
    moving_sample_count: int = 0
    stopped_sample_count: int = 0
    skipped_rows: int = 0

    average_daily_max_speed_kmh: float = 0.0
    avg_daily_distance_km: float = 0.0

    odometer_min_km: float = 0.0
    odometer_max_km: float = 0.0
    odometer_distance_km: float = 0.0

    completed_status_count: int = 0
    incomplete_status_count: int = 0

    first_timestamp: Optional[datetime] = None
    last_timestamp: Optional[datetime] = None


@dataclass
class PipelineOptions:
    """Knobs for one aggregation call."""

    moving_threshold_kmh: float = DEFAULT_MOVING_THRESHOLD_KMH
    drive_mode_strategy: DriveModeStrategy = DriveModeStrategy.SPEED
    report_timezone: str = "source"  # "source", "UTC" or an IANA zone name
    precision: int = 1

    def __post_init__(self):
        if not isinstance(self.drive_mode_strategy, DriveModeStrategy):
            try:
                self.drive_mode_strategy = DriveModeStrategy(str(self.drive_mode_strategy).lower())
            except ValueError:
                raise ValueError(f"Unknown drive mode strategy: {self.drive_mode_strategy}")
        if self.moving_threshold_kmh < 0:
            raise ValueError("moving_threshold_kmh must be >= 0")
        if self.precision < 0:
            raise ValueError("precision must be >= 0")


@dataclass
class AnalyticsResult:
    """Everything the presentation layer needs for one vehicle and range."""

    summary: AggregateSummary
    daily: list[DailyBucket]
    trips: list[Trip]
    samples: list[NormalizedSample]
    options: PipelineOptions
    device_id: Optional[str] = None
