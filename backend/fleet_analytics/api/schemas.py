"""
API schemas (Pydantic models) for request/response validation.
"""

from typing import Any, Literal, Optional

from pydantic import BaseModel, ConfigDict, Field


# ============================================================================
# Analytics Schemas
# ============================================================================

class AnalyticsOptionsRequest(BaseModel):
    """Pipeline options supplied by the caller."""
    moving_threshold_kmh: float = Field(default=5.0, ge=0.0)
    drive_mode_strategy: Literal["speed", "throttle"] = "speed"
    report_timezone: str = "source"
    precision: int = Field(default=1, ge=0, le=6)


class AnalyticsRequest(BaseModel):
    """Rows to aggregate without any upstream fetch."""
    columns: list[str]
    values: list[list[Any]]
    device_id: Optional[str] = None
    options: AnalyticsOptionsRequest = Field(default_factory=AnalyticsOptionsRequest)
    include_samples: bool = True


class SummaryResponse(BaseModel):
    """Aggregate statistics for the whole range."""
    total_distance_km: float
    avg_speed_kmh: float
    max_speed_kmh: float
    drive_mode_counts: dict[str, int]
    drive_mode_percentages: dict[str, float]
    preferred_drive_mode: Optional[str] = None
    trip_count: int
    longest_trip_km: float
    avg_trip_distance_km: float
    total_samples: int
    moving_sample_count: int
    stopped_sample_count: int
    skipped_rows: int
    average_daily_max_speed_kmh: float
    avg_daily_distance_km: float
    odometer_min_km: float
    odometer_max_km: float
    odometer_distance_km: float
    completed_status_count: int
    incomplete_status_count: int
    first_timestamp: Optional[str] = None
    last_timestamp: Optional[str] = None


class DailyBucketResponse(BaseModel):
    """Statistics for one calendar day."""
    date: str
    distance_km: float
    max_speed_kmh: float
    avg_speed_kmh: float
    sample_count: int
    moving_sample_count: int
    stopped_sample_count: int


class TripResponse(BaseModel):
    """One trip (contiguous moving samples)."""
    index: int
    start_index: int
    end_index: int
    start_time: str
    end_time: str
    duration_s: float
    distance_km: float
    max_speed_kmh: float
    sample_count: int


class SampleResponse(BaseModel):
    """Normalized sample for charting."""
    index: int
    timestamp: str
    latitude: float
    longitude: float
    speed_kmh: float
    ignition_on: bool
    odometer_km: Optional[float] = None
    trip_status: Optional[int] = None
    throttle_pct: float
    brake_pct: float
    altitude_m: float
    heading_deg: float
    satellites: int
    drive_mode: str
    ride_status: str


# ============================================================================
# Vehicle Schemas
# ============================================================================

class DealerResponse(BaseModel):
    name: Optional[str] = None
    location: Optional[str] = None


class CustomerResponse(BaseModel):
    name: Optional[str] = None
    phone: Optional[str] = None
    address: str = "Not Available"


class BmsSpecsResponse(BaseModel):
    software: Optional[str] = None
    hardware: Optional[str] = None


class VehicleResponse(BaseModel):
    """Stored vehicle details."""
    imei: str
    display_name: str
    vehicle_no: Optional[str] = None
    vehicle_model: Optional[str] = None
    frame_no: Optional[str] = None
    battery_no: Optional[str] = None
    dealer: DealerResponse
    customer: CustomerResponse
    bms_specs: BmsSpecsResponse
    sale_date: Optional[str] = None


class DeviceListResponse(BaseModel):
    """Upstream device page with stored metadata merged in."""
    model_config = ConfigDict(extra="allow")

    entities: list[dict[str, Any]]


class AnalyticsResponse(BaseModel):
    """Full analytics for one vehicle and date range."""
    device_id: Optional[str] = None
    vehicle: Optional[VehicleResponse] = None
    options: AnalyticsOptionsRequest
    summary: SummaryResponse
    daily: list[DailyBucketResponse]
    trips: list[TripResponse]
    samples: Optional[list[SampleResponse]] = None


# ============================================================================
# Error Schemas
# ============================================================================

class ErrorResponse(BaseModel):
    """Standard error response."""
    detail: str
    code: Optional[str] = None
    retryable: bool = False
