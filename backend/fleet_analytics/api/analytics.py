"""
API routes for fleet analytics.
"""

import logging
from datetime import date
from typing import Literal, Optional

from fastapi import APIRouter, HTTPException, Query
from fastapi.concurrency import run_in_threadpool
from fastapi.responses import Response

from fleet_analytics.api.schemas import (
    AnalyticsOptionsRequest,
    AnalyticsRequest,
    AnalyticsResponse,
    BmsSpecsResponse,
    CustomerResponse,
    DailyBucketResponse,
    DealerResponse,
    SampleResponse,
    SummaryResponse,
    TripResponse,
    VehicleResponse,
)
from fleet_analytics.config import get_settings
from fleet_analytics.models.raw import RawSeries
from fleet_analytics.models.telemetry import (
    AggregateSummary,
    AnalyticsResult,
    DailyBucket,
    NormalizedSample,
    PipelineOptions,
    Trip,
)
from fleet_analytics.models.vehicle import VehicleDetails
from fleet_analytics.services.analytics_cache import get_analytics_cache
from fleet_analytics.services.export import history_to_csv
from fleet_analytics.services.pipeline import aggregate_series
from fleet_analytics.services.repository import get_repository
from fleet_analytics.services.series_parser import parse_history_response
from fleet_analytics.services.statistics import resolve_report_timezone
from fleet_analytics.services.telemetry_client import TelemetryFetchError, get_telemetry_client


logger = logging.getLogger(__name__)

router = APIRouter(tags=["analytics"])


def _iso(value) -> Optional[str]:
    return value.isoformat() if value is not None else None


def _build_summary_response(summary: AggregateSummary) -> SummaryResponse:
    return SummaryResponse(
        total_distance_km=summary.total_distance_km,
        avg_speed_kmh=summary.avg_speed_kmh,
        max_speed_kmh=summary.max_speed_kmh,
        drive_mode_counts={m.value: c for m, c in summary.drive_mode_counts.items()},
        drive_mode_percentages={m.value: p for m, p in summary.drive_mode_percentages.items()},
        preferred_drive_mode=summary.preferred_drive_mode.value if summary.preferred_drive_mode else None,
        trip_count=summary.trip_count,
        longest_trip_km=summary.longest_trip_km,
        avg_trip_distance_km=summary.avg_trip_distance_km,
        total_samples=summary.total_samples,
        moving_sample_count=summary.moving_sample_count,
        stopped_sample_count=summary.stopped_sample_count,
        skipped_rows=summary.skipped_rows,
        average_daily_max_speed_kmh=summary.average_daily_max_speed_kmh,
        avg_daily_distance_km=summary.avg_daily_distance_km,
        odometer_min_km=summary.odometer_min_km,
        odometer_max_km=summary.odometer_max_km,
        odometer_distance_km=summary.odometer_distance_km,
        completed_status_count=summary.completed_status_count,
        incomplete_status_count=summary.incomplete_status_count,
        first_timestamp=_iso(summary.first_timestamp),
        last_timestamp=_iso(summary.last_timestamp),
    )


def _build_daily_response(bucket: DailyBucket, precision: int) -> DailyBucketResponse:
    return DailyBucketResponse(
        date=bucket.date,
        distance_km=bucket.distance_km,
        max_speed_kmh=bucket.max_speed_kmh,
        avg_speed_kmh=round(bucket.avg_speed_kmh, precision),
        sample_count=bucket.sample_count,
        moving_sample_count=bucket.moving_sample_count,
        stopped_sample_count=bucket.stopped_sample_count,
    )


def _build_trip_response(trip: Trip) -> TripResponse:
    return TripResponse(
        index=trip.index,
        start_index=trip.start_index,
        end_index=trip.end_index,
        start_time=trip.start_time.isoformat(),
        end_time=trip.end_time.isoformat(),
        duration_s=trip.duration_s,
        distance_km=trip.distance_km,
        max_speed_kmh=trip.max_speed_kmh,
        sample_count=trip.sample_count,
    )


def _build_sample_response(sample: NormalizedSample, threshold_kmh: float) -> SampleResponse:
    return SampleResponse(
        index=sample.index,
        timestamp=sample.timestamp.isoformat(),
        latitude=sample.latitude,
        longitude=sample.longitude,
        speed_kmh=sample.speed_kmh,
        ignition_on=sample.ignition_on,
        odometer_km=sample.odometer_km,
        trip_status=sample.trip_status,
        throttle_pct=sample.throttle_pct,
        brake_pct=sample.brake_pct,
        altitude_m=sample.altitude_m,
        heading_deg=sample.heading_deg,
        satellites=sample.satellites,
        drive_mode=sample.drive_mode.value,
        ride_status=sample.ride_status(threshold_kmh).value,
    )


def build_vehicle_response(vehicle: VehicleDetails) -> VehicleResponse:
    return VehicleResponse(
        imei=vehicle.imei,
        display_name=vehicle.display_name,
        vehicle_no=vehicle.vehicle_no,
        vehicle_model=vehicle.vehicle_model,
        frame_no=vehicle.frame_no,
        battery_no=vehicle.battery_no,
        dealer=DealerResponse(name=vehicle.dealer_name, location=vehicle.dealer_location),
        customer=CustomerResponse(
            name=vehicle.customer_name,
            phone=vehicle.customer_phone,
            address=vehicle.customer_address or "Not Available",
        ),
        bms_specs=BmsSpecsResponse(software=vehicle.bms_software, hardware=vehicle.bms_hardware),
        sale_date=vehicle.sale_date,
    )


def build_analytics_response(
    result: AnalyticsResult,
    vehicle: Optional[VehicleDetails] = None,
    include_samples: bool = True,
) -> AnalyticsResponse:
    """Build the API response from a pipeline result."""
    options = result.options
    threshold = options.moving_threshold_kmh

    return AnalyticsResponse(
        device_id=result.device_id,
        vehicle=build_vehicle_response(vehicle) if vehicle is not None else None,
        options=AnalyticsOptionsRequest(
            moving_threshold_kmh=threshold,
            drive_mode_strategy=options.drive_mode_strategy.value,
            report_timezone=options.report_timezone,
            precision=options.precision,
        ),
        summary=_build_summary_response(result.summary),
        daily=[_build_daily_response(d, options.precision) for d in result.daily],
        trips=[_build_trip_response(t) for t in result.trips],
        samples=[_build_sample_response(s, threshold) for s in result.samples] if include_samples else None,
    )


def to_pipeline_options(request: AnalyticsOptionsRequest) -> PipelineOptions:
    """Validate request options and convert them for the pipeline."""
    try:
        resolve_report_timezone(request.report_timezone)
        return PipelineOptions(
            moving_threshold_kmh=request.moving_threshold_kmh,
            drive_mode_strategy=request.drive_mode_strategy,
            report_timezone=request.report_timezone,
            precision=request.precision,
        )
    except ValueError as e:
        raise HTTPException(status_code=400, detail=str(e))


def _check_range(start_date: date, end_date: date) -> None:
    if end_date < start_date:
        raise HTTPException(status_code=400, detail="end_date must not be before start_date")


async def _fetch_and_aggregate(
    imei: str,
    start_date: date,
    end_date: date,
    options: PipelineOptions,
) -> AnalyticsResult:
    """Fetch a vehicle's history (coalesced and cached) and aggregate it."""
    _check_range(start_date, end_date)

    key = (
        imei,
        start_date.isoformat(),
        end_date.isoformat(),
        options.drive_mode_strategy.value,
        options.report_timezone,
        options.moving_threshold_kmh,
        options.precision,
    )

    async def compute() -> AnalyticsResult:
        logger.info(f"Computing analytics for {imei} {start_date} to {end_date}")
        payload = await get_telemetry_client().fetch_history(imei, start_date, end_date)
        try:
            series: RawSeries = parse_history_response(payload, device_id=imei)
        except ValueError as e:
            raise TelemetryFetchError(f"Invalid history payload: {e}", retryable=False) from e
        return await run_in_threadpool(aggregate_series, series, options)

    return await get_analytics_cache().get_or_compute(key, compute)


def _query_options(
    strategy: Optional[str],
    timezone: Optional[str],
    moving_threshold_kmh: Optional[float],
) -> PipelineOptions:
    settings = get_settings()
    return to_pipeline_options(AnalyticsOptionsRequest(
        moving_threshold_kmh=moving_threshold_kmh if moving_threshold_kmh is not None else settings.moving_threshold_kmh,
        drive_mode_strategy=strategy or settings.drive_mode_strategy,
        report_timezone=timezone or settings.report_timezone,
    ))


@router.post("/analytics", response_model=AnalyticsResponse)
async def aggregate_rows_endpoint(request: AnalyticsRequest):
    """
    Aggregate caller-supplied rows.

    No upstream fetch happens; malformed rows are skipped and counted.
    """
    options = to_pipeline_options(request.options)
    series = RawSeries(
        columns=request.columns,
        values=request.values,
        source="request",
        device_id=request.device_id,
    )
    result = await run_in_threadpool(aggregate_series, series, options)

    vehicle = get_repository().get(request.device_id) if request.device_id else None
    return build_analytics_response(result, vehicle, request.include_samples)


@router.get("/vehicles/{imei}/analytics", response_model=AnalyticsResponse)
async def get_vehicle_analytics(
    imei: str,
    start_date: date = Query(..., description="First day (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Last day (YYYY-MM-DD)"),
    strategy: Optional[Literal["speed", "throttle"]] = Query(None, description="Drive-mode rule table"),
    timezone: Optional[str] = Query(None, description="Day boundaries: source, UTC or an IANA zone"),
    moving_threshold_kmh: Optional[float] = Query(None, ge=0.0),
    include_samples: bool = Query(True, description="Include normalized samples for charting"),
):
    """
    Fetch a vehicle's location history and return trip, distance and
    drive-mode analytics for the range.
    """
    options = _query_options(strategy, timezone, moving_threshold_kmh)
    result = await _fetch_and_aggregate(imei, start_date, end_date, options)
    vehicle = get_repository().get(imei)
    return build_analytics_response(result, vehicle, include_samples)


@router.get("/vehicles/{imei}/history.csv")
async def export_vehicle_history(
    imei: str,
    start_date: date = Query(...),
    end_date: date = Query(...),
    timezone: Optional[str] = Query(None),
):
    """Download the normalized location history as CSV."""
    options = _query_options(None, timezone, None)
    result = await _fetch_and_aggregate(imei, start_date, end_date, options)
    content = await run_in_threadpool(history_to_csv, result.samples, options.moving_threshold_kmh)
    filename = f"location-history-{imei}-{start_date.isoformat()}-{end_date.isoformat()}.csv"
    return Response(
        content=content,
        media_type="text/csv",
        headers={"Content-Disposition": f'attachment; filename="{filename}"'},
    )


@router.get("/vehicles/{imei}/history/battery")
async def get_battery_history(
    imei: str,
    start_date: date = Query(..., description="First day (YYYY-MM-DD)"),
    end_date: date = Query(..., description="Last day (YYYY-MM-DD)"),
):
    """Pass through a vehicle's battery history series for the range."""
    _check_range(start_date, end_date)
    logger.info(f"Fetching battery history for {imei} {start_date} to {end_date}")
    payload = await get_telemetry_client().fetch_history(imei, start_date, end_date, kind="batteryData")
    if "results" not in payload:
        raise TelemetryFetchError("Invalid battery payload: missing results", retryable=False)
    return payload
