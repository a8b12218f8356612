"""
API routes for vehicle listings and stored vehicle details.
"""

import logging

from fastapi import APIRouter, HTTPException, Query

from fleet_analytics.api.analytics import build_vehicle_response
from fleet_analytics.api.schemas import DeviceListResponse, VehicleResponse
from fleet_analytics.services.repository import get_repository
from fleet_analytics.services.telemetry_client import get_telemetry_client


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/vehicles", tags=["vehicles"])


@router.get("", response_model=DeviceListResponse)
async def list_vehicles(
    current_index: int = Query(0, ge=0),
    size_per_page: int = Query(10, ge=1, le=500),
):
    """
    List one page of upstream devices with stored metadata merged in.

    Pagination fields of the upstream response are passed through.
    """
    payload = await get_telemetry_client().fetch_devices(current_index, size_per_page)
    repo = get_repository()

    merged = dict(payload)
    merged["entities"] = [
        repo.merge_device(entity)
        for entity in payload["entities"]
        if isinstance(entity, dict)
    ]
    logger.info(f"Listed {len(merged['entities'])} devices (index {current_index})")
    return merged


@router.get("/{imei}", response_model=VehicleResponse)
async def get_vehicle(imei: str):
    """Get stored details for one vehicle."""
    vehicle = get_repository().get(imei)
    if vehicle is None:
        raise HTTPException(status_code=404, detail=f"Vehicle not found: {imei}")
    return build_vehicle_response(vehicle)
