"""
EV Fleet Analytics - Flask Backend

Alternative server for deployments that run Flask instead of uvicorn.
Same core endpoints and response bodies, different framework.
"""

import logging
from pathlib import Path
from typing import Optional

from flask import Flask, jsonify, request
from pydantic import ValidationError

from fleet_analytics.api.analytics import build_analytics_response, build_vehicle_response
from fleet_analytics.api.schemas import AnalyticsRequest
from fleet_analytics.config import get_settings
from fleet_analytics.models.raw import RawSeries
from fleet_analytics.models.telemetry import PipelineOptions
from fleet_analytics.services.pipeline import aggregate_series
from fleet_analytics.services.repository import get_repository, init_repository
from fleet_analytics.services.statistics import resolve_report_timezone


# Configure logging
logging.basicConfig(
    level=logging.INFO,
    format="%(asctime)s - %(name)s - %(levelname)s - %(message)s"
)
logger = logging.getLogger(__name__)


# Create Flask app
app = Flask(__name__)


# ============================================================================
# Health Endpoints
# ============================================================================

@app.route("/")
def root():
    """Root endpoint - basic health check."""
    return jsonify({
        "name": "EV Fleet Analytics",
        "version": "0.1.0",
        "status": "running",
    })


@app.route("/health")
def health_check():
    """Health check endpoint."""
    repo = get_repository()
    return jsonify({
        "status": "healthy",
        "vehicles_file": str(repo.source_file) if repo.source_file else None,
        "vehicle_count": len(repo),
        "telemetry_base_url": get_settings().telemetry_base_url,
    })


# ============================================================================
# Analytics Endpoints
# ============================================================================

@app.route("/analytics", methods=["POST"])
def aggregate_rows_endpoint():
    """Aggregate caller-supplied rows."""
    data = request.get_json(silent=True)
    if data is None:
        return jsonify({"detail": "JSON body is required"}), 400

    try:
        body = AnalyticsRequest.model_validate(data)
    except ValidationError as e:
        return jsonify({"detail": e.errors(include_url=False, include_context=False)}), 422

    try:
        resolve_report_timezone(body.options.report_timezone)
        options = PipelineOptions(
            moving_threshold_kmh=body.options.moving_threshold_kmh,
            drive_mode_strategy=body.options.drive_mode_strategy,
            report_timezone=body.options.report_timezone,
            precision=body.options.precision,
        )
    except ValueError as e:
        return jsonify({"detail": str(e)}), 400

    series = RawSeries(columns=body.columns, values=body.values, source="request", device_id=body.device_id)
    result = aggregate_series(series, options)

    vehicle = get_repository().get(body.device_id) if body.device_id else None
    response = build_analytics_response(result, vehicle, body.include_samples)
    return jsonify(response.model_dump(mode="json"))


# ============================================================================
# Vehicle Endpoints
# ============================================================================

@app.route("/vehicles/<imei>", methods=["GET"])
def get_vehicle(imei: str):
    """Get stored details for one vehicle."""
    vehicle = get_repository().get(imei)
    if vehicle is None:
        return jsonify({"detail": f"Vehicle not found: {imei}"}), 404
    return jsonify(build_vehicle_response(vehicle).model_dump(mode="json"))


# ============================================================================
# Startup
# ============================================================================

def create_app(vehicles_file: Optional[Path] = None) -> Flask:
    """Create and configure the Flask app."""
    if vehicles_file is None and get_settings().vehicles_file:
        vehicles_file = Path(get_settings().vehicles_file)

    if vehicles_file is not None and vehicles_file.exists():
        init_repository(vehicles_file)
    elif vehicles_file is not None:
        logger.info(f"Vehicle file not found: {vehicles_file}")

    return app


if __name__ == "__main__":
    import sys

    # Allow specifying the vehicle file as argument
    vehicles_file = Path(sys.argv[1]) if len(sys.argv) > 1 else None

    create_app(vehicles_file)
    app.run(host="0.0.0.0", port=8000, debug=True)
