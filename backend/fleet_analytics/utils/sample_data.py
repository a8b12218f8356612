"""
Sample data generator for testing and demos.

Generates realistic-looking scooter location history in the column layout
of the telematics history API (time, lat, lng, speed, ignition, odo, trip,
alt, hdg, sat, throttle, brake). Output is deterministic for a given seed.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Any, Optional

import numpy as np
import pandas as pd

from fleet_analytics.utils.coordinates import haversine_distance


HISTORY_COLUMNS = [
    "time", "lat", "lng", "speed", "ignition", "odo", "trip",
    "alt", "hdg", "sat", "throttle", "brake",
]


def generate_ride_history(
    n_samples: int = 240,
    start: Optional[datetime] = None,
    interval_s: float = 30.0,
    center_lat: float = 12.9716,  # Bengaluru
    center_lon: float = 77.5946,
    max_speed_kmh: float = 70.0,
    seed: int = 7,
) -> dict[str, Any]:
    """
    Generate a history payload shaped like the upstream API response.

    The vehicle alternates between parked spells (ignition off, speed 0) and
    rides with a smooth speed profile. Positions follow the speed so the
    haversine distance roughly matches the odometer.
    """
    rng = np.random.default_rng(seed)
    start = start or datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc)

    # Alternate parked / riding phases
    phase = np.zeros(n_samples, dtype=bool)
    i = 0
    riding = False
    while i < n_samples:
        length = int(rng.integers(10, 40))
        phase[i:i + length] = riding
        riding = not riding
        i += length

    t = np.arange(n_samples)
    base = 0.5 * (1 - np.cos(2 * np.pi * (t % 40) / 40))
    speed = np.where(phase, max_speed_kmh * (0.2 + 0.8 * base), 0.0)
    speed = np.where(phase, speed + rng.normal(0, 2.0, n_samples), 0.0)
    speed = np.clip(speed, 0.0, None)

    heading = np.cumsum(rng.normal(0, 8.0, n_samples)) % 360
    step_km = speed * interval_s / 3600.0
    dlat = step_km * np.cos(np.radians(heading)) / 111.0
    dlon = step_km * np.sin(np.radians(heading)) / (111.0 * np.cos(np.radians(center_lat)))
    lat = center_lat + np.cumsum(dlat)
    lon = center_lon + np.cumsum(dlon)

    hop = np.zeros(n_samples)
    hop[1:] = haversine_distance(lat[:-1], lon[:-1], lat[1:], lon[1:])
    odo = 1200.0 + np.cumsum(hop)

    throttle = np.where(phase, np.clip(speed / max_speed_kmh * 100 + rng.normal(0, 5, n_samples), 0, 100), 0.0)
    brake = np.where(phase & (np.diff(speed, prepend=speed[0]) < -5), 40.0, 0.0)

    values = []
    for k in range(n_samples):
        ts = start + timedelta(seconds=float(k * interval_s))
        ride_ended = k > 0 and phase[k - 1] and not phase[k]
        values.append([
            ts.strftime("%Y-%m-%dT%H:%M:%SZ"),
            round(float(lat[k]), 6),
            round(float(lon[k]), 6),
            round(float(speed[k]), 1),
            "1" if phase[k] else "0",
            round(float(odo[k]), 3),
            1 if ride_ended else 0,
            round(float(900 + rng.normal(0, 2)), 1),
            round(float(heading[k]), 1),
            int(rng.integers(6, 14)),
            round(float(throttle[k]), 1),
            round(float(brake[k]), 1),
        ])

    return {"results": [{"series": [{"name": "locationData", "columns": list(HISTORY_COLUMNS), "values": values}]}]}


def write_history_csv(output_path: Path, payload: dict[str, Any]) -> Path:
    """Write a generated history payload as a CSV export."""
    series = payload["results"][0]["series"][0]
    frame = pd.DataFrame(series["values"], columns=series["columns"])
    output_path.parent.mkdir(parents=True, exist_ok=True)
    frame.to_csv(output_path, index=False)
    return output_path
