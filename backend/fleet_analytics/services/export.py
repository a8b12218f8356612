"""
CSV export of a normalized location history.
"""

from typing import Optional, Sequence

import pandas as pd

from fleet_analytics.models.telemetry import DEFAULT_MOVING_THRESHOLD_KMH, NormalizedSample


EXPORT_COLUMNS = [
    "timestamp",
    "odometer_km",
    "ride_status",
    "speed_kmh",
    "latitude",
    "longitude",
    "ignition",
    "drive_mode",
]


def samples_to_frame(
    samples: Sequence[NormalizedSample],
    moving_threshold_kmh: float = DEFAULT_MOVING_THRESHOLD_KMH,
) -> pd.DataFrame:
    rows = [
        {
            "timestamp": s.timestamp.isoformat(),
            "odometer_km": round(s.odometer_km, 3) if s.odometer_km is not None else None,
            "ride_status": s.ride_status(moving_threshold_kmh).value,
            "speed_kmh": s.speed_kmh,
            "latitude": s.latitude,
            "longitude": s.longitude,
            "ignition": int(s.ignition_on),
            "drive_mode": s.drive_mode.value,
        }
        for s in samples
    ]
    return pd.DataFrame(rows, columns=EXPORT_COLUMNS)


def history_to_csv(
    samples: Sequence[NormalizedSample],
    moving_threshold_kmh: float = DEFAULT_MOVING_THRESHOLD_KMH,
    path: Optional[str] = None,
) -> str:
    """Render samples as CSV text; also written to `path` when given."""
    frame = samples_to_frame(samples, moving_threshold_kmh)
    text = frame.to_csv(index=False)
    if path is not None:
        with open(path, "w", encoding="utf-8", newline="") as f:
            f.write(text)
    return text
