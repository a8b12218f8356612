"""
Drive-mode classification strategies.

Two rule tables exist in the fleet dashboards:

- SPEED: four buckets on speed alone. This is the canonical table, used for
  daily and percentage reporting.
- THROTTLE: Power when the throttle is above 70% or speed above 60 km/h,
  Eco otherwise. Kept as an alternate view.
"""

from typing import Callable, Union

from fleet_analytics.models.telemetry import DriveMode, DriveModeStrategy


CITY_MAX_KMH = 40.0
MIXED_MAX_KMH = 80.0

POWER_THROTTLE_PCT = 70.0
POWER_SPEED_KMH = 60.0


Classifier = Callable[[float, float], DriveMode]


def classify_by_speed(speed_kmh: float, throttle_pct: float = 0.0) -> DriveMode:
    if speed_kmh <= 0:
        return DriveMode.IDLE
    if speed_kmh <= CITY_MAX_KMH:
        return DriveMode.ECO
    if speed_kmh <= MIXED_MAX_KMH:
        return DriveMode.FAMILY
    return DriveMode.POWER


def classify_by_throttle(speed_kmh: float, throttle_pct: float = 0.0) -> DriveMode:
    if throttle_pct > POWER_THROTTLE_PCT or speed_kmh > POWER_SPEED_KMH:
        return DriveMode.POWER
    return DriveMode.ECO


CLASSIFIERS: dict[DriveModeStrategy, Classifier] = {
    DriveModeStrategy.SPEED: classify_by_speed,
    DriveModeStrategy.THROTTLE: classify_by_throttle,
}


def get_classifier(strategy: Union[DriveModeStrategy, str]) -> Classifier:
    """Look up the classifier for a strategy (enum or its string value)."""
    if not isinstance(strategy, DriveModeStrategy):
        try:
            strategy = DriveModeStrategy(str(strategy).lower())
        except ValueError:
            raise ValueError(f"Unknown drive mode strategy: {strategy}")
    return CLASSIFIERS[strategy]
