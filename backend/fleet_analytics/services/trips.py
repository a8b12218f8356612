"""
Trip segmentation over a time-ordered sample stream.

A trip is a contiguous run of samples with the ignition on and speed above
the moving threshold. The segmenter is a two-state machine fed one sample
at a time together with the segment distance from the previous sample.
"""

import logging
from enum import Enum
from typing import Optional

from fleet_analytics.models.telemetry import (
    DEFAULT_MOVING_THRESHOLD_KMH,
    NormalizedSample,
    Trip,
)


logger = logging.getLogger(__name__)


class MotionState(Enum):
    STOPPED = "stopped"
    MOVING = "moving"


class TripSegmenter:
    """
    Groups moving samples into trips.

    Transitions:
    - STOPPED -> MOVING: open a trip at this sample (distance starts at 0)
    - MOVING -> MOVING: add the segment distance to the open trip
    - MOVING -> STOPPED: close the trip at the last moving sample
    - end of stream while MOVING: close the trip at the last sample
    """

    def __init__(self, moving_threshold_kmh: float = DEFAULT_MOVING_THRESHOLD_KMH):
        self.moving_threshold_kmh = moving_threshold_kmh
        self.state = MotionState.STOPPED
        self._trips: list[Trip] = []
        self._current: Optional[Trip] = None
        self._finished = False

    def feed(self, sample: NormalizedSample, segment_km: float = 0.0) -> bool:
        """
        Process one sample.

        Returns:
            True if the sample is moving (and therefore part of a trip)
        """
        if self._finished:
            raise RuntimeError("TripSegmenter.feed() called after finish()")

        moving = sample.is_moving(self.moving_threshold_kmh)

        if self.state is MotionState.STOPPED:
            if moving:
                self._open(sample)
                self.state = MotionState.MOVING
        else:
            if moving:
                self._extend(sample, segment_km)
            else:
                self._close()
                self.state = MotionState.STOPPED

        return moving

    def finish(self) -> list[Trip]:
        """Close any open trip and return all trips in stream order."""
        if not self._finished:
            if self.state is MotionState.MOVING:
                self._close()
                self.state = MotionState.STOPPED
            self._finished = True
        return list(self._trips)

    @property
    def trips(self) -> list[Trip]:
        return list(self._trips)

    def _open(self, sample: NormalizedSample) -> None:
        self._current = Trip(
            index=len(self._trips),
            start_index=sample.index,
            end_index=sample.index,
            start_time=sample.timestamp,
            end_time=sample.timestamp,
            distance_km=0.0,
            max_speed_kmh=sample.speed_kmh,
            sample_count=1,
        )

    def _extend(self, sample: NormalizedSample, segment_km: float) -> None:
        trip = self._current
        trip.end_index = sample.index
        trip.end_time = sample.timestamp
        trip.distance_km += segment_km
        trip.max_speed_kmh = max(trip.max_speed_kmh, sample.speed_kmh)
        trip.sample_count += 1

    def _close(self) -> None:
        trip = self._current
        self._trips.append(trip)
        self._current = None
        logger.debug(
            f"Trip {trip.index} closed: samples {trip.start_index}-{trip.end_index}, "
            f"{trip.distance_km:.3f} km"
        )
