"""
Tests for trip segmentation.
"""

from datetime import datetime, timedelta, timezone

import pytest

from fleet_analytics.models.telemetry import NormalizedSample
from fleet_analytics.services.trips import MotionState, TripSegmenter


START = datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc)


def _samples(speeds, ignitions):
    return [
        NormalizedSample(
            index=i,
            timestamp=START + timedelta(seconds=30 * i),
            latitude=12.97,
            longitude=77.59,
            speed_kmh=speed,
            ignition_on=ign,
        )
        for i, (speed, ign) in enumerate(zip(speeds, ignitions))
    ]


def _run(samples, segment_km=1.0, threshold=5.0):
    segmenter = TripSegmenter(threshold)
    flags = [segmenter.feed(s, 0.0 if i == 0 else segment_km) for i, s in enumerate(samples)]
    return flags, segmenter.finish()


class TestTripSegmenter:
    """Tests for the two-state trip machine."""

    def test_single_trip_in_the_middle(self):
        """Speeds [0,0,30,45,90,0] with ignition [F,T,T,T,T,F] give one trip 2-4."""
        samples = _samples([0, 0, 30, 45, 90, 0], [False, True, True, True, True, False])

        flags, trips = _run(samples)

        assert flags == [False, False, True, True, True, False]
        assert len(trips) == 1
        trip = trips[0]
        assert (trip.start_index, trip.end_index) == (2, 4)
        assert trip.sample_count == 3
        assert trip.max_speed_kmh == 90
        # Opening sample contributes no distance
        assert trip.distance_km == pytest.approx(2.0)
        assert trip.duration_s == 60.0

    def test_ignition_off_is_never_moving(self):
        samples = _samples([30, 40, 50], [False, False, False])
        flags, trips = _run(samples)

        assert flags == [False, False, False]
        assert trips == []

    def test_threshold_is_strict(self):
        """Speed equal to the threshold is stopped."""
        samples = _samples([5.0, 5.1], [True, True])
        flags, trips = _run(samples)

        assert flags == [False, True]
        assert len(trips) == 1

    def test_custom_threshold(self):
        samples = _samples([8, 12, 8], [True, True, True])
        flags, trips = _run(samples, threshold=10.0)

        assert flags == [False, True, False]
        assert len(trips) == 1
        assert trips[0].start_index == trips[0].end_index == 1
        assert trips[0].distance_km == 0.0

    def test_trip_open_at_end_of_stream(self):
        samples = _samples([0, 20, 25], [True, True, True])
        _, trips = _run(samples)

        assert len(trips) == 1
        assert (trips[0].start_index, trips[0].end_index) == (1, 2)

    def test_multiple_trips_in_order(self):
        samples = _samples([20, 20, 0, 0, 30, 0, 40], [True] * 7)
        _, trips = _run(samples)

        assert [(t.start_index, t.end_index) for t in trips] == [(0, 1), (4, 4), (6, 6)]
        assert [t.index for t in trips] == [0, 1, 2]

    def test_every_moving_sample_in_exactly_one_trip(self):
        speeds = [0, 10, 20, 0, 15, 15, 15, 2, 50]
        samples = _samples(speeds, [True] * len(speeds))
        flags, trips = _run(samples)

        for sample, moving in zip(samples, flags):
            containing = [t for t in trips if t.start_index <= sample.index <= t.end_index]
            assert len(containing) == (1 if moving else 0)

    def test_state_and_finish(self):
        segmenter = TripSegmenter()
        assert segmenter.state is MotionState.STOPPED

        segmenter.feed(_samples([30], [True])[0])
        assert segmenter.state is MotionState.MOVING
        assert segmenter.trips == []

        trips = segmenter.finish()
        assert len(trips) == 1
        assert segmenter.finish() == trips

        with pytest.raises(RuntimeError):
            segmenter.feed(_samples([30], [True])[0])
