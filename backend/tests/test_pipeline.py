"""
Tests for the aggregation pipeline, end to end.
"""

from datetime import datetime, timedelta, timezone

import pytest

from fleet_analytics.models.raw import RawSeries
from fleet_analytics.models.telemetry import DriveMode, DriveModeStrategy, PipelineOptions
from fleet_analytics.services.pipeline import aggregate_rows, aggregate_series
from fleet_analytics.services.series_parser import load_csv_series, parse_history_response
from fleet_analytics.utils.sample_data import generate_ride_history, write_history_csv


COLUMNS = ["time", "lat", "lng", "speed", "ignition"]
START = datetime(2024, 5, 1, 6, 0, tzinfo=timezone.utc)


def _ts(i, start=START, step_s=30):
    return (start + timedelta(seconds=step_s * i)).strftime("%Y-%m-%dT%H:%M:%SZ")


@pytest.fixture
def generated_series():
    """Deterministic multi-ride history."""
    return parse_history_response(generate_ride_history(n_samples=400, seed=11), device_id="861234567890123")


class TestScenarios:
    """Worked examples."""

    def test_empty_input(self):
        result = aggregate_rows(COLUMNS, [])

        assert result.summary.total_distance_km == 0.0
        assert result.summary.trip_count == 0
        assert result.summary.total_samples == 0
        assert all(p == 0.0 for p in result.summary.drive_mode_percentages.values())
        assert result.daily == []
        assert result.trips == []
        assert result.samples == []

    def test_two_moving_samples(self):
        rows = [
            [_ts(0), 12.9716, 77.5946, 30, "1"],
            [_ts(1), 12.9720, 77.5950, 30, "1"],
        ]

        result = aggregate_rows(COLUMNS, rows)

        assert [s.drive_mode for s in result.samples] == [DriveMode.ECO, DriveMode.ECO]
        assert len(result.trips) == 1
        assert result.trips[0].distance_km == pytest.approx(0.061, abs=0.002)
        assert result.summary.total_distance_km == pytest.approx(0.1)
        assert result.summary.longest_trip_km == pytest.approx(0.1)

    def test_one_trip_over_middle_samples(self):
        speeds = [0, 0, 30, 45, 90, 0]
        ignition = ["0", "1", "1", "1", "1", "0"]
        rows = [
            [_ts(i), 12.9716 + i * 0.0004, 77.5946, speed, ign]
            for i, (speed, ign) in enumerate(zip(speeds, ignition))
        ]

        result = aggregate_rows(COLUMNS, rows)

        assert len(result.trips) == 1
        assert (result.trips[0].start_index, result.trips[0].end_index) == (2, 4)
        assert result.summary.moving_sample_count == 3
        assert result.summary.stopped_sample_count == 3
        assert result.summary.max_speed_kmh == 90.0

    def test_missing_position_contributes_nothing(self):
        rows = [
            [_ts(0), 12.9716, 77.5946, 30, "1"],
            [_ts(1), 0, 0, 30, "1"],
            [_ts(2), 12.9716, 77.5946, 30, "1"],
        ]

        result = aggregate_rows(COLUMNS, rows)

        assert result.summary.total_distance_km == 0.0
        assert result.trips[0].distance_km == 0.0

    def test_even_drive_mode_split(self):
        """Twenty-five samples in each band give exactly 25% per mode."""
        speeds = [0, 30, 60, 100] * 25
        rows = [[_ts(i), 12.97, 77.59, speed, "1"] for i, speed in enumerate(speeds)]

        result = aggregate_rows(COLUMNS, rows)

        assert result.summary.total_samples == 100
        for mode in DriveMode:
            assert result.summary.drive_mode_counts[mode] == 25
            assert result.summary.drive_mode_percentages[mode] == 25.0


class TestPipelineOptions:
    """Tests for option handling."""

    def test_defaults(self):
        options = PipelineOptions()
        assert options.moving_threshold_kmh == 5.0
        assert options.drive_mode_strategy is DriveModeStrategy.SPEED
        assert options.report_timezone == "source"
        assert options.precision == 1

    def test_strategy_from_string(self):
        assert PipelineOptions(drive_mode_strategy="throttle").drive_mode_strategy is DriveModeStrategy.THROTTLE

    @pytest.mark.parametrize("kwargs", [
        {"drive_mode_strategy": "sport"},
        {"moving_threshold_kmh": -1.0},
        {"precision": -1},
    ])
    def test_invalid_options(self, kwargs):
        with pytest.raises(ValueError):
            PipelineOptions(**kwargs)

    def test_unknown_timezone_raises(self):
        with pytest.raises(ValueError):
            aggregate_rows(COLUMNS, [], PipelineOptions(report_timezone="Nowhere/Special"))

    def test_throttle_strategy(self):
        columns = COLUMNS + ["throttle"]
        rows = [
            [_ts(0), 12.97, 77.59, 30, "1", 80],
            [_ts(1), 12.97, 77.59, 30, "1", 10],
            [_ts(2), 12.97, 77.59, 70, "1", 10],
            [_ts(3), 12.97, 77.59, 0, "0", 0],
        ]

        result = aggregate_rows(columns, rows, PipelineOptions(drive_mode_strategy="throttle"))

        pct = result.summary.drive_mode_percentages
        assert pct[DriveMode.POWER] == pytest.approx(50.0)
        assert pct[DriveMode.ECO] == pytest.approx(50.0)
        assert pct[DriveMode.IDLE] == 0.0
        assert pct[DriveMode.FAMILY] == 0.0

    def test_moving_threshold(self):
        rows = [[_ts(i), 12.97, 77.59, speed, "1"] for i, speed in enumerate([8, 8, 12, 12])]

        default = aggregate_rows(COLUMNS, rows)
        strict = aggregate_rows(COLUMNS, rows, PipelineOptions(moving_threshold_kmh=10.0))

        assert default.summary.moving_sample_count == 4
        assert strict.summary.moving_sample_count == 2
        assert strict.trips[0].start_index == 2

    def test_report_timezone_moves_day_boundary(self):
        """A ride across IST midnight splits into two days only in IST."""
        start = datetime(2024, 5, 1, 18, 20, tzinfo=timezone.utc)  # 23:50 IST
        rows = [[_ts(i, start, 300), 12.97 + i * 0.001, 77.59, 30, "1"] for i in range(5)]

        source = aggregate_rows(COLUMNS, rows)
        ist = aggregate_rows(COLUMNS, rows, PipelineOptions(report_timezone="Asia/Kolkata"))

        assert [d.date for d in source.daily] == ["2024-05-01"]
        assert [d.date for d in ist.daily] == ["2024-05-01", "2024-05-02"]
        assert ist.summary.total_distance_km == source.summary.total_distance_km

    def test_skipped_rows_reported(self):
        rows = [
            [_ts(0), 12.97, 77.59, 30, "1"],
            [_ts(1), 12.97, 77.59, 30],
            ["not-a-time", 12.97, 77.59, 30, "1"],
        ]

        result = aggregate_rows(COLUMNS, rows, device_id="abc")

        assert result.summary.skipped_rows == 2
        assert result.summary.total_samples == 1
        assert result.device_id == "abc"


class TestPipelineProperties:
    """Invariants over generated multi-ride data."""

    def test_idempotent(self, generated_series):
        assert aggregate_series(generated_series) == aggregate_series(generated_series)

    def test_moving_and_stopped_partition(self, generated_series):
        summary = aggregate_series(generated_series).summary
        assert summary.moving_sample_count + summary.stopped_sample_count == summary.total_samples
        assert summary.total_samples == len(generated_series)

    def test_percentages_sum_to_100(self, generated_series):
        summary = aggregate_series(generated_series).summary
        assert sum(summary.drive_mode_percentages.values()) == pytest.approx(100.0)

    def test_trip_containment(self, generated_series):
        result = aggregate_series(generated_series)
        threshold = result.options.moving_threshold_kmh

        assert result.trips
        for sample in result.samples:
            containing = [t for t in result.trips if t.start_index <= sample.index <= t.end_index]
            assert len(containing) == (1 if sample.is_moving(threshold) else 0)

    def test_total_distance_covers_each_day(self, generated_series):
        result = aggregate_series(generated_series)

        assert result.summary.total_distance_km > 0
        for day in result.daily:
            assert result.summary.total_distance_km >= day.distance_km
        assert sum(d.sample_count for d in result.daily) == result.summary.total_samples

    def test_trip_distances_bounded_by_total(self, generated_series):
        result = aggregate_series(generated_series, PipelineOptions(precision=6))
        assert sum(t.distance_km for t in result.trips) <= result.summary.total_distance_km + 1e-6

    def test_csv_export_gives_same_result(self, generated_series, tmp_path):
        payload = generate_ride_history(n_samples=400, seed=11)
        csv_file = write_history_csv(tmp_path / "861234567890123.csv", payload)

        from_csv = aggregate_series(load_csv_series(csv_file))
        from_api = aggregate_series(generated_series)

        assert from_csv.summary.total_distance_km == from_api.summary.total_distance_km
        assert from_csv.summary.trip_count == from_api.summary.trip_count
        assert from_csv.summary.odometer_max_km == from_api.summary.odometer_max_km

    def test_empty_series(self):
        result = aggregate_series(RawSeries.empty())
        assert result.summary.preferred_drive_mode is None
        assert result.daily == []
