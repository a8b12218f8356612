"""
Tests for history response and CSV series adapters.
"""

import pytest

from fleet_analytics.services.series_parser import (
    CsvSeriesAdapter,
    InfluxSeriesAdapter,
    load_csv_series,
    parse_history_response,
)


@pytest.fixture
def history_payload():
    """Upstream history response with two series sharing a header."""
    return {
        "results": [{
            "series": [
                {
                    "name": "locationData",
                    "columns": ["time", "lat", "lng", "speed", "ignition"],
                    "values": [
                        ["2024-05-01T06:00:00Z", 12.9716, 77.5946, 0, "0"],
                        ["2024-05-01T06:00:30Z", 12.9720, 77.5950, 30, "1"],
                    ],
                },
                {
                    "name": "locationData",
                    "columns": ["time", "lat", "lng", "speed", "ignition"],
                    "values": [["2024-05-01T06:01:00Z", 12.9725, 77.5955, 32, "1"]],
                },
            ]
        }]
    }


@pytest.fixture
def sample_csv_content():
    """CSV export with a comment line and an empty cell."""
    return """# exported from fleet dashboard
time,lat,lng,speed,ignition,odo
2024-05-01T06:00:00Z,12.9716,77.5946,0,0,1200.0
2024-05-01T06:00:30Z,12.9720,77.5950,30,1,
2024-05-01T06:01:00Z,12.9725,77.5955,32,1,1200.2
"""


@pytest.fixture
def sample_csv_file(sample_csv_content, tmp_path):
    csv_file = tmp_path / "861234567890123.csv"
    csv_file.write_text(sample_csv_content)
    return csv_file


class TestInfluxSeriesAdapter:
    """Tests for upstream history responses."""

    def test_parse_concatenates_series(self, history_payload):
        series = parse_history_response(history_payload, device_id="861234567890123")

        assert series.columns == ["time", "lat", "lng", "speed", "ignition"]
        assert len(series) == 3
        assert series.device_id == "861234567890123"
        assert series.source == InfluxSeriesAdapter.name
        assert series.column_index["speed"] == 3

    def test_series_with_other_columns_is_ignored(self, history_payload):
        history_payload["results"][0]["series"][1]["columns"] = ["time", "soc"]
        history_payload["results"][0]["series"][1]["values"] = [["2024-05-01T06:01:00Z", 80]]

        series = parse_history_response(history_payload)

        assert len(series) == 2

    def test_missing_results_is_empty(self):
        assert len(parse_history_response({})) == 0
        assert len(parse_history_response({"results": [{}]})) == 0
        assert parse_history_response({"results": [{"series": []}]}).columns == []

    @pytest.mark.parametrize("payload", [
        [],
        {"results": "nope"},
        {"results": [42]},
        {"results": [{"series": [{"columns": "time", "values": []}]}]},
    ])
    def test_invalid_shape_raises(self, payload):
        with pytest.raises(ValueError):
            parse_history_response(payload)


class TestCsvSeriesAdapter:
    """Tests for CSV exports."""

    def test_can_parse(self, tmp_path):
        adapter = CsvSeriesAdapter()
        assert adapter.can_parse(tmp_path / "run.csv")
        assert adapter.can_parse(tmp_path / "RUN.CSV")
        assert not adapter.can_parse(tmp_path / "run.json")

    def test_parse_skips_comments(self, sample_csv_file):
        series = load_csv_series(sample_csv_file)

        assert series.columns == ["time", "lat", "lng", "speed", "ignition", "odo"]
        assert len(series) == 3
        assert series.values[0][0] == "2024-05-01T06:00:00Z"

    def test_empty_cells_become_none(self, sample_csv_file):
        series = load_csv_series(sample_csv_file)
        assert series.values[1][5] is None

    def test_device_id_defaults_to_file_stem(self, sample_csv_file):
        assert load_csv_series(sample_csv_file).device_id == "861234567890123"
        assert load_csv_series(sample_csv_file, device_id="abc").device_id == "abc"

    def test_header_only_file(self, tmp_path):
        csv_file = tmp_path / "empty.csv"
        csv_file.write_text("# nothing recorded\n")

        series = load_csv_series(csv_file)

        assert len(series) == 0

    def test_unsupported_file(self, tmp_path):
        json_file = tmp_path / "history.json"
        json_file.write_text("{}")

        with pytest.raises(ValueError, match="No adapter"):
            load_csv_series(json_file)
