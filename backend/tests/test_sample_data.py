"""
Tests for the synthetic ride history generator.
"""

from fleet_analytics.utils.sample_data import HISTORY_COLUMNS, generate_ride_history, write_history_csv


class TestGenerateRideHistory:
    """Tests for generated payloads."""

    def test_payload_shape(self):
        payload = generate_ride_history(n_samples=50)
        series = payload["results"][0]["series"][0]

        assert series["columns"] == HISTORY_COLUMNS
        assert len(series["values"]) == 50
        assert all(len(row) == len(HISTORY_COLUMNS) for row in series["values"])

    def test_deterministic(self):
        assert generate_ride_history(seed=3) == generate_ride_history(seed=3)
        assert generate_ride_history(seed=3) != generate_ride_history(seed=4)

    def test_parked_samples_are_stationary(self):
        values = generate_ride_history(n_samples=200)["results"][0]["series"][0]["values"]
        speed = HISTORY_COLUMNS.index("speed")
        ignition = HISTORY_COLUMNS.index("ignition")

        parked = [row for row in values if row[ignition] == "0"]
        assert parked
        assert all(row[speed] == 0.0 for row in parked)

    def test_write_csv(self, tmp_path):
        path = write_history_csv(tmp_path / "out" / "history.csv", generate_ride_history(n_samples=10))

        lines = path.read_text().splitlines()
        assert lines[0] == ",".join(HISTORY_COLUMNS)
        assert len(lines) == 11
