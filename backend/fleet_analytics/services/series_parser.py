"""
Telemetry series adapters.

Turns upstream history responses and CSV exports into RawSeries.
Normalization happens in fleet_analytics.services.normalizer.
"""

import logging
from pathlib import Path
from typing import Any, Optional, Protocol

import pandas as pd

from fleet_analytics.models.raw import RawSeries


logger = logging.getLogger(__name__)


class SeriesAdapter(Protocol):
    """Adapter interface for raw telemetry sources."""

    name: str

    def parse(self, source: Any, device_id: Optional[str] = None) -> RawSeries:
        ...


class InfluxSeriesAdapter:
    """
    Adapter for the telematics history API.

    Expected shape:
        {"results": [{"series": [{"columns": [...], "values": [[...], ...]}]}]}

    Additional series sharing the first series' columns are appended in
    order; series with a different header are ignored.
    """

    name = "influx_series"

    def parse(self, payload: Any, device_id: Optional[str] = None) -> RawSeries:
        if not isinstance(payload, dict):
            raise ValueError(f"History payload must be an object, got {type(payload).__name__}")

        results = payload.get("results")
        if results is None:
            return RawSeries.empty(source=self.name, device_id=device_id)
        if not isinstance(results, list):
            raise ValueError("History payload 'results' must be a list")

        columns: Optional[list[str]] = None
        values: list[list[Any]] = []

        for result in results:
            if not isinstance(result, dict):
                raise ValueError("History payload result must be an object")
            for series in result.get("series") or []:
                if not isinstance(series, dict):
                    raise ValueError("History payload series must be an object")
                series_columns = series.get("columns")
                series_values = series.get("values") or []
                if not isinstance(series_columns, list) or not isinstance(series_values, list):
                    raise ValueError("History series needs list 'columns' and 'values'")

                if columns is None:
                    columns = [str(c) for c in series_columns]
                elif [str(c) for c in series_columns] != columns:
                    logger.warning(f"Ignoring series with different columns for {device_id}")
                    continue
                values.extend(series_values)

        if columns is None:
            return RawSeries.empty(source=self.name, device_id=device_id)

        return RawSeries(columns=columns, values=values, source=self.name, device_id=device_id)


class CsvSeriesAdapter:
    """
    Adapter for CSV exports with one header row.

    Leading comment lines starting with '#' are skipped. Empty cells
    become None so the normalizer treats them as absent.
    """

    name = "csv"

    def can_parse(self, filepath: Path) -> bool:
        return filepath.suffix.lower() == ".csv"

    def parse(self, filepath: Path, device_id: Optional[str] = None) -> RawSeries:
        filepath = Path(filepath)
        with open(filepath, "r", encoding="utf-8-sig") as f:
            lines = f.read().splitlines()

        skip_rows = 0
        for line in lines:
            if line.strip().startswith("#"):
                skip_rows += 1
            else:
                break

        if skip_rows >= len(lines) or not "".join(lines[skip_rows:]).strip():
            return RawSeries.empty(source=self.name, device_id=device_id or filepath.stem)

        df = pd.read_csv(filepath, skiprows=skip_rows, dtype=object, encoding="utf-8-sig")
        df.columns = df.columns.str.strip()
        df = df.astype(object).where(pd.notna(df), None)

        return RawSeries(
            columns=df.columns.tolist(),
            values=df.values.tolist(),
            source=self.name,
            device_id=device_id or filepath.stem,
        )


def parse_history_response(payload: Any, device_id: Optional[str] = None) -> RawSeries:
    """Parse an upstream history response into a RawSeries."""
    return InfluxSeriesAdapter().parse(payload, device_id)


def load_csv_series(filepath: Path, device_id: Optional[str] = None) -> RawSeries:
    """Load a CSV telemetry export into a RawSeries."""
    adapter = CsvSeriesAdapter()
    if not adapter.can_parse(Path(filepath)):
        raise ValueError(f"No adapter available for file: {filepath}")
    return adapter.parse(Path(filepath), device_id)
