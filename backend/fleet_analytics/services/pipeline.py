"""
Telemetry sample aggregation pipeline.

raw rows -> normalizer -> (distance, drive mode) -> trip segmenter
         -> daily/aggregate statistics -> AnalyticsResult

Pure and synchronous: the caller fetches rows first, and nothing is kept
between calls.
"""

import logging
from typing import Any, Optional, Sequence

from fleet_analytics.models.raw import RawSeries
from fleet_analytics.models.telemetry import AnalyticsResult, PipelineOptions
from fleet_analytics.services.drive_mode import get_classifier
from fleet_analytics.services.normalizer import normalize_rows
from fleet_analytics.services.statistics import StatisticsBuilder, resolve_report_timezone
from fleet_analytics.services.trips import TripSegmenter
from fleet_analytics.utils.coordinates import segment_distances_km


logger = logging.getLogger(__name__)


def aggregate_series(
    series: RawSeries,
    options: Optional[PipelineOptions] = None,
) -> AnalyticsResult:
    """
    Run the full aggregation over one telemetry series.

    Args:
        series: Rows and column header as delivered by the source
        options: Thresholds, drive-mode strategy, reporting timezone, precision

    Returns:
        AnalyticsResult with summary, daily buckets, trips and samples.
        An empty series gives a zero-valued summary.
    """
    options = options or PipelineOptions()
    tz = resolve_report_timezone(options.report_timezone)
    classifier = get_classifier(options.drive_mode_strategy)

    samples, skipped = normalize_rows(series, classifier)

    segmenter = TripSegmenter(options.moving_threshold_kmh)
    stats = StatisticsBuilder(tz=tz, precision=options.precision)

    distances = segment_distances_km(samples)
    for sample, segment_km in zip(samples, distances.tolist()):
        moving = segmenter.feed(sample, segment_km)
        stats.add(sample, segment_km, moving)

    trips = segmenter.finish()
    summary, daily = stats.build(trips, skipped_rows=skipped)

    logger.debug(
        f"Aggregated {summary.total_samples} samples ({skipped} skipped) into "
        f"{len(trips)} trips over {len(daily)} days for {series.device_id or series.source}"
    )

    return AnalyticsResult(
        summary=summary,
        daily=daily,
        trips=trips,
        samples=samples,
        options=options,
        device_id=series.device_id,
    )


def aggregate_rows(
    columns: Sequence[str],
    values: Sequence[Sequence[Any]],
    options: Optional[PipelineOptions] = None,
    device_id: Optional[str] = None,
) -> AnalyticsResult:
    """Convenience wrapper taking bare columns and values."""
    series = RawSeries(
        columns=list(columns),
        values=[list(row) if isinstance(row, (list, tuple)) else row for row in values],
        source="rows",
        device_id=device_id,
    )
    return aggregate_series(series, options)
