"""Full-table aggregation stage: ledger -> yearly district statistics -> map summary."""

from __future__ import annotations

import logging
from typing import Iterable, Iterator, Sequence

from pricemap.common.config_loader import PipelineConfig
from pricemap.common.constants import PROGRESS_EVERY_ROWS
from pricemap.common.layout import DataLayout
from pricemap.common.logging import log_event
from pricemap.pipeline.aggregate import DistrictYearAggregator
from pricemap.pipeline.boundaries import join_summary, load_polygons, polygon_paths
from pricemap.pipeline.export import write_summary, write_trend_files
from pricemap.pipeline.normalise import TransactionFilter
from pricemap.pipeline.reader import RecordStream
from pricemap.pipeline.statistics import compute_series

logger = logging.getLogger(__name__)


def with_progress(rows: Iterable[Sequence[str]], stage: str) -> Iterator[Sequence[str]]:
    count = 0
    for row in rows:
        count += 1
        if count % PROGRESS_EVERY_ROWS == 0:
            log_event(logger, f"processed {count // PROGRESS_EVERY_ROWS}M rows", stage=stage, event="PROGRESS", status="ok", rows_in=count)
        yield row


def run_aggregate(config: PipelineConfig, layout: DataLayout) -> dict:
    row_filter = TransactionFilter(min_year=int(config.ledger["min_year"]))
    stream = RecordStream(layout.ledger_path)
    rows = with_progress(stream, stage="aggregate")
    aggregator = DistrictYearAggregator().consume(row_filter.iter_transactions(rows))
    log_event(
        logger,
        f"ledger complete: {row_filter.rows_in} rows, {row_filter.skipped} skipped, {aggregator.geography_count} districts",
        stage="aggregate",
        event="LEDGER_DONE",
        status="ok",
        rows_in=row_filter.rows_in,
        rows_out=row_filter.accepted,
    )

    series_by_code = compute_series(aggregator)
    # Trend files do not depend on polygon coverage, so they are written first.
    trend_count = write_trend_files(series_by_code, layout.trends_dir)

    polygons = load_polygons(
        polygon_paths(layout.polygons_dir, config.polygons["pattern"]),
        config.polygons["code_properties"],
    )
    joined = join_summary(series_by_code, polygons)
    write_summary(joined.features, layout.summary_path)
    if joined.unmatched:
        log_event(
            logger,
            f"no polygon for {joined.unmatched} districts: {', '.join(joined.unmatched_codes[:20])}",
            level=logging.WARNING,
            stage="aggregate",
            event="GEOMETRY_UNMATCHED",
            status="warning",
            rows_out=joined.unmatched,
        )
    log_event(
        logger,
        f"summary written: {joined.matched} matched, {joined.unmatched} without polygon",
        stage="aggregate",
        event="SUMMARY_WRITTEN",
        status="ok",
        rows_out=len(joined.features),
    )

    return {
        **row_filter.stats(),
        **stream.stats(),
        "geographies": len(series_by_code),
        "trend_files": trend_count,
        "geometry_matched": joined.matched,
        "geometry_unmatched": joined.unmatched,
    }
