"""Extract the most recent sales per district for the map's sale markers."""

from __future__ import annotations

import heapq
import logging
from collections import defaultdict

from pricemap.common.config_loader import PipelineConfig
from pricemap.common.fs import ensure_dir
from pricemap.common.layout import DataLayout
from pricemap.common.logging import log_event
from pricemap.common.models import SaleRecord
from pricemap.pipeline.export import artifact_path, write_sales_file
from pricemap.pipeline.normalise import TransactionFilter
from pricemap.pipeline.reader import RecordStream
from pricemap.pipeline.runner import with_progress

logger = logging.getLogger(__name__)


def _recency_key(sale: SaleRecord) -> tuple:
    # Newest first; the remaining fields only break ties so reruns order identically.
    return (sale.date, sale.price, sale.postcode, sale.address, sale.category)


def select_recent(sales: list[SaleRecord], limit: int) -> list[SaleRecord]:
    return heapq.nlargest(limit, sales, key=_recency_key)


def run_extract_sales(config: PipelineConfig, layout: DataLayout) -> dict:
    min_year = int(config.sales["min_year"])
    limit = int(config.sales["max_per_district"])

    row_filter = TransactionFilter(min_year=min_year)
    stream = RecordStream(layout.ledger_path)
    rows = with_progress(stream, stage="extract-sales")
    by_district: dict[str, list[SaleRecord]] = defaultdict(list)
    for transaction in row_filter.iter_transactions(rows):
        by_district[transaction.geography_code].append(SaleRecord.from_transaction(transaction))

    ensure_dir(layout.sales_dir)
    district_count = len(by_district)
    written = 0
    for code in sorted(by_district):
        recent = select_recent(by_district.pop(code), limit)
        written += write_sales_file(artifact_path(layout.sales_dir, code), recent)

    log_event(
        logger,
        f"recent sales written: {written} sales since {min_year}",
        stage="extract-sales",
        event="SALES_WRITTEN",
        status="ok",
        rows_in=row_filter.rows_in,
        rows_out=written,
    )
    return {**row_filter.stats(), **stream.stats(), "geographies": district_count, "sales_written": written}
