"""Enrichment stage: add building attributes to the recent-sales artifacts."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Mapping

from pricemap.common.config_loader import PipelineConfig, resolve_credentials
from pricemap.common.errors import InputFileError
from pricemap.common.fs import read_json
from pricemap.common.http import HttpClient
from pricemap.common.layout import DataLayout
from pricemap.common.logging import log_event
from pricemap.common.models import EnrichmentRecord, SaleRecord
from pricemap.common.postcode import extract_geography_code, normalise_postcode_key
from pricemap.enrichment.cache import EnrichmentCache
from pricemap.enrichment.epc_client import SOURCE_TYPE, EpcClient
from pricemap.enrichment.fetcher import CertificateFetcher, CertificateSource
from pricemap.enrichment.matcher import apply_match, find_best_match
from pricemap.pipeline.export import write_sales_file

logger = logging.getLogger(__name__)

FETCH_PROGRESS_EVERY = 100


def _sales_paths(sales_dir: Path) -> list[Path]:
    if not sales_dir.is_dir():
        raise InputFileError(f"Missing sales directory: {sales_dir}")
    return sorted(sales_dir.glob("*.json"))


def load_sales(path: Path) -> list[SaleRecord]:
    payload = read_json(path)
    if not isinstance(payload, list):
        raise InputFileError(f"Sales artifact must be a list: {path}")
    sales = []
    for item in payload:
        postcode = str(item.get("postcode") or "")
        code = extract_geography_code(postcode) if postcode.strip() else path.stem
        sales.append(SaleRecord.from_dict(item, geography_code=code))
    return sales


def build_http_client(config: PipelineConfig, environ: dict[str, str] | None = None) -> HttpClient:
    return HttpClient(
        timeout=config.timeout,
        retry=config.retry,
        auth=resolve_credentials(config.enrichment, environ),
        min_interval_by_source={SOURCE_TYPE: float(config.enrichment["min_interval_seconds"])},
    )


def enrich_sales_file(path: Path, certificates: Mapping[str, list[EnrichmentRecord]]) -> tuple[int, int]:
    """Rewrite one sales artifact in place; returns (enriched, unmatched)."""
    sales = load_sales(path)
    enriched = 0
    for sale in sales:
        candidates = certificates.get(normalise_postcode_key(sale.postcode), [])
        if apply_match(sale, find_best_match(sale, candidates)):
            enriched += 1
    write_sales_file(path, sales)
    return enriched, len(sales) - enriched


def fetch_all(fetcher: CertificateFetcher, postcodes: set[str]) -> dict[str, list[EnrichmentRecord]]:
    certificates: dict[str, list[EnrichmentRecord]] = {}
    for postcode in sorted(postcodes):
        fetched_before = fetcher.fetched
        certificates[postcode] = fetcher.fetch(postcode)
        if fetcher.fetched != fetched_before and fetcher.fetched % FETCH_PROGRESS_EVERY == 0:
            log_event(logger, f"fetched {fetcher.fetched} postcodes", stage="enrich", event="PROGRESS", status="ok", rows_out=fetcher.fetched)
    return certificates


def run_enrich(
    config: PipelineConfig,
    layout: DataLayout,
    *,
    source: CertificateSource | None = None,
    environ: dict[str, str] | None = None,
) -> dict:
    paths = _sales_paths(layout.sales_dir)

    postcodes: set[str] = set()
    for path in paths:
        postcodes.update(normalise_postcode_key(sale.postcode) for sale in load_sales(path))
    postcodes.discard("")
    log_event(logger, f"{len(paths)} sales files, {len(postcodes)} postcodes to resolve", stage="enrich", event="ENRICH_START", status="ok", rows_in=len(postcodes))

    cache = EnrichmentCache(layout.cache_dir)
    http_client = build_http_client(config, environ) if source is None else None
    try:
        if http_client is not None:
            source = EpcClient(
                http_client,
                endpoint=config.enrichment["endpoint"],
                page_size=int(config.enrichment["page_size"]),
                timeout=config.timeout,
            )
        fetcher = CertificateFetcher(source, cache)
        certificates = fetch_all(fetcher, postcodes)
    finally:
        if http_client is not None:
            http_client.close()

    enriched = 0
    unmatched = 0
    for path in paths:
        file_enriched, file_unmatched = enrich_sales_file(path, certificates)
        enriched += file_enriched
        unmatched += file_unmatched

    log_event(
        logger,
        f"enriched {enriched} sales, {unmatched} unmatched",
        stage="enrich",
        event="ENRICH_DONE",
        status="ok",
        rows_in=enriched + unmatched,
        rows_out=enriched,
    )
    return {**fetcher.stats(), "sales_enriched": enriched, "sales_unmatched": unmatched}
