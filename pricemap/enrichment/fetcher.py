"""Cache-first certificate lookups with degrade-to-empty failure policy."""

from __future__ import annotations

import logging
from typing import Protocol

from pricemap.common.http import HttpRequestError, HttpStatusError, RateLimitExhaustedError
from pricemap.common.logging import log_event
from pricemap.common.models import EnrichmentRecord
from pricemap.common.postcode import normalise_postcode_key
from pricemap.enrichment.cache import EnrichmentCache

logger = logging.getLogger(__name__)


class CertificateSource(Protocol):
    def fetch_certificates(self, postcode: str) -> list[EnrichmentRecord]: ...


class CertificateFetcher:
    """Resolve a postcode to its certificate list.

    Cache hits never touch the network or the rate limiter. A non-success
    status is cached as an empty list so later runs do not retry it; transport
    errors are empty for this run only. Rate-limit exhaustion propagates.
    """

    def __init__(self, source: CertificateSource, cache: EnrichmentCache) -> None:
        self.source = source
        self.cache = cache
        self.cache_hits = 0
        self.fetched = 0
        self.failed_status = 0
        self.failed_transport = 0

    def fetch(self, key: str) -> list[EnrichmentRecord]:
        key = normalise_postcode_key(key)
        cached = self.cache.get(key)
        if cached is not None:
            self.cache_hits += 1
            log_event(logger, "cache hit", level=logging.DEBUG, stage="enrich", key=key, event="CACHE_HIT", status="ok", rows_out=len(cached))
            return cached

        try:
            records = self.source.fetch_certificates(key)
        except RateLimitExhaustedError:
            raise
        except HttpStatusError as exc:
            self.failed_status += 1
            log_event(logger, f"lookup failed with status {exc.status_code}; caching empty result", level=logging.WARNING, stage="enrich", key=key, event="FETCH_EMPTY", status="degraded", error_code=exc.error_code)
            self.cache.put(key, [])
            return []
        except HttpRequestError as exc:
            self.failed_transport += 1
            log_event(logger, f"lookup failed: {exc}", level=logging.WARNING, stage="enrich", key=key, event="FETCH_ERROR", status="degraded", error_code=exc.error_code)
            return []

        self.fetched += 1
        log_event(logger, "cache miss fetched", level=logging.DEBUG, stage="enrich", key=key, event="CACHE_MISS", status="ok", rows_out=len(records))
        self.cache.put(key, records)
        return records

    def stats(self) -> dict:
        return {
            "cache_hits": self.cache_hits,
            "fetched": self.fetched,
            "failed_status": self.failed_status,
            "failed_transport": self.failed_transport,
        }
