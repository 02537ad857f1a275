"""Energy Performance Certificate search API client."""

from __future__ import annotations

import math
from typing import Any

from pricemap.common.http import HttpClient, TimeoutConfig
from pricemap.common.models import EnrichmentRecord
from pricemap.common.postcode import extract_geography_code, normalise_postcode_key

SOURCE_TYPE = "epc"


def _safe_float(value: object) -> float:
    if value in (None, ""):
        return 0.0
    try:
        result = float(value)
    except (TypeError, ValueError):
        return 0.0
    # NaN and infinity are not valid JSON and never a real floor area.
    return result if math.isfinite(result) else 0.0


def _safe_int(value: object) -> int:
    if value in (None, ""):
        return 0
    try:
        return int(float(value))
    except (TypeError, ValueError, OverflowError):
        return 0


def parse_certificate(row: dict[str, Any]) -> EnrichmentRecord:
    address = ", ".join(str(row[key]) for key in ("address1", "address2", "address3") if row.get(key))
    postcode = normalise_postcode_key(row.get("postcode"))
    return EnrichmentRecord(
        address=address.upper(),
        postcode=postcode,
        geography_code=extract_geography_code(postcode) if postcode else "",
        floor_area=_safe_float(row.get("total-floor-area")),
        room_count=_safe_int(row.get("number-habitable-rooms")),
        energy_rating=str(row.get("current-energy-rating") or ""),
        property_type=str(row.get("property-type") or ""),
        certificate_date=str(row.get("lodgement-date") or ""),
    )


class EpcClient:
    def __init__(self, http_client: HttpClient, *, endpoint: str, page_size: int, timeout: TimeoutConfig | None = None) -> None:
        self.http_client = http_client
        self.endpoint = endpoint
        self.page_size = page_size
        self.timeout = timeout

    def fetch_certificates(self, postcode: str) -> list[EnrichmentRecord]:
        payload = self.http_client.get_json(
            self.endpoint,
            source_type=SOURCE_TYPE,
            params={"postcode": postcode.strip(), "size": self.page_size},
            timeout=self.timeout,
        )
        rows = (payload.get("rows") or []) if isinstance(payload, dict) else []
        return [parse_certificate(row) for row in rows if isinstance(row, dict)]
