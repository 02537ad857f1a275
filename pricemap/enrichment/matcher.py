"""Match a sale to the certificate most likely describing the same property."""

from __future__ import annotations

import re
from typing import Sequence

from pricemap.common.models import EnrichmentRecord, SaleRecord
from pricemap.common.postcode import normalise_postcode_key

_PUNCTUATION_RE = re.compile(r"[,.\-/]")
_WHITESPACE_RE = re.compile(r"\s+")
_HOUSE_NUMBER_RE = re.compile(r"\b(\d+[A-Z]?)\b")

MIN_TOKEN_LENGTH = 3


def normalise_address(address: str) -> str:
    cleaned = _PUNCTUATION_RE.sub(" ", address.upper())
    return _WHITESPACE_RE.sub(" ", cleaned).strip()


def extract_house_number(normalised: str) -> str | None:
    match = _HOUSE_NUMBER_RE.search(normalised)
    return match.group(1) if match else None


def _tokens(normalised: str) -> list[str]:
    return [token for token in normalised.split(" ") if len(token) >= MIN_TOKEN_LENGTH]


def find_best_match(sale: SaleRecord, candidates: Sequence[EnrichmentRecord]) -> EnrichmentRecord | None:
    """House number plus at least one shared street token wins; else the newest certificate.

    Only candidates at the sale's exact postcode are considered. The first
    qualifying candidate is taken as-is, there is no scoring between them.
    """
    postcode = normalise_postcode_key(sale.postcode)
    same_postcode = [c for c in candidates if normalise_postcode_key(c.postcode) == postcode]
    if not same_postcode:
        return None

    sale_norm = normalise_address(sale.address)
    sale_number = extract_house_number(sale_norm)
    if sale_number is not None:
        sale_tokens = set(_tokens(sale_norm))
        for candidate in same_postcode:
            candidate_norm = normalise_address(candidate.address)
            if extract_house_number(candidate_norm) != sale_number:
                continue
            overlap = sum(1 for token in _tokens(candidate_norm) if token in sale_tokens)
            if overlap >= 1:
                return candidate

    # max() keeps the first of equal dates, matching a stable newest-first sort.
    return max(same_postcode, key=lambda candidate: candidate.certificate_date)


def apply_match(sale: SaleRecord, match: EnrichmentRecord | None) -> bool:
    """Copy building attributes onto the sale; a match without floor area counts as none."""
    if match is None or not match.floor_area or match.floor_area <= 0:
        sale.floor_area = None
        sale.room_count = None
        sale.energy_rating = None
        return False
    sale.floor_area = match.floor_area
    sale.room_count = match.room_count
    sale.energy_rating = match.energy_rating
    return True
