"""Decode raw ledger rows into typed transactions, dropping invalid ones."""

from __future__ import annotations

from collections import Counter
from typing import Iterable, Iterator, Sequence

from pricemap.common.constants import (
    COL_DATE,
    COL_PAON,
    COL_POSTCODE,
    COL_PRICE,
    COL_PROPERTY_TYPE,
    COL_STREET,
    COL_TOWN,
    MAX_PRICE,
    MIN_PRICE,
    OTHER_CATEGORY,
    PROPERTY_CATEGORIES,
)
from pricemap.common.models import Transaction
from pricemap.common.postcode import extract_geography_code
from pricemap.common.time_utils import parse_ledger_date

REJECT_MISSING_POSTCODE = "missing_postcode"
REJECT_BAD_PRICE = "bad_price"
REJECT_LOW_PRICE = "low_price"
REJECT_BAD_DATE = "bad_date"
REJECT_BEFORE_MIN_YEAR = "before_min_year"


def _field(row: Sequence[str], index: int) -> str:
    if index >= len(row):
        return ""
    return (row[index] or "").strip()


def _parse_price(value: str) -> int | None:
    if not value:
        return None
    try:
        return int(value)
    except ValueError:
        return None


def _category(value: str) -> str:
    return value if value in PROPERTY_CATEGORIES else OTHER_CATEGORY


def _address(row: Sequence[str], postcode: str) -> str:
    parts = [_field(row, COL_PAON), _field(row, COL_STREET), _field(row, COL_TOWN)]
    return ", ".join(part for part in parts if part) or postcode


class TransactionFilter:
    """Turns ``RawRow`` sequences into ``Transaction`` objects.

    Rejected rows are only counted; nothing about them is retained.
    """

    def __init__(self, min_year: int) -> None:
        self.min_year = min_year
        self.rows_in = 0
        self.accepted = 0
        self.skipped_by_reason: Counter[str] = Counter()

    @property
    def skipped(self) -> int:
        return sum(self.skipped_by_reason.values())

    def _reject(self, reason: str) -> None:
        self.skipped_by_reason[reason] += 1

    def normalise(self, row: Sequence[str]) -> Transaction | None:
        self.rows_in += 1

        postcode = _field(row, COL_POSTCODE)
        if not postcode:
            self._reject(REJECT_MISSING_POSTCODE)
            return None

        price = _parse_price(_field(row, COL_PRICE))
        if price is None or price > MAX_PRICE:
            self._reject(REJECT_BAD_PRICE)
            return None
        if price < MIN_PRICE:
            self._reject(REJECT_LOW_PRICE)
            return None

        transfer_date = parse_ledger_date(_field(row, COL_DATE))
        if transfer_date is None:
            self._reject(REJECT_BAD_DATE)
            return None
        if transfer_date.year < self.min_year:
            self._reject(REJECT_BEFORE_MIN_YEAR)
            return None

        self.accepted += 1
        return Transaction(
            price=price,
            date=transfer_date,
            geography_code=extract_geography_code(postcode),
            category=_category(_field(row, COL_PROPERTY_TYPE)),
            postcode=postcode.upper(),
            address=_address(row, postcode),
        )

    def iter_transactions(self, rows: Iterable[Sequence[str]]) -> Iterator[Transaction]:
        for row in rows:
            transaction = self.normalise(row)
            if transaction is not None:
                yield transaction

    def stats(self) -> dict:
        return {
            "rows_in": self.rows_in,
            "accepted": self.accepted,
            "skipped": self.skipped,
            "skipped_by_reason": dict(sorted(self.skipped_by_reason.items())),
        }
