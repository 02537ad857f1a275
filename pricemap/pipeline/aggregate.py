"""Group transactions into (geography code, year) price buckets."""

from __future__ import annotations

from array import array
from dataclasses import dataclass, field
from typing import Iterable, Iterator

from pricemap.common.models import Transaction

BucketKey = tuple[str, int]


def _prices() -> array:
    return array("q")


@dataclass
class YearBucket:
    # Every sample is kept: the median needs the full distribution.
    all_prices: array = field(default_factory=_prices)
    prices_by_category: dict[str, array] = field(default_factory=dict)

    def add(self, price: int, category: str) -> None:
        self.all_prices.append(price)
        samples = self.prices_by_category.get(category)
        if samples is None:
            samples = self.prices_by_category[category] = _prices()
        samples.append(price)


class DistrictYearAggregator:
    def __init__(self) -> None:
        self.buckets: dict[BucketKey, YearBucket] = {}

    def add(self, transaction: Transaction) -> None:
        key = (transaction.geography_code, transaction.year)
        bucket = self.buckets.get(key)
        if bucket is None:
            bucket = self.buckets[key] = YearBucket()
        bucket.add(transaction.price, transaction.category)

    def consume(self, transactions: Iterable[Transaction]) -> "DistrictYearAggregator":
        for transaction in transactions:
            self.add(transaction)
        return self

    @property
    def geography_count(self) -> int:
        return len({code for code, _year in self.buckets})

    def drain_sorted(self) -> Iterator[tuple[BucketKey, YearBucket]]:
        """Hand out buckets by code then ascending year, releasing each one.

        Ordering depends only on the keys, never on transaction arrival order.
        """
        for key in sorted(self.buckets):
            yield key, self.buckets.pop(key)


def aggregate_transactions(transactions: Iterable[Transaction]) -> DistrictYearAggregator:
    return DistrictYearAggregator().consume(transactions)
