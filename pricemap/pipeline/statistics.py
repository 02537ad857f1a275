"""Reduce price buckets into per-geography yearly statistics."""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal
from itertools import groupby
from typing import Sequence

from pricemap.common.constants import PROPERTY_CATEGORIES
from pricemap.common.models import CategoryStats, GeographySeries, YearStats
from pricemap.pipeline.aggregate import DistrictYearAggregator, YearBucket

_ONE_DECIMAL = Decimal("0.1")


def rounded_mean(prices: Sequence[int]) -> int:
    # Half-up to whole currency units; prices are positive so integer maths is exact.
    total = sum(prices)
    count = len(prices)
    return (2 * total + count) // (2 * count)


def median(sorted_prices: Sequence[int]) -> int:
    count = len(sorted_prices)
    middle = count // 2
    if count % 2:
        return sorted_prices[middle]
    return (sorted_prices[middle - 1] + sorted_prices[middle] + 1) // 2


def yoy_change(current_mean: int, previous_mean: int | None) -> float | None:
    if not previous_mean:
        return None
    change = Decimal(current_mean - previous_mean) / Decimal(previous_mean) * 100
    return float(change.quantize(_ONE_DECIMAL, rounding=ROUND_HALF_UP))


def _category_order(code: str) -> tuple[int, str]:
    if code in PROPERTY_CATEGORIES:
        return PROPERTY_CATEGORIES.index(code), code
    return len(PROPERTY_CATEGORIES), code


def year_stats(year: int, bucket: YearBucket, previous_mean: int | None) -> YearStats:
    sorted_prices = sorted(bucket.all_prices)
    mean_price = rounded_mean(sorted_prices)
    by_category = {
        code: CategoryStats(mean_price=rounded_mean(prices), count=len(prices))
        for code, prices in sorted(bucket.prices_by_category.items(), key=lambda item: _category_order(item[0]))
        if prices
    }
    return YearStats(
        year=year,
        mean_price=mean_price,
        median_price=median(sorted_prices),
        count=len(sorted_prices),
        yoy_change_percent=yoy_change(mean_price, previous_mean),
        by_category=by_category,
    )


def compute_series(aggregator: DistrictYearAggregator) -> dict[str, GeographySeries]:
    """One ``GeographySeries`` per code, years ascending.

    YoY compares against the previous year present in the series, which is not
    necessarily the calendar year before.
    """
    results: dict[str, GeographySeries] = {}
    for code, entries in groupby(aggregator.drain_sorted(), key=lambda entry: entry[0][0]):
        years: list[YearStats] = []
        for (_code, year), bucket in entries:
            previous_mean = years[-1].mean_price if years else None
            years.append(year_stats(year, bucket, previous_mean))
        results[code] = GeographySeries(code=code, years=tuple(years))
    return results
