import random
from datetime import date

from pricemap.common.models import Transaction
from pricemap.pipeline.aggregate import DistrictYearAggregator, aggregate_transactions
from pricemap.pipeline.statistics import compute_series, median, rounded_mean, yoy_change


def _tx(code: str, year: int, price: int, category: str = "D") -> Transaction:
    return Transaction(
        price=price,
        date=date(year, 6, 1),
        geography_code=code,
        category=category,
        postcode=f"{code} 1AA",
        address="1 TEST ROAD",
    )


def test_median_even_and_odd():
    assert median([100, 200, 300, 400]) == 250
    assert median([100, 200, 300]) == 200
    assert median([100]) == 100


def test_median_even_rounds_half_up():
    assert median([100, 101]) == 101


def test_rounded_mean_half_up():
    assert rounded_mean([100, 101]) == 101
    assert rounded_mean([100, 100, 101]) == 100
    assert rounded_mean([500000]) == 500000


def test_yoy_change_one_decimal():
    assert yoy_change(550000, 500000) == 10.0
    assert yoy_change(450000, 500000) == -10.0
    assert yoy_change(2001, 2000) == 0.1
    assert yoy_change(1999, 2000) == -0.1


def test_yoy_change_without_previous_is_none():
    assert yoy_change(100000, None) is None
    assert yoy_change(100000, 0) is None


def test_compute_series_orders_years_and_chains_yoy():
    aggregator = aggregate_transactions(
        [_tx("SW1", 2021, 550000), _tx("SW1", 2020, 500000), _tx("M1", 2020, 100000)]
    )

    series = compute_series(aggregator)

    assert list(series) == ["M1", "SW1"]
    sw1 = series["SW1"]
    assert [y.year for y in sw1.years] == [2020, 2021]
    assert sw1.years[0].yoy_change_percent is None
    assert sw1.years[1].yoy_change_percent == 10.0
    assert sw1.latest.year == 2021


def test_compute_series_yoy_uses_previous_present_year():
    aggregator = aggregate_transactions([_tx("E1", 2019, 100000), _tx("E1", 2021, 150000)])

    years = compute_series(aggregator)["E1"].years

    assert [y.year for y in years] == [2019, 2021]
    assert years[1].yoy_change_percent == 50.0


def test_category_counts_sum_to_total():
    transactions = [
        _tx("B33", 2022, 200000, "D"),
        _tx("B33", 2022, 150000, "S"),
        _tx("B33", 2022, 160000, "S"),
        _tx("B33", 2022, 90000, "F"),
        _tx("B33", 2022, 120000, "O"),
    ]

    stats = compute_series(aggregate_transactions(transactions))["B33"].latest

    assert stats.count == 5
    assert sum(c.count for c in stats.by_category.values()) == stats.count
    assert list(stats.by_category) == ["D", "S", "F", "O"]
    assert stats.by_category["S"].mean_price == 155000
    assert stats.median_price == 150000
    assert stats.mean_price == 144000


def test_year_stats_serialise_with_output_keys():
    stats = compute_series(aggregate_transactions([_tx("M1", 2020, 100000, "O")]))["M1"].latest

    assert stats.to_dict() == {
        "year": 2020,
        "avgPrice": 100000,
        "medianPrice": 100000,
        "transactionCount": 1,
        "yoyChange": None,
        "byCategory": {"O": {"avgPrice": 100000, "count": 1}},
    }


def test_statistics_independent_of_arrival_order():
    transactions = [
        _tx(code, year, 100000 + 1000 * i, category)
        for i, (code, year, category) in enumerate(
            [(c, y, k) for c in ("SW1", "M1", "B33") for y in (2019, 2020, 2021) for k in ("D", "T")]
        )
    ]
    shuffled = list(transactions)
    random.Random(7).shuffle(shuffled)

    first = {code: s.to_dict() for code, s in compute_series(aggregate_transactions(transactions)).items()}
    second = {code: s.to_dict() for code, s in compute_series(aggregate_transactions(shuffled)).items()}

    assert first == second


def test_drain_sorted_releases_buckets():
    aggregator = DistrictYearAggregator().consume([_tx("SW1", 2021, 1000), _tx("M1", 2020, 2000)])

    assert aggregator.geography_count == 2
    keys = [key for key, _bucket in aggregator.drain_sorted()]

    assert keys == [("M1", 2020), ("SW1", 2021)]
    assert aggregator.buckets == {}
