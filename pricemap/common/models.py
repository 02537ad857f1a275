"""Data models used across the pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import Any

from pricemap.common.constants import ENRICHMENT_FIELDS


@dataclass(frozen=True)
class Transaction:
    price: int
    date: date
    geography_code: str
    category: str
    postcode: str
    address: str

    @property
    def year(self) -> int:
        return self.date.year


@dataclass(frozen=True)
class CategoryStats:
    mean_price: int
    count: int

    def to_dict(self) -> dict[str, int]:
        return {"avgPrice": self.mean_price, "count": self.count}


@dataclass(frozen=True)
class YearStats:
    year: int
    mean_price: int
    median_price: int
    count: int
    yoy_change_percent: float | None
    by_category: dict[str, CategoryStats]

    def to_dict(self) -> dict[str, Any]:
        return {
            "year": self.year,
            "avgPrice": self.mean_price,
            "medianPrice": self.median_price,
            "transactionCount": self.count,
            "yoyChange": self.yoy_change_percent,
            "byCategory": {code: stats.to_dict() for code, stats in self.by_category.items()},
        }


@dataclass(frozen=True)
class GeographySeries:
    code: str
    years: tuple[YearStats, ...]

    @property
    def latest(self) -> YearStats:
        return self.years[-1]

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "name": self.code,
            "years": [year.to_dict() for year in self.years],
        }


@dataclass(frozen=True)
class EnrichmentRecord:
    address: str
    postcode: str
    geography_code: str
    floor_area: float
    room_count: int
    energy_rating: str
    property_type: str
    certificate_date: str

    def to_dict(self) -> dict[str, Any]:
        return {
            "address": self.address,
            "postcode": self.postcode,
            "geographyCode": self.geography_code,
            "floorArea": self.floor_area,
            "roomCount": self.room_count,
            "energyRating": self.energy_rating,
            "propertyType": self.property_type,
            "date": self.certificate_date,
        }

    @classmethod
    def from_dict(cls, payload: dict[str, Any]) -> "EnrichmentRecord":
        return cls(
            address=str(payload.get("address") or ""),
            postcode=str(payload.get("postcode") or ""),
            geography_code=str(payload.get("geographyCode") or ""),
            floor_area=float(payload.get("floorArea") or 0),
            room_count=int(payload.get("roomCount") or 0),
            energy_rating=str(payload.get("energyRating") or ""),
            property_type=str(payload.get("propertyType") or ""),
            certificate_date=str(payload.get("date") or ""),
        )


@dataclass
class SaleRecord:
    price: int
    date: str
    geography_code: str
    postcode: str
    category: str
    address: str
    floor_area: float | None = None
    room_count: int | None = None
    energy_rating: str | None = None
    extra: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_transaction(cls, transaction: Transaction) -> "SaleRecord":
        return cls(
            price=transaction.price,
            date=transaction.date.isoformat(),
            geography_code=transaction.geography_code,
            postcode=transaction.postcode,
            category=transaction.category,
            address=transaction.address,
        )

    @classmethod
    def from_dict(cls, payload: dict[str, Any], *, geography_code: str) -> "SaleRecord":
        known = {"price", "date", "postcode", "type", "address", *ENRICHMENT_FIELDS}
        return cls(
            price=int(payload.get("price") or 0),
            date=str(payload.get("date") or ""),
            geography_code=geography_code,
            postcode=str(payload.get("postcode") or ""),
            category=str(payload.get("type") or ""),
            address=str(payload.get("address") or ""),
            floor_area=payload.get("floorArea"),
            room_count=payload.get("roomCount"),
            energy_rating=payload.get("energyRating"),
            extra={key: value for key, value in payload.items() if key not in known},
        )

    def to_dict(self) -> dict[str, Any]:
        out: dict[str, Any] = {
            "price": self.price,
            "date": self.date,
            "postcode": self.postcode,
            "type": self.category,
            "address": self.address,
        }
        out.update(self.extra)
        # Enrichment fields are absent, never null, when unmatched.
        if self.floor_area is not None:
            out["floorArea"] = self.floor_area
        if self.room_count is not None:
            out["roomCount"] = self.room_count
        if self.energy_rating is not None:
            out["energyRating"] = self.energy_rating
        return out
