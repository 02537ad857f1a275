"""Load district polygons and join them to computed statistics."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Iterable, Mapping

from pricemap.common.constants import PROPERTY_CATEGORIES
from pricemap.common.errors import InputFileError
from pricemap.common.fs import read_json
from pricemap.common.geometry import collection_epsg, geometry_to_wgs84
from pricemap.common.logging import log_event
from pricemap.common.models import GeographySeries
from pricemap.common.postcode import normalise_polygon_code

logger = logging.getLogger(__name__)


@dataclass
class JoinResult:
    features: list[dict[str, Any]] = field(default_factory=list)
    matched: int = 0
    unmatched: int = 0
    unmatched_codes: list[str] = field(default_factory=list)


def _feature_code(feature: dict, code_properties: Iterable[str]) -> str:
    properties = feature.get("properties") or {}
    for name in code_properties:
        value = properties.get(name)
        if value not in (None, ""):
            return normalise_polygon_code(value)
    return ""


def polygon_paths(directory: Path, pattern: str) -> list[Path]:
    if not directory.is_dir():
        raise InputFileError(f"Missing polygon directory: {directory}")
    return sorted(directory.glob(pattern))


def load_polygons(paths: Iterable[Path], code_properties: Iterable[str]) -> dict[str, dict]:
    """Map normalised code -> feature with WGS84 geometry. Later files win on duplicates."""
    code_properties = list(code_properties)
    polygons: dict[str, dict] = {}
    for path in paths:
        collection = read_json(path)
        if not isinstance(collection, dict) or collection.get("type") != "FeatureCollection":
            log_event(logger, f"skipping non-collection {path.name}", event="POLYGON_SKIP", status="warning", source=path.name)
            continue
        source_epsg = collection_epsg(collection)
        for feature in collection.get("features") or []:
            code = _feature_code(feature, code_properties)
            if not code:
                continue
            polygons[code] = {
                "type": "Feature",
                "geometry": geometry_to_wgs84(feature.get("geometry"), source_epsg),
                "properties": dict(feature.get("properties") or {}),
            }
    log_event(logger, f"loaded {len(polygons)} district polygons", event="POLYGONS_LOADED", status="ok", rows_out=len(polygons))
    return polygons


def summary_properties(series: GeographySeries) -> dict[str, Any]:
    latest = series.latest
    by_category = {}
    for code in PROPERTY_CATEGORIES:
        stats = latest.by_category.get(code)
        by_category[code] = stats.to_dict() if stats is not None else {"avgPrice": 0, "count": 0}
    return {
        "code": series.code,
        "name": series.code,
        "avgPrice": latest.mean_price,
        "medianPrice": latest.median_price,
        "transactionCount": latest.count,
        "yoyChange": latest.yoy_change_percent,
        "latestYear": latest.year,
        "byCategory": by_category,
    }


def join_summary(series_by_code: Mapping[str, GeographySeries], polygons: Mapping[str, dict]) -> JoinResult:
    result = JoinResult()
    for code in sorted(series_by_code):
        polygon = polygons.get(normalise_polygon_code(code))
        if polygon is None:
            result.unmatched += 1
            result.unmatched_codes.append(code)
            continue
        result.matched += 1
        result.features.append(
            {
                "type": "Feature",
                "geometry": polygon["geometry"],
                "properties": summary_properties(series_by_code[code]),
            }
        )
    return result
