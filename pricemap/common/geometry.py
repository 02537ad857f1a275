"""GeoJSON geometry helpers."""

from __future__ import annotations

import re
from functools import lru_cache
from typing import Any

from pyproj import CRS, Transformer

WGS84_EPSG = 4326

_EPSG_RE = re.compile(r"EPSG:+(\d+)$", re.IGNORECASE)


def collection_epsg(collection: dict[str, Any]) -> int | None:
    """EPSG code declared by a legacy GeoJSON ``crs`` member, if any.

    ``urn:ogc:def:crs:OGC:1.3:CRS84`` and a missing member both mean WGS84.
    """
    crs = collection.get("crs")
    if not isinstance(crs, dict):
        return None
    name = str((crs.get("properties") or {}).get("name") or "").strip()
    if not name or name.upper().endswith("CRS84"):
        return None
    match = _EPSG_RE.search(name)
    if not match:
        return None
    return int(match.group(1))


@lru_cache(maxsize=8)
def _transformer(source_epsg: int) -> Transformer:
    return Transformer.from_crs(CRS.from_epsg(source_epsg), CRS.from_epsg(WGS84_EPSG), always_xy=True)


def _transform_coords(coords: Any, transformer: Transformer) -> Any:
    if coords and isinstance(coords[0], (int, float)):
        lon, lat = transformer.transform(coords[0], coords[1])
        return [lon, lat, *coords[2:]]
    return [_transform_coords(part, transformer) for part in coords]


def geometry_to_wgs84(geometry: dict[str, Any] | None, source_epsg: int | None) -> dict[str, Any] | None:
    if not geometry or source_epsg is None or source_epsg == WGS84_EPSG:
        return geometry
    transformer = _transformer(source_epsg)
    if geometry.get("type") == "GeometryCollection":
        return {
            "type": "GeometryCollection",
            "geometries": [geometry_to_wgs84(part, source_epsg) for part in geometry.get("geometries", [])],
        }
    return {"type": geometry["type"], "coordinates": _transform_coords(geometry["coordinates"], transformer)}
