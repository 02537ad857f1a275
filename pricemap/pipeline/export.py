"""Serialise aggregate and sales artifacts."""

from __future__ import annotations

from pathlib import Path
from typing import Any, Iterable, Mapping

from pricemap.common.fs import ensure_dir, safe_filename, write_compact_json
from pricemap.common.models import GeographySeries, SaleRecord


def artifact_path(directory: Path, code: str) -> Path:
    return directory / f"{safe_filename(code)}.json"


def write_trend_files(series_by_code: Mapping[str, GeographySeries], trends_dir: Path) -> int:
    ensure_dir(trends_dir)
    for code in sorted(series_by_code):
        write_compact_json(artifact_path(trends_dir, code), series_by_code[code].to_dict())
    return len(series_by_code)


def write_summary(features: list[dict[str, Any]], summary_path: Path) -> Path:
    write_compact_json(summary_path, {"type": "FeatureCollection", "features": features})
    return summary_path


def write_sales_file(path: Path, sales: Iterable[SaleRecord]) -> int:
    rows = [sale.to_dict() for sale in sales]
    write_compact_json(path, rows)
    return len(rows)
