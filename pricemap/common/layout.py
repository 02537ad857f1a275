"""Resolve where each artifact lives under the data directory."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path

from pricemap.common.config_loader import PipelineConfig


@dataclass(frozen=True)
class DataLayout:
    ledger_path: Path
    polygons_dir: Path
    out_dir: Path
    summary_path: Path
    trends_dir: Path
    sales_dir: Path
    reports_dir: Path
    cache_dir: Path


def resolve_layout(config: PipelineConfig, data_dir: Path, ledger_path: Path | None = None) -> DataLayout:
    raw_dir = data_dir / "raw"
    out_dir = data_dir / "out"
    return DataLayout(
        ledger_path=ledger_path or raw_dir / config.ledger["filename"],
        polygons_dir=raw_dir / config.polygons["dirname"],
        out_dir=out_dir,
        summary_path=out_dir / config.output["summary_filename"],
        trends_dir=out_dir / config.output["trends_dirname"],
        sales_dir=out_dir / config.output["sales_dirname"],
        reports_dir=out_dir / config.output["reports_dirname"],
        cache_dir=data_dir / "cache" / config.enrichment["cache_dirname"],
    )
