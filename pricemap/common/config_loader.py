"""Configuration loading and validation."""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any

from pricemap.common.errors import ConfigError
from pricemap.common.fs import read_yaml
from pricemap.common.http import RetryConfig, TimeoutConfig
from pricemap.common.schema import validate_pipeline_config

CONFIG_FILENAME = "pipeline.yml"


@dataclass(frozen=True)
class PipelineConfig:
    ledger: dict
    polygons: dict
    output: dict
    sales: dict
    enrichment: dict

    @property
    def retry(self) -> RetryConfig:
        retry = self.enrichment["retry"]
        return RetryConfig(
            max_attempts=int(retry["max_attempts"]),
            initial_wait=float(retry["initial_wait"]),
            max_wait=float(retry["max_wait"]),
            jitter=float(retry.get("jitter", 1.0)),
        )

    @property
    def timeout(self) -> TimeoutConfig:
        timeout = self.enrichment["timeout"]
        return TimeoutConfig(connect=float(timeout["connect"]), read=float(timeout["read"]))


def _deep_merge(base: Any, overlay: Any) -> Any:
    if isinstance(base, dict) and isinstance(overlay, dict):
        merged = dict(base)
        for key, value in overlay.items():
            if key in merged:
                merged[key] = _deep_merge(merged[key], value)
            else:
                merged[key] = value
        return merged
    return overlay


def _load_yaml_with_overlay(path: Path, overlay_path: Path | None) -> dict:
    if not path.exists():
        raise ConfigError(f"Missing config file: {path}")
    base = read_yaml(path)
    if not isinstance(base, dict):
        raise ConfigError(f"Config file must contain a mapping: {path}")
    if overlay_path is None or not overlay_path.exists():
        return base
    overlay = read_yaml(overlay_path)
    if overlay is None:
        return base
    if not isinstance(overlay, dict):
        raise ConfigError(f"Overlay config must contain a mapping: {overlay_path}")
    return _deep_merge(base, overlay)


def load_config(
    config_dir: Path,
    *,
    allow_unknown: bool = False,
    overlay_config_dir: Path | None = None,
) -> PipelineConfig:
    overlay_path = overlay_config_dir / CONFIG_FILENAME if overlay_config_dir is not None else None
    cfg = _load_yaml_with_overlay(config_dir / CONFIG_FILENAME, overlay_path)
    cfg = validate_pipeline_config(cfg, allow_unknown=allow_unknown)
    return PipelineConfig(
        ledger=cfg["ledger"],
        polygons=cfg["polygons"],
        output=cfg["output"],
        sales=cfg["sales"],
        enrichment=cfg["enrichment"],
    )


def resolve_credentials(enrichment_cfg: dict, environ: dict[str, str] | None = None) -> tuple[str, str]:
    env = os.environ if environ is None else environ
    names = enrichment_cfg["credentials_env"]
    email = env.get(names["email"], "").strip()
    api_key = env.get(names["api_key"], "").strip()
    if not email or not api_key:
        raise ConfigError(
            f"Missing enrichment credentials; set {names['email']} and {names['api_key']}"
        )
    return email, api_key
