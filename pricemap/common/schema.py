"""Minimal strict schema for the pipeline YAML config."""

from __future__ import annotations

from pricemap.common.errors import ConfigError

SECTION_KEYS: dict[str, set[str]] = {
    "ledger": {"filename", "min_year"},
    "polygons": {"dirname", "pattern", "code_properties"},
    "output": {"summary_filename", "trends_dirname", "sales_dirname", "reports_dirname"},
    "sales": {"min_year", "max_per_district"},
    "enrichment": {
        "endpoint",
        "page_size",
        "min_interval_seconds",
        "cache_dirname",
        "credentials_env",
        "retry",
        "timeout",
    },
}


def _assert_required_keys(obj: dict, required: set[str], ctx: str) -> None:
    if not isinstance(obj, dict):
        raise ConfigError(f"{ctx} must be a mapping")
    missing = required - set(obj)
    if missing:
        missing_str = ", ".join(sorted(missing))
        raise ConfigError(f"Missing keys in {ctx}: {missing_str}")


def _assert_no_unknown_keys(obj: dict, known: set[str], ctx: str, allow_unknown: bool) -> None:
    if allow_unknown:
        return
    unknown = set(obj) - known
    if unknown:
        unknown_str = ", ".join(sorted(unknown))
        raise ConfigError(f"Unknown keys in {ctx}: {unknown_str}")


def _assert_positive_int(value: object, ctx: str) -> None:
    if isinstance(value, bool) or not isinstance(value, int) or value <= 0:
        raise ConfigError(f"{ctx} must be a positive integer")


def validate_pipeline_config(cfg: dict, *, allow_unknown: bool = False) -> dict:
    _assert_required_keys(cfg, set(SECTION_KEYS), "pipeline config")
    _assert_no_unknown_keys(cfg, set(SECTION_KEYS), "pipeline config", allow_unknown)

    for section, keys in SECTION_KEYS.items():
        _assert_required_keys(cfg[section], keys, section)
        _assert_no_unknown_keys(cfg[section], keys, section, allow_unknown)

    _assert_positive_int(cfg["ledger"]["min_year"], "ledger.min_year")
    _assert_positive_int(cfg["sales"]["min_year"], "sales.min_year")
    _assert_positive_int(cfg["sales"]["max_per_district"], "sales.max_per_district")
    _assert_positive_int(cfg["enrichment"]["page_size"], "enrichment.page_size")

    properties = cfg["polygons"]["code_properties"]
    if not isinstance(properties, list) or not properties:
        raise ConfigError("polygons.code_properties must be a non-empty list")

    enrichment = cfg["enrichment"]
    _assert_required_keys(enrichment["credentials_env"], {"email", "api_key"}, "enrichment.credentials_env")
    _assert_required_keys(enrichment["retry"], {"max_attempts", "initial_wait", "max_wait"}, "enrichment.retry")
    _assert_required_keys(enrichment["timeout"], {"connect", "read"}, "enrichment.timeout")
    _assert_positive_int(enrichment["retry"]["max_attempts"], "enrichment.retry.max_attempts")
    if float(enrichment["min_interval_seconds"]) < 0:
        raise ConfigError("enrichment.min_interval_seconds must not be negative")

    return cfg
