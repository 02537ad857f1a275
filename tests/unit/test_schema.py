import copy
from pathlib import Path

import pytest

from pricemap.common.errors import ConfigError
from pricemap.common.fs import read_yaml
from pricemap.common.schema import validate_pipeline_config


def _repo_config() -> dict:
    return copy.deepcopy(read_yaml(Path("config") / "pipeline.yml"))


def test_repo_config_is_valid():
    cfg = _repo_config()
    assert validate_pipeline_config(cfg) is cfg


def test_schema_rejects_unknown_key():
    cfg = _repo_config()
    cfg["sales"]["max_per_distrct"] = 10

    with pytest.raises(ConfigError, match="Unknown keys in sales"):
        validate_pipeline_config(cfg)
    assert validate_pipeline_config(cfg, allow_unknown=True) is cfg


def test_schema_rejects_missing_section():
    cfg = _repo_config()
    del cfg["enrichment"]

    with pytest.raises(ConfigError, match="Missing keys in pipeline config: enrichment"):
        validate_pipeline_config(cfg)


def test_schema_rejects_missing_nested_key():
    cfg = _repo_config()
    del cfg["enrichment"]["retry"]["max_wait"]

    with pytest.raises(ConfigError, match="enrichment.retry"):
        validate_pipeline_config(cfg)


@pytest.mark.parametrize(
    "section,key,value",
    [
        ("sales", "max_per_district", 0),
        ("ledger", "min_year", "1995"),
        ("enrichment", "page_size", True),
    ],
)
def test_schema_rejects_non_positive_integers(section, key, value):
    cfg = _repo_config()
    cfg[section][key] = value

    with pytest.raises(ConfigError, match="positive integer"):
        validate_pipeline_config(cfg)


def test_schema_rejects_empty_code_properties():
    cfg = _repo_config()
    cfg["polygons"]["code_properties"] = []

    with pytest.raises(ConfigError):
        validate_pipeline_config(cfg)


def test_schema_rejects_negative_interval():
    cfg = _repo_config()
    cfg["enrichment"]["min_interval_seconds"] = -1

    with pytest.raises(ConfigError):
        validate_pipeline_config(cfg)
