"""Filesystem helpers."""

from __future__ import annotations

import json
import os
import re
from pathlib import Path

from pricemap.common.errors import InputFileError, OutputWriteError

_UNSAFE_FILENAME_RE = re.compile(r"[^A-Za-z0-9_-]")


def ensure_dir(path: Path) -> None:
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise OutputWriteError(f"Cannot create directory {path}: {exc}") from exc


def safe_filename(key: str) -> str:
    return _UNSAFE_FILENAME_RE.sub("_", key)


def read_yaml(path: Path):
    import yaml

    with path.open("r", encoding="utf-8") as f:
        return yaml.safe_load(f)


def read_json(path: Path):
    try:
        with path.open("r", encoding="utf-8") as f:
            return json.load(f)
    except OSError as exc:
        raise InputFileError(f"Cannot read {path}: {exc}") from exc
    except ValueError as exc:
        raise InputFileError(f"Invalid JSON in {path}: {exc}") from exc


def _atomic_write_text(path: Path, text: str) -> None:
    ensure_dir(path.parent)
    tmp = path.with_name(path.name + ".tmp")
    try:
        tmp.write_text(text, encoding="utf-8")
        os.replace(tmp, path)
    except OSError as exc:
        try:
            tmp.unlink()
        except OSError:
            pass
        raise OutputWriteError(f"Cannot write {path}: {exc}") from exc


def write_json(path: Path, payload) -> None:
    """Pretty, key-sorted JSON for reports and other human-read artifacts."""
    text = json.dumps(payload, ensure_ascii=False, indent=2, sort_keys=True)
    _atomic_write_text(path, text + "\n")


def write_compact_json(path: Path, payload) -> None:
    """Compact JSON for data artifacts; key order is the payload's own."""
    text = json.dumps(payload, ensure_ascii=False, separators=(",", ":"))
    _atomic_write_text(path, text)
