"""JSON logging with stable schema."""

from __future__ import annotations

import json
import logging
from pathlib import Path
from typing import Any

from pricemap.common.constants import JSON_LOG_FIELDS
from pricemap.common.fs import ensure_dir
from pricemap.common.time_utils import utc_timestamp_iso

PACKAGE_LOGGER = "pricemap"


class JsonLineFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        payload = {field: getattr(record, field, None) for field in JSON_LOG_FIELDS}
        payload["timestamp"] = utc_timestamp_iso()
        payload["level"] = record.levelname
        payload["message"] = record.getMessage()
        return json.dumps(payload, ensure_ascii=False)


class RunIdFilter(logging.Filter):
    def __init__(self, run_id: str) -> None:
        super().__init__()
        self.run_id = run_id

    def filter(self, record: logging.LogRecord) -> bool:
        if getattr(record, "run_id", None) is None:
            record.run_id = self.run_id
        return True


def build_logger(run_id: str, data_dir: Path, level: str = "INFO") -> logging.Logger:
    logger = logging.getLogger(PACKAGE_LOGGER)
    logger.setLevel(level.upper())
    for handler in list(logger.handlers):
        handler.close()
    logger.handlers.clear()
    logger.propagate = False

    run_filter = RunIdFilter(run_id)

    stream = logging.StreamHandler()
    stream.setFormatter(JsonLineFormatter())
    stream.addFilter(run_filter)
    logger.addHandler(stream)

    log_path = data_dir / "run_meta" / f"{run_id}.log.jsonl"
    ensure_dir(log_path.parent)
    file_handler = logging.FileHandler(log_path, encoding="utf-8")
    file_handler.setFormatter(JsonLineFormatter())
    file_handler.addFilter(run_filter)
    logger.addHandler(file_handler)

    return logger


def log_event(logger: logging.Logger, message: str, *, level: int = logging.INFO, **event_fields: Any) -> None:
    logger.log(level, message, extra=event_fields)
