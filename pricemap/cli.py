"""CLI entrypoint for the district house-price pipeline."""

from __future__ import annotations

import argparse
import logging
import sys
import time
from pathlib import Path

from pricemap.common.config_loader import PipelineConfig, load_config
from pricemap.common.constants import EXIT_HARD_FAIL, EXIT_SUCCESS, STAGES
from pricemap.common.errors import PipelineError
from pricemap.common.layout import DataLayout, resolve_layout
from pricemap.common.logging import build_logger, log_event
from pricemap.common.time_utils import generate_run_id, parse_run_date
from pricemap.enrichment.runner import run_enrich
from pricemap.pipeline.reports import write_run_summary
from pricemap.pipeline.runner import run_aggregate
from pricemap.pipeline.sales import run_extract_sales


def parse_args(argv: list[str]) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description=__doc__)
    parser.add_argument("command", choices=[*STAGES, "all"])
    parser.add_argument("--ledger", default=None, help="ledger CSV; defaults to <data-dir>/raw/<ledger.filename>")
    parser.add_argument("--run-date", default=None)
    parser.add_argument("--run-id", default=None)
    parser.add_argument("--config-dir", default="./config")
    parser.add_argument("--overlay-config-dir", default=None)
    parser.add_argument("--data-dir", default="./data")
    parser.add_argument("--log-level", default="INFO", choices=["DEBUG", "INFO", "WARNING", "ERROR"])
    return parser.parse_args(argv)


def execute_stage(stage: str, config: PipelineConfig, layout: DataLayout) -> dict:
    if stage == "aggregate":
        return run_aggregate(config, layout)
    if stage == "extract-sales":
        return run_extract_sales(config, layout)
    if stage == "enrich":
        return run_enrich(config, layout)
    raise ValueError(f"Unknown stage: {stage}")


def run_command(args: argparse.Namespace) -> int:
    run_id = args.run_id or generate_run_id()
    run_date = parse_run_date(args.run_date)
    config_dir = Path(args.config_dir)
    overlay_config_dir = Path(args.overlay_config_dir) if args.overlay_config_dir else None
    data_dir = Path(args.data_dir)

    logger = build_logger(run_id, data_dir=data_dir, level=args.log_level)
    stages = STAGES if args.command == "all" else (args.command,)
    stage_stats: dict[str, dict] = {}

    try:
        config = load_config(config_dir, overlay_config_dir=overlay_config_dir)
        layout = resolve_layout(config, data_dir, Path(args.ledger) if args.ledger else None)
    except PipelineError as exc:
        log_event(logger, f"configuration failed: {exc}", level=logging.ERROR, event="CONFIG_FAIL", status="error", error_code=exc.error_code)
        return EXIT_HARD_FAIL

    for stage in stages:
        log_event(logger, "stage start", stage=stage, event="STAGE_START", status="ok")
        started = time.monotonic()
        try:
            stage_stats[stage] = execute_stage(stage, config, layout)
        except PipelineError as exc:
            log_event(
                logger,
                f"stage failed: {exc}",
                level=logging.ERROR,
                stage=stage,
                event="STAGE_FAIL",
                status="error",
                error_code=exc.error_code,
            )
            return EXIT_HARD_FAIL
        log_event(
            logger,
            "stage end",
            stage=stage,
            event="STAGE_END",
            status="ok",
            duration_ms=int((time.monotonic() - started) * 1000),
        )

    try:
        write_run_summary(layout.reports_dir, run_id=run_id, run_date=run_date, stage_stats=stage_stats)
    except PipelineError as exc:
        log_event(logger, f"run summary failed: {exc}", level=logging.ERROR, event="STAGE_FAIL", status="error", error_code=exc.error_code)
        return EXIT_HARD_FAIL
    return EXIT_SUCCESS


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv if argv is not None else sys.argv[1:])
    try:
        return run_command(args)
    except PipelineError as exc:
        print(f"pricemap: {exc}", file=sys.stderr)
        return EXIT_HARD_FAIL


if __name__ == "__main__":
    raise SystemExit(main())
