"""Run report aggregation."""

from __future__ import annotations

from pathlib import Path

from pricemap.common.fs import write_json

# Counters that indicate degraded but non-fatal output.
_WARNING_COUNTERS = ("geometry_unmatched", "failed_transport", "unreadable_lines")


def write_run_summary(
    reports_dir: Path,
    *,
    run_id: str,
    run_date: str,
    stage_stats: dict[str, dict],
) -> Path:
    warnings: list[str] = []
    for stage, stats in stage_stats.items():
        for counter in _WARNING_COUNTERS:
            if int(stats.get(counter, 0)) > 0:
                warnings.append(f"{stage}:{counter}")

    payload = {
        "run_id": run_id,
        "run_date": run_date,
        "status": "partial" if warnings else "success",
        "stages": list(stage_stats),
        "warnings": warnings,
        "stage_stats": stage_stats,
    }
    summary_path = reports_dir / "run_summary.json"
    write_json(summary_path, payload)
    return summary_path
