"""Date helpers for ledger parsing and run metadata."""

from __future__ import annotations

from datetime import date, datetime, timezone


def parse_ledger_date(value: str | None) -> date | None:
    """Parse a transfer date such as ``2021-06-30 00:00``; only the date prefix counts."""
    if not value:
        return None
    try:
        return date.fromisoformat(value.strip()[:10])
    except ValueError:
        return None


def parse_run_date(value: str | None) -> str:
    if not value:
        return datetime.now(tz=timezone.utc).date().isoformat()
    return date.fromisoformat(value).isoformat()


def generate_run_id() -> str:
    # Sortable by start time; one id per CLI invocation.
    return datetime.now(tz=timezone.utc).strftime("run-%Y%m%dT%H%M%S%fZ")


def utc_timestamp_iso() -> str:
    return datetime.now(tz=timezone.utc).isoformat(timespec="milliseconds")
