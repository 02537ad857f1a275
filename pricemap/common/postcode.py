"""Postcode normalisation and geography code extraction.

``extract_geography_code`` is the single grouping key shared by the aggregation
and enrichment pipelines; both must call it rather than re-deriving districts.
"""

from __future__ import annotations

import re

_OUTWARD_CODE_RE = re.compile(r"^([A-Z]{1,2}\d{1,2}[A-Z]?)")
# Unspaced full postcode: the inward part is always digit + two letters.
_UNSPACED_POSTCODE_RE = re.compile(r"^([A-Z]{1,2}\d{1,2}[A-Z]?)\d[A-Z]{2}$")
_WHITESPACE_RE = re.compile(r"\s+")


def extract_geography_code(raw: str) -> str:
    """Return the district code for a postcode-like string.

    ``"SW1A 1AA"`` -> ``"SW1A"``, ``"SW1A1AA"`` -> ``"SW1A"``, ``"M11AE"`` -> ``"M1"``.
    Strings matching neither rule come back trimmed and uppercased.
    """
    cleaned = raw.strip().upper()
    parts = cleaned.split(maxsplit=1)
    if len(parts) >= 2:
        return parts[0]
    match = _UNSPACED_POSTCODE_RE.match(cleaned) or _OUTWARD_CODE_RE.match(cleaned)
    if match:
        return match.group(1)
    return cleaned


def normalise_postcode_key(raw: str | None) -> str:
    if raw is None:
        return ""
    return raw.strip().upper()


def normalise_polygon_code(raw: str | None) -> str:
    if raw is None:
        return ""
    return _WHITESPACE_RE.sub("", str(raw)).upper()
