"""On-disk certificate cache, one JSON file per postcode.

Layout: ``<cache_dir>/<POSTCODE with spaces as _>.json`` holding the parsed
record list (possibly empty). Entries are write-once: a key that exists on
disk is never rewritten, so deleting the file is the only way to refresh it.
Writes go to ``.tmp`` first and are renamed into place.
"""

from __future__ import annotations

from pathlib import Path

from pricemap.common.errors import InputFileError
from pricemap.common.fs import ensure_dir, read_json, safe_filename, write_compact_json
from pricemap.common.models import EnrichmentRecord
from pricemap.common.postcode import normalise_postcode_key


class EnrichmentCache:
    def __init__(self, cache_dir: Path) -> None:
        self.cache_dir = cache_dir
        ensure_dir(cache_dir)

    def path_for(self, key: str) -> Path:
        return self.cache_dir / f"{safe_filename(normalise_postcode_key(key))}.json"

    def get(self, key: str) -> list[EnrichmentRecord] | None:
        path = self.path_for(key)
        if not path.exists():
            return None
        payload = read_json(path)
        if not isinstance(payload, list):
            raise InputFileError(f"Cache entry must be a list: {path}")
        return [EnrichmentRecord.from_dict(item) for item in payload]

    def put(self, key: str, records: list[EnrichmentRecord]) -> None:
        path = self.path_for(key)
        if path.exists():
            return
        write_compact_json(path, [record.to_dict() for record in records])
