"""Streaming reader for the headerless transaction ledger."""

from __future__ import annotations

import csv
import logging
from pathlib import Path
from typing import Iterable, Iterator

from pricemap.common.errors import InputFileError
from pricemap.common.logging import log_event

logger = logging.getLogger(__name__)


def _strip_nul(lines: Iterable[str]) -> Iterator[str]:
    # The csv module refuses NUL bytes outright; drop them so the row still reaches the filter.
    for line in lines:
        yield line.replace("\0", "") if "\0" in line else line


class RecordStream:
    """Lazy, forward-only rows of a ledger file.

    Every ``iter()`` reopens the file, so one instance can feed several passes
    in the same run. Rows are yielded exactly as parsed; validation belongs to
    the normaliser. A line the csv module cannot parse (for example a field
    over its size limit) is skipped and counted in ``unreadable_lines``.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)
        self.unreadable_lines = 0

    def __iter__(self) -> Iterator[list[str]]:
        self.unreadable_lines = 0
        try:
            handle = self.path.open("r", encoding="utf-8", errors="replace", newline="")
        except OSError as exc:
            raise InputFileError(f"Cannot open ledger {self.path}: {exc}") from exc
        with handle:
            reader = csv.reader(_strip_nul(handle), delimiter=",", quotechar='"')
            while True:
                try:
                    row = next(reader)
                except StopIteration:
                    return
                except csv.Error as exc:
                    # The reader resumes at the next physical line.
                    self.unreadable_lines += 1
                    log_event(
                        logger,
                        f"skipping unreadable line {reader.line_num}: {exc}",
                        level=logging.WARNING,
                        source=self.path.name,
                        event="LINE_SKIP",
                        status="degraded",
                    )
                    continue
                except OSError as exc:
                    raise InputFileError(f"Cannot read ledger {self.path}: {exc}") from exc
                yield row

    def stats(self) -> dict:
        return {"unreadable_lines": self.unreadable_lines}
