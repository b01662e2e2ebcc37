"""CSV helpers shared by the report and the deletion log.

Columns are always located by header name.  A table ends at the first blank
line (the report appends a free-form summary after one).  Rows whose field
count differs from the header are skipped; they come from a line cut short by
an interrupted run.
"""
from __future__ import annotations

import csv
from pathlib import Path
from typing import Dict, Iterable, List, Sequence, TextIO

from tools.branch_cleanup.errors import MissingColumnError, MissingInputError


class HeaderIndex:
    def __init__(self, header: Sequence[str], source: Path) -> None:
        self.columns = [name.strip() for name in header]
        self.source = source
        self._positions: Dict[str, int] = {}
        for position, name in enumerate(self.columns):
            self._positions.setdefault(name, position)

    def require(self, names: Iterable[str]) -> None:
        missing = [name for name in names if name not in self._positions]
        if missing:
            raise MissingColumnError(f"{self.source} is missing column(s): {', '.join(missing)}")

    def get(self, row: Sequence[str], name: str) -> str:
        return row[self._positions[name]]

    def __len__(self) -> int:
        return len(self.columns)


def read_table(path: Path, required: Sequence[str]) -> List[Dict[str, str]]:
    if not path.is_file():
        raise MissingInputError(f"file not found: {path}")
    with path.open("r", encoding="utf-8", newline="") as handle:
        reader = csv.reader(handle)
        header = next(reader, None)
        if header is None:
            raise MissingColumnError(f"{path} is empty; expected columns: {', '.join(required)}")
        index = HeaderIndex(header, path)
        index.require(required)
        rows: List[Dict[str, str]] = []
        for row in reader:
            if not row:
                break
            if len(row) != len(index):
                continue
            rows.append({name: index.get(row, name) for name in required})
    return rows


def quoted_writer(handle: TextIO):
    return csv.writer(handle, quoting=csv.QUOTE_ALL, lineterminator="\n")


def plain_writer(handle: TextIO):
    return csv.writer(handle, quoting=csv.QUOTE_MINIMAL, lineterminator="\n")
