"""Append-only ledger of locally deleted branches.

Every successful local ref deletion appends one ``branch_name,
full_commit_id, deletion_time_iso`` line.  A branch removed both as a local
branch and as a remote-tracking ref is therefore logged twice with the same
commit; readers use :meth:`DeletionLog.unique_entries` to keep the first
occurrence of each name.  The remote delete and restore-push passes read
nothing but this file.
"""
from __future__ import annotations

import datetime as _dt
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Optional

from tools.branch_cleanup.csvio import plain_writer, read_table


LOG_HEADER = ("branch_name", "full_commit_id", "deletion_time_iso")
DELETION_TIME_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


@dataclass(frozen=True)
class DeletionLogEntry:
    branch_name: str
    full_commit_id: str
    deletion_time_iso: str

    def to_fields(self) -> List[str]:
        return [self.branch_name, self.full_commit_id, self.deletion_time_iso]


def deletion_timestamp(now: Optional[_dt.datetime] = None) -> str:
    now = now or _dt.datetime.now(_dt.timezone.utc)
    return now.astimezone(_dt.timezone.utc).strftime(DELETION_TIME_FORMAT)


class DeletionLog:
    def __init__(self, path: Path) -> None:
        self.path = path

    def exists(self) -> bool:
        return self.path.is_file()

    def is_empty(self) -> bool:
        return self.exists() and self.path.stat().st_size == 0

    def ensure_header(self) -> None:
        # a first run interrupted before the header leaves a 0-byte file
        if self.exists() and not self.is_empty():
            return
        self.path.parent.mkdir(parents=True, exist_ok=True)
        with self.path.open("w", encoding="utf-8", newline="") as fp:
            plain_writer(fp).writerow(LOG_HEADER)

    def append(self, entry: DeletionLogEntry) -> None:
        self.ensure_header()
        terminated = self._ends_with_newline()
        with self.path.open("a", encoding="utf-8", newline="") as fp:
            if not terminated:
                # a previous run was cut off mid-line
                fp.write("\n")
            plain_writer(fp).writerow(entry.to_fields())

    def _ends_with_newline(self) -> bool:
        with self.path.open("rb") as fp:
            fp.seek(0, 2)
            if fp.tell() == 0:
                return True
            fp.seek(-1, 2)
            return fp.read(1) == b"\n"

    def entries(self) -> List[DeletionLogEntry]:
        if self.is_empty():
            return []
        rows = read_table(self.path, LOG_HEADER)
        return [
            DeletionLogEntry(
                branch_name=row["branch_name"].strip(),
                full_commit_id=row["full_commit_id"].strip(),
                deletion_time_iso=row["deletion_time_iso"].strip(),
            )
            for row in rows
            if row["branch_name"].strip()
        ]

    def unique_entries(self) -> List[DeletionLogEntry]:
        seen: Dict[str, DeletionLogEntry] = {}
        for entry in self.entries():
            seen.setdefault(entry.branch_name, entry)
        return list(seen.values())
