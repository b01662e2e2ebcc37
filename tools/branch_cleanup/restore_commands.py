#!/usr/bin/env python3
"""Print the commands that recreate deleted branches from the deletion log.

This script restores nothing automatically; it only prints commands for a
human operator to review and run.  Once a branch exists locally again,
``push_restored.py`` pushes it back to the remote.
"""
from __future__ import annotations

import argparse
from pathlib import Path
from typing import Iterable, Iterator, List, Optional

from tools.branch_cleanup.deletion_log import DeletionLog, DeletionLogEntry
from tools.branch_cleanup.errors import BranchCleanupError, MissingInputError, NotARepositoryError
from tools.branch_cleanup.gitcli import GitRepository
from tools.branch_cleanup.logger import Logger
from tools.branch_cleanup.settings import load_settings


EXIT_NOT_A_REPO = 2


def recovery_commands(entries: Iterable[DeletionLogEntry]) -> Iterator[str]:
    for entry in entries:
        if not entry.full_commit_id:
            yield f"# {entry.branch_name}: no commit id recorded, cannot restore"
            continue
        yield f"git checkout -b {entry.branch_name} {entry.full_commit_id}"


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Print git commands that recreate branches listed in the deletion log.")
    parser.add_argument("--repo", type=Path, default=Path.cwd(), help="Path inside the git repository (default: current directory)")
    parser.add_argument("--reports-dir", type=Path, default=None, help="Directory holding the deletion log (default: git_reports)")
    parser.add_argument("--log", type=Path, default=None, help="Read this deletion log instead of the one in the reports directory")
    parser.add_argument("--log-file", type=Path, default=None, help="Also append diagnostic output to this file")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger = Logger(args.log_file)
    try:
        repo = GitRepository.discover(args.repo.resolve())
        settings = load_settings(repo.root, reports_dir=args.reports_dir)
        log = DeletionLog(args.log or settings.deletion_log_path)
        logger.info(f"Reading deletion log: {log.path}")
        if not log.exists():
            raise MissingInputError(f"deletion log not found: {log.path}")
        entries = log.unique_entries()
    except NotARepositoryError as exc:
        logger.error(str(exc))
        return EXIT_NOT_A_REPO
    except BranchCleanupError as exc:
        logger.error(str(exc))
        return 1

    print("# Nothing is restored automatically. Run the commands you agree with:")
    for command in recovery_commands(entries):
        print(command)
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
