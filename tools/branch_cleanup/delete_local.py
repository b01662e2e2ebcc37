#!/usr/bin/env python3
"""Delete local refs for branches the report marks ``clean``.

For every report row under ``refs/remotes/`` whose recommendation is
``clean`` the local branch (``refs/heads/<name>``) and the remote-tracking ref
are deleted when present, and each deletion is appended to the deletion log
together with the full commit id so the branch can be recreated later with
``git checkout -b <branch_name> <full_commit_id>``.

The remote server is never contacted.
"""
from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from tools.branch_cleanup.classify import CLEAN
from tools.branch_cleanup.csvio import read_table
from tools.branch_cleanup.deletion_log import DeletionLog, DeletionLogEntry, deletion_timestamp
from tools.branch_cleanup.errors import BranchCleanupError, GitCommandError, NotARepositoryError
from tools.branch_cleanup.gitcli import GitRepository
from tools.branch_cleanup.logger import Logger
from tools.branch_cleanup.settings import load_settings


LOCAL_BRANCH_PREFIX = "refs/heads/"
REMOTE_TRACKING_PREFIX = "refs/remotes/"
REQUIRED_COLUMNS = ("full_ref", "short_name_without_remote", "commit_full", "recommendation")

EXIT_NOT_A_REPO = 2


@dataclass
class LocalDeletionResult:
    logged: List[DeletionLogEntry] = field(default_factory=list)
    planned: List[str] = field(default_factory=list)
    not_found: List[str] = field(default_factory=list)
    skipped: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)


class LocalDeletionPass:
    def __init__(self, repo: GitRepository, log: DeletionLog, dry_run: bool, logger: Logger) -> None:
        self.repo = repo
        self.log = log
        self.dry_run = dry_run
        self.logger = logger
        self.result = LocalDeletionResult()

    def delete_ref(self, ref: str, short_name: str, commit: str) -> bool:
        """Delete ``ref`` if present and log it; returns whether it existed."""
        if not self.repo.ref_exists(ref):
            return False
        if self.dry_run:
            self.logger.info(f"  [dry-run] would delete {ref}")
            self.result.planned.append(ref)
            return True
        try:
            if ref.startswith(LOCAL_BRANCH_PREFIX):
                self.repo.delete_local_branch(short_name)
            else:
                self.repo.delete_ref(ref)
        except GitCommandError as exc:
            self.logger.error(f"  Failed to delete {ref}: {exc}")
            self.result.failures.append(ref)
            return True
        entry = DeletionLogEntry(short_name, commit, deletion_timestamp())
        self.log.append(entry)
        self.result.logged.append(entry)
        self.logger.info(f"  Deleted {ref}")
        return True

    def process(self, full_ref: str, short_name: str, commit: str) -> None:
        self.logger.info(f"Candidate for deletion: {short_name} ({full_ref}, commit {commit})")
        found_local = self.delete_ref(f"{LOCAL_BRANCH_PREFIX}{short_name}", short_name, commit)
        found_tracking = self.delete_ref(full_ref, short_name, commit)
        if not found_local and not found_tracking:
            self.logger.warn(f"  No local refs found for {short_name} ({full_ref}), skipping")
            self.result.not_found.append(full_ref)


def delete_clean_branches(
    repo: GitRepository,
    report_path: Path,
    log: DeletionLog,
    *,
    dry_run: bool = False,
    logger: Optional[Logger] = None,
) -> LocalDeletionResult:
    logger = logger or Logger()
    rows = read_table(report_path, REQUIRED_COLUMNS)
    if not dry_run:
        log.ensure_header()

    deletion = LocalDeletionPass(repo, log, dry_run, logger)
    for row in rows:
        full_ref = row["full_ref"].strip()
        short_name = row["short_name_without_remote"].strip()
        commit = row["commit_full"].strip()
        recommendation = row["recommendation"].strip()
        if not full_ref.startswith(REMOTE_TRACKING_PREFIX) or not short_name:
            continue
        if recommendation != CLEAN:
            logger.info(f"Skipping {short_name} (recommendation: {recommendation})")
            deletion.result.skipped.append(full_ref)
            continue
        deletion.process(full_ref, short_name, commit)
    return deletion.result


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete local refs of branches recommended as clean and log each deletion.")
    parser.add_argument("--repo", type=Path, default=Path.cwd(), help="Path inside the git repository (default: current directory)")
    parser.add_argument("--reports-dir", type=Path, default=None, help="Directory holding branches.csv and the deletion log (default: git_reports)")
    parser.add_argument("--report", type=Path, default=None, help="Report to read (default: <reports-dir>/branches.csv)")
    parser.add_argument("--dry-run", action="store_true", help="Only list what would be deleted.")
    parser.add_argument("--log-file", type=Path, default=None, help="Also append diagnostic output to this file")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger = Logger(args.log_file)
    try:
        repo = GitRepository.discover(args.repo.resolve())
        settings = load_settings(repo.root, reports_dir=args.reports_dir)
        log = DeletionLog(settings.deletion_log_path)
        result = delete_clean_branches(
            repo,
            args.report or settings.report_input_path,
            log,
            dry_run=args.dry_run,
            logger=logger,
        )
    except NotARepositoryError as exc:
        logger.error(str(exc))
        return EXIT_NOT_A_REPO
    except BranchCleanupError as exc:
        logger.error(str(exc))
        return 1

    if args.dry_run:
        logger.info(f"Dry run: {len(result.planned)} local refs would be deleted")
    else:
        logger.info(f"Local cleanup complete: {len(result.logged)} refs deleted, {len(result.failures)} failed")
        logger.info(f"Recovery log: {log.path}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
