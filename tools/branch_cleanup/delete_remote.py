#!/usr/bin/env python3
"""Delete branches on the remote server using the deletion log.

The deletion log is the final word on which branches are meant to be gone:
each unique ``branch_name`` is removed with ``git push <remote> --delete``
without re-checking the local repository.  A failed delete is reported and the
run moves on to the next branch.
"""
from __future__ import annotations

import argparse
from dataclasses import dataclass, field
from pathlib import Path
from typing import List, Optional

from tools.branch_cleanup.deletion_log import DeletionLog
from tools.branch_cleanup.errors import BranchCleanupError, GitCommandError, MissingInputError, NotARepositoryError
from tools.branch_cleanup.gitcli import GitRepository
from tools.branch_cleanup.logger import Logger
from tools.branch_cleanup.settings import load_settings


EXIT_NOT_A_REPO = 2


@dataclass
class RemoteDeletionResult:
    deleted: List[str] = field(default_factory=list)
    planned: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)


def delete_remote_branches(
    repo: GitRepository,
    log: DeletionLog,
    remote: str,
    *,
    dry_run: bool = False,
    logger: Optional[Logger] = None,
) -> RemoteDeletionResult:
    logger = logger or Logger()
    if not log.exists():
        raise MissingInputError(f"deletion log not found: {log.path}")

    result = RemoteDeletionResult()
    for entry in log.unique_entries():
        name = entry.branch_name
        if dry_run:
            logger.info(f"[dry-run] git push {remote} --delete {name}")
            result.planned.append(name)
            continue
        logger.info(f"Deleting remote branch '{name}' from '{remote}'")
        try:
            repo.delete_remote_branch(remote, name)
        except GitCommandError as exc:
            logger.error(f"  Failed to delete {name} on {remote}: {exc}")
            result.failures.append(name)
            continue
        result.deleted.append(name)
    return result


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Delete every branch listed in the deletion log from the remote.")
    parser.add_argument("remote", nargs="?", default=None, help="Remote to delete branches from (default: origin)")
    parser.add_argument("--repo", type=Path, default=Path.cwd(), help="Path inside the git repository (default: current directory)")
    parser.add_argument("--reports-dir", type=Path, default=None, help="Directory holding the deletion log (default: git_reports)")
    parser.add_argument("--dry-run", action="store_true", help="Only print the push commands.")
    parser.add_argument("--log-file", type=Path, default=None, help="Also append diagnostic output to this file")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger = Logger(args.log_file)
    try:
        repo = GitRepository.discover(args.repo.resolve())
        settings = load_settings(repo.root, remote=args.remote, reports_dir=args.reports_dir)
        log = DeletionLog(settings.deletion_log_path)
        logger.info(f"Using remote: {settings.remote}")
        logger.info(f"Reading deletion log: {log.path}")
        result = delete_remote_branches(repo, log, settings.remote, dry_run=args.dry_run, logger=logger)
    except NotARepositoryError as exc:
        logger.error(str(exc))
        return EXIT_NOT_A_REPO
    except BranchCleanupError as exc:
        logger.error(str(exc))
        return 1
    logger.info(
        f"Remote cleanup from log complete: {len(result.deleted)} deleted, "
        f"{len(result.failures)} failed, {len(result.planned)} planned"
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
