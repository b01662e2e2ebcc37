#!/usr/bin/env python3
"""Push locally restored branches back to the remote.

Branch names come from the deletion log.  A branch is pushed only when
``refs/heads/<branch_name>`` exists again; recreating it locally (for example
with the commands printed by ``restore_commands.py``) is up to the operator.
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
class RestorePushResult:
    pushed: List[str] = field(default_factory=list)
    planned: List[str] = field(default_factory=list)
    missing: List[str] = field(default_factory=list)
    failures: List[str] = field(default_factory=list)


def push_restored_branches(
    repo: GitRepository,
    log: DeletionLog,
    remote: str,
    *,
    dry_run: bool = False,
    logger: Optional[Logger] = None,
) -> RestorePushResult:
    logger = logger or Logger()
    if not log.exists():
        raise MissingInputError(f"deletion log not found: {log.path}")

    result = RestorePushResult()
    for entry in log.unique_entries():
        name = entry.branch_name
        logger.info(f"Checking branch: {name}")
        if not repo.ref_exists(f"refs/heads/{name}"):
            logger.warn(f"  Local branch not found, not pushed: {name} (restore it locally first, then re-run)")
            result.missing.append(name)
            continue
        if dry_run:
            logger.info(f"  [dry-run] git push {remote} {name}")
            result.planned.append(name)
            continue
        try:
            repo.push_branch(remote, name)
        except GitCommandError as exc:
            logger.error(f"  Failed to push {name} to {remote}: {exc}")
            result.failures.append(name)
            continue
        logger.info(f"  Pushed: {name}")
        result.pushed.append(name)
    return result


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Push branches from the deletion log that were restored locally.")
    parser.add_argument("remote", nargs="?", default=None, help="Remote to push to (default: origin)")
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
        logger.info(f"Remote: {settings.remote}")
        logger.info(f"Using log: {log.path}")
        result = push_restored_branches(repo, log, settings.remote, dry_run=args.dry_run, logger=logger)
    except NotARepositoryError as exc:
        logger.error(str(exc))
        return EXIT_NOT_A_REPO
    except BranchCleanupError as exc:
        logger.error(str(exc))
        return 1
    logger.info(
        f"Push from log complete: {len(result.pushed)} pushed, "
        f"{len(result.missing)} not restored locally, {len(result.failures)} failed"
    )
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
