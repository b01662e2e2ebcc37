"""Thin wrapper around the ``git`` executable.

Everything the cleanup passes need from version control goes through
:class:`GitRepository`: ref listing and resolution, ancestry checks, commit
metadata and the handful of mutating commands (local branch/ref deletion,
remote delete and push).  Keeping the surface this narrow lets the
classification logic run against an in-memory fake in tests.
"""
from __future__ import annotations

import os
import subprocess
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional

from tools.branch_cleanup.errors import GitCommandError, NotARepositoryError


@dataclass(frozen=True)
class CommitMeta:
    author: str
    committed_at: str


def run_git(args: List[str], cwd: Path) -> subprocess.CompletedProcess:
    env = os.environ.copy()
    env.setdefault("GIT_TERMINAL_PROMPT", "0")
    return subprocess.run(
        ["git", *args],
        cwd=cwd,
        capture_output=True,
        encoding="utf-8",
        errors="replace",
        check=False,
        env=env,
    )


class GitRepository:
    def __init__(self, root: Path) -> None:
        self.root = root

    @classmethod
    def discover(cls, path: Path) -> "GitRepository":
        if not path.is_dir():
            raise NotARepositoryError(f"not a directory: {path}")
        result = run_git(["rev-parse", "--show-toplevel"], cwd=path)
        if result.returncode != 0 or not result.stdout.strip():
            raise NotARepositoryError(f"not a git repository: {path}")
        return cls(Path(result.stdout.strip()))

    @property
    def name(self) -> str:
        return self.root.name

    def _run(self, args: List[str]) -> subprocess.CompletedProcess:
        return run_git(args, cwd=self.root)

    def _check(self, args: List[str]) -> str:
        result = self._run(args)
        if result.returncode != 0:
            raise GitCommandError(args, result.returncode, result.stderr)
        return result.stdout

    def list_refs(self, prefix: str) -> List[str]:
        output = self._check(["for-each-ref", "--format=%(refname)", prefix])
        return [line for line in output.splitlines() if line]

    def ref_exists(self, ref: str) -> bool:
        return self._run(["show-ref", "--verify", "--quiet", ref]).returncode == 0

    def resolve_ref(self, ref: str) -> Optional[str]:
        result = self._run(["rev-parse", "--verify", "--quiet", f"{ref}^{{commit}}"])
        commit = result.stdout.strip()
        if result.returncode != 0 or not commit:
            return None
        return commit

    def commit_meta(self, commit: str) -> Optional[CommitMeta]:
        result = self._run(["show", "-s", "--format=%an%x00%aI", commit])
        if result.returncode != 0:
            return None
        author, _, committed_at = result.stdout.strip().partition("\x00")
        return CommitMeta(author=author, committed_at=committed_at)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return self._run(["merge-base", "--is-ancestor", ancestor, descendant]).returncode == 0

    def count_commits(self, ref: str) -> Optional[int]:
        result = self._run(["rev-list", "--count", ref])
        if result.returncode != 0:
            return None
        try:
            return int(result.stdout.strip())
        except ValueError:
            return None

    def delete_local_branch(self, name: str) -> None:
        self._check(["branch", "-D", name])

    def delete_ref(self, ref: str) -> None:
        self._check(["update-ref", "-d", ref])

    def delete_remote_branch(self, remote: str, name: str) -> None:
        self._check(["push", remote, "--delete", name])

    def push_branch(self, remote: str, name: str) -> None:
        self._check(["push", remote, name])
