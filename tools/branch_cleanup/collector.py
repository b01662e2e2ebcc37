"""Enumerate remote-tracking branches and resolve environment branches.

Only locally cached refs are read; nothing here fetches from the remote.
"""
from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional, Sequence

from tools.branch_cleanup.gitcli import GitRepository


PRIMARY_BRANCH_NAMES = ("main", "master")


@dataclass(frozen=True)
class BranchRef:
    full_ref: str
    short_name: str
    commit_id: str
    author: str
    committed_at: str


@dataclass(frozen=True)
class EnvironmentRef:
    name: str
    ref: Optional[str]

    @property
    def resolved(self) -> bool:
        return self.ref is not None


def remote_prefix(remote: str) -> str:
    return f"refs/remotes/{remote}/"


def resolve_branch_ref(repo: GitRepository, remote: str, name: str) -> Optional[str]:
    """Prefer ``refs/heads/<name>`` over ``refs/remotes/<remote>/<name>``."""
    for candidate in (f"refs/heads/{name}", f"{remote_prefix(remote)}{name}"):
        if repo.ref_exists(candidate):
            return candidate
    return None


def resolve_environment_refs(
    repo: GitRepository, remote: str, environment_branches: Sequence[str]
) -> List[EnvironmentRef]:
    return [
        EnvironmentRef(name=name, ref=resolve_branch_ref(repo, remote, name))
        for name in environment_branches
    ]


def resolve_primary_ref(repo: GitRepository, remote: str) -> Optional[str]:
    for name in PRIMARY_BRANCH_NAMES:
        ref = resolve_branch_ref(repo, remote, name)
        if ref is not None:
            return ref
    return None


def collect_branch_refs(
    repo: GitRepository, remote: str, environment_branches: Sequence[str]
) -> List[BranchRef]:
    prefix = remote_prefix(remote)
    excluded = set(environment_branches) | {"HEAD"}
    branches: List[BranchRef] = []
    for full_ref in repo.list_refs(prefix.rstrip("/")):
        if not full_ref.startswith(prefix):
            continue
        short_name = full_ref[len(prefix):]
        if short_name in excluded:
            continue
        commit = repo.resolve_ref(full_ref) or ""
        meta = repo.commit_meta(commit) if commit else None
        branches.append(
            BranchRef(
                full_ref=full_ref,
                short_name=short_name,
                commit_id=commit,
                author=meta.author if meta else "",
                committed_at=meta.committed_at if meta else "",
            )
        )
    return branches
