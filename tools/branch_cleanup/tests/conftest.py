from __future__ import annotations

import os
import subprocess
from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import Dict, List, Optional, Set, Tuple

import pytest

from tools.branch_cleanup.errors import GitCommandError
from tools.branch_cleanup.gitcli import CommitMeta
from tools.branch_cleanup.settings import (
    ENV_CONFIG,
    ENV_ENVIRONMENT_BRANCHES,
    ENV_REMOTE,
    ENV_REPORTS_DIR,
    ENV_REVIEW_DAYS,
)


@pytest.fixture(autouse=True)
def _clear_cleanup_environment(monkeypatch) -> None:
    for name in (ENV_CONFIG, ENV_ENVIRONMENT_BRANCHES, ENV_REMOTE, ENV_REPORTS_DIR, ENV_REVIEW_DAYS):
        monkeypatch.delenv(name, raising=False)


class RepoBuilder:
    """Builds throwaway repositories with the git CLI."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def git(self, *args: str, cwd: Optional[Path] = None, env: Optional[Dict[str, str]] = None) -> str:
        result = subprocess.run(
            ["git", *args], cwd=cwd or self.root, check=True, env=env, capture_output=True, text=True
        )
        return result.stdout.strip()

    def init(self) -> "RepoBuilder":
        self.root.mkdir(parents=True, exist_ok=True)
        self.git("init", "-q")
        self.git("symbolic-ref", "HEAD", "refs/heads/main")
        self.git("config", "user.email", "test@example.com")
        self.git("config", "user.name", "Tester")
        self.git("config", "commit.gpgsign", "false")
        return self

    def commit_file(self, filename: str, content: str, message: str, days_ago: int = 0) -> str:
        path = self.root / filename
        path.write_text(content, encoding="utf-8")
        self.git("add", filename)
        env = os.environ.copy()
        if days_ago:
            past = datetime.now(timezone.utc) - timedelta(days=days_ago)
            env["GIT_COMMITTER_DATE"] = env["GIT_AUTHOR_DATE"] = f"{int(past.timestamp())} +0000"
        self.git("commit", "-q", "-m", message, env=env)
        return self.git("rev-parse", "HEAD")

    def track(self, name: str, remote: str = "origin") -> None:
        """Point ``refs/remotes/<remote>/<name>`` at the local branch tip."""
        self.git("update-ref", f"refs/remotes/{remote}/{name}", f"refs/heads/{name}")

    def ref_exists(self, ref: str) -> bool:
        result = subprocess.run(["git", "show-ref", "--verify", "--quiet", ref], cwd=self.root, check=False)
        return result.returncode == 0


@pytest.fixture()
def repo_builder(tmp_path: Path) -> RepoBuilder:
    return RepoBuilder(tmp_path / "work").init()


@pytest.fixture()
def env_branch_repo(repo_builder: RepoBuilder) -> RepoBuilder:
    """Repository with dev/qa/prod/main plus the branches of the cleanup scenario.

    - ``old-feature``: merged into main only, last commit 40 days ago
    - ``hotfix-1``: merged into main only, last commit 2 days ago
    - ``wip-spike``: merged nowhere
    - ``qa-only``: merged into qa only
    """
    repo = repo_builder
    repo.commit_file("README.md", "root", "init", days_ago=60)
    for env in ("dev", "qa", "prod"):
        repo.git("branch", env)

    repo.git("checkout", "-q", "-b", "old-feature")
    repo.commit_file("old.txt", "old", "old feature", days_ago=40)
    repo.git("checkout", "-q", "main")
    repo.git("merge", "-q", "--ff-only", "old-feature")

    repo.git("checkout", "-q", "-b", "hotfix-1")
    repo.commit_file("hotfix.txt", "fix", "hotfix", days_ago=2)
    repo.git("checkout", "-q", "main")
    repo.git("merge", "-q", "--ff-only", "hotfix-1")

    repo.git("checkout", "-q", "-b", "wip-spike")
    repo.commit_file("spike.txt", "spike", "spike", days_ago=30)

    repo.git("checkout", "-q", "qa")
    repo.git("checkout", "-q", "-b", "qa-only")
    repo.commit_file("qa.txt", "qa", "qa work", days_ago=30)
    repo.git("checkout", "-q", "qa")
    repo.git("merge", "-q", "--ff-only", "qa-only")

    repo.git("checkout", "-q", "main")
    for name in ("main", "dev", "qa", "prod", "old-feature", "hotfix-1", "wip-spike", "qa-only"):
        repo.track(name)
    repo.git("symbolic-ref", "refs/remotes/origin/HEAD", "refs/remotes/origin/main")
    return repo


class FakeRepository:
    """In-memory stand-in for :class:`GitRepository`."""

    def __init__(self, name: str = "fake-repo") -> None:
        self.name = name
        self.refs: Dict[str, str] = {}
        self.commits: Dict[str, CommitMeta] = {}
        self.ancestry: Set[Tuple[str, str]] = set()
        self.commit_counts: Dict[str, int] = {}
        self.failing: Set[str] = set()
        self.calls: List[Tuple[str, ...]] = []

    def add_ref(self, ref: str, commit: str, author: str = "", committed_at: str = "") -> None:
        # refs added without commit metadata do not resolve, like a ref to a pruned object
        self.refs[ref] = commit
        if author or committed_at:
            self.commits[commit] = CommitMeta(author=author, committed_at=committed_at)

    def merge(self, commit: str, into_ref: str) -> None:
        self.ancestry.add((commit, into_ref))

    def list_refs(self, prefix: str) -> List[str]:
        return [ref for ref in self.refs if ref.startswith(prefix.rstrip("/") + "/")]

    def ref_exists(self, ref: str) -> bool:
        return ref in self.refs

    def resolve_ref(self, ref: str) -> Optional[str]:
        commit = self.refs.get(ref)
        if not commit or commit not in self.commits:
            return None
        return commit

    def commit_meta(self, commit: str) -> Optional[CommitMeta]:
        return self.commits.get(commit)

    def is_ancestor(self, ancestor: str, descendant: str) -> bool:
        return (ancestor, descendant) in self.ancestry

    def count_commits(self, ref: str) -> Optional[int]:
        return self.commit_counts.get(ref)

    def _record(self, *call: str) -> None:
        self.calls.append(call)
        if call[-1] in self.failing:
            raise GitCommandError(list(call), 1, f"rejected {call[-1]}")

    def delete_local_branch(self, name: str) -> None:
        self._record("branch -D", name)
        del self.refs[f"refs/heads/{name}"]

    def delete_ref(self, ref: str) -> None:
        self._record("update-ref -d", ref)
        del self.refs[ref]

    def delete_remote_branch(self, remote: str, name: str) -> None:
        self._record("push --delete", remote, name)

    def push_branch(self, remote: str, name: str) -> None:
        self._record("push", remote, name)


@pytest.fixture()
def fake_repo() -> FakeRepository:
    return FakeRepository()
