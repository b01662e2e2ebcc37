from __future__ import annotations

import textwrap
from pathlib import Path

import pytest

from tools.branch_cleanup import delete_local
from tools.branch_cleanup.deletion_log import DeletionLog
from tools.branch_cleanup.delete_local import delete_clean_branches
from tools.branch_cleanup.errors import MissingColumnError, MissingInputError
from tools.branch_cleanup.gitcli import GitRepository
from tools.branch_cleanup.report import scan_branches, write_report
from tools.branch_cleanup.settings import load_settings


def _write_csv(path: Path, content: str) -> Path:
    path.parent.mkdir(parents=True, exist_ok=True)
    path.write_text(textwrap.dedent(content).lstrip(), encoding="utf-8")
    return path


@pytest.fixture()
def reported_repo(env_branch_repo):
    repo = GitRepository(env_branch_repo.root)
    settings = load_settings(repo.root)
    write_report(scan_branches(repo, settings), settings.report_input_path)
    return env_branch_repo, repo, settings


def test_clean_branches_deleted_and_logged(reported_repo) -> None:
    builder, repo, settings = reported_repo
    old_commit = builder.git("rev-parse", "refs/heads/old-feature")
    log = DeletionLog(settings.deletion_log_path)

    result = delete_clean_branches(repo, settings.report_input_path, log)

    for name in ("old-feature", "wip-spike"):
        assert not builder.ref_exists(f"refs/heads/{name}")
        assert not builder.ref_exists(f"refs/remotes/origin/{name}")
    for name in ("hotfix-1", "qa-only"):
        assert builder.ref_exists(f"refs/heads/{name}")
        assert builder.ref_exists(f"refs/remotes/origin/{name}")

    entries = log.entries()
    assert [entry.branch_name for entry in entries].count("old-feature") == 2
    assert [entry.branch_name for entry in entries].count("wip-spike") == 2
    assert len(entries) == len(result.logged) == 4
    assert {entry.full_commit_id for entry in entries if entry.branch_name == "old-feature"} == {old_commit}
    assert all(entry.deletion_time_iso.endswith("Z") for entry in entries)
    assert sorted(result.skipped) == ["refs/remotes/origin/hotfix-1", "refs/remotes/origin/qa-only"]
    assert settings.deletion_log_path.read_text(encoding="utf-8").startswith(
        "branch_name,full_commit_id,deletion_time_iso\n"
    )


def test_second_run_logs_nothing(reported_repo) -> None:
    _, repo, settings = reported_repo
    log = DeletionLog(settings.deletion_log_path)
    delete_clean_branches(repo, settings.report_input_path, log)
    before = settings.deletion_log_path.read_text(encoding="utf-8")

    result = delete_clean_branches(repo, settings.report_input_path, log)

    assert result.logged == []
    assert sorted(result.not_found) == ["refs/remotes/origin/old-feature", "refs/remotes/origin/wip-spike"]
    assert settings.deletion_log_path.read_text(encoding="utf-8") == before


def test_only_tracking_ref_present_logs_once(reported_repo) -> None:
    builder, repo, settings = reported_repo
    builder.git("branch", "-D", "wip-spike")
    log = DeletionLog(settings.deletion_log_path)

    delete_clean_branches(repo, settings.report_input_path, log)

    assert [entry.branch_name for entry in log.entries()].count("wip-spike") == 1


def test_dry_run_changes_nothing(reported_repo) -> None:
    builder, repo, settings = reported_repo
    log = DeletionLog(settings.deletion_log_path)

    result = delete_clean_branches(repo, settings.report_input_path, log, dry_run=True)

    assert len(result.planned) == 4
    assert builder.ref_exists("refs/heads/old-feature")
    assert builder.ref_exists("refs/remotes/origin/wip-spike")
    assert not log.exists()


def test_columns_located_by_header_name(fake_repo, tmp_path: Path) -> None:
    fake_repo.add_ref("refs/heads/feature/x", "c1")
    fake_repo.add_ref("refs/remotes/origin/feature/x", "c1")
    fake_repo.add_ref("refs/remotes/origin/feature/y", "c2")
    report = _write_csv(
        tmp_path / "branches.csv",
        """
        recommendation,merged_into_main,commit_full,notes,short_name_without_remote,full_ref,merged_into_staging
        "clean","yes","c1","","feature/x","refs/remotes/origin/feature/x","no"
        "review","no","c2","","feature/y","refs/remotes/origin/feature/y","yes"

        Repository Summary - demo
        Total Remote References: 2
        """,
    )
    log = DeletionLog(tmp_path / "deleted_branches_log.csv")

    delete_clean_branches(fake_repo, report, log)

    assert fake_repo.calls == [
        ("branch -D", "feature/x"),
        ("update-ref -d", "refs/remotes/origin/feature/x"),
    ]
    assert [(entry.branch_name, entry.full_commit_id) for entry in log.entries()] == [
        ("feature/x", "c1"),
        ("feature/x", "c1"),
    ]
    assert "refs/remotes/origin/feature/y" in fake_repo.refs


def test_rows_outside_remote_tracking_refs_ignored(fake_repo, tmp_path: Path) -> None:
    fake_repo.add_ref("refs/heads/topic", "c1")
    report = _write_csv(
        tmp_path / "branches.csv",
        """
        full_ref,short_name_without_remote,commit_full,recommendation
        "refs/heads/topic","topic","c1","clean"
        "refs/remotes/origin/trunc","trunc","c2
        """,
    )
    log = DeletionLog(tmp_path / "log.csv")

    result = delete_clean_branches(fake_repo, report, log)

    assert fake_repo.calls == []
    assert result.logged == []


def test_failed_deletion_reported_and_run_continues(fake_repo, tmp_path: Path) -> None:
    fake_repo.add_ref("refs/heads/locked", "c1")
    fake_repo.add_ref("refs/remotes/origin/locked", "c1")
    fake_repo.add_ref("refs/remotes/origin/other", "c2")
    fake_repo.failing.add("locked")
    report = _write_csv(
        tmp_path / "branches.csv",
        """
        full_ref,short_name_without_remote,commit_full,recommendation
        "refs/remotes/origin/locked","locked","c1","clean"
        "refs/remotes/origin/other","other","c2","clean"
        """,
    )
    log = DeletionLog(tmp_path / "log.csv")

    result = delete_clean_branches(fake_repo, report, log)

    assert result.failures == ["refs/heads/locked"]
    assert [(entry.branch_name) for entry in log.entries()] == ["locked", "other"]
    assert "refs/heads/locked" in fake_repo.refs


def test_missing_column_is_fatal(fake_repo, tmp_path: Path) -> None:
    report = _write_csv(
        tmp_path / "branches.csv",
        """
        full_ref,short_name_without_remote,commit_full
        "refs/remotes/origin/a","a","c1"
        """,
    )
    with pytest.raises(MissingColumnError, match="recommendation"):
        delete_clean_branches(fake_repo, report, DeletionLog(tmp_path / "log.csv"))


def test_missing_report_is_fatal(fake_repo, tmp_path: Path) -> None:
    with pytest.raises(MissingInputError):
        delete_clean_branches(fake_repo, tmp_path / "absent.csv", DeletionLog(tmp_path / "log.csv"))


def test_cli_exit_codes(repo_builder, tmp_path: Path) -> None:
    repo_builder.commit_file("README.md", "root", "init")
    assert delete_local.main(["--repo", str(repo_builder.root)]) == 1

    _write_csv(
        repo_builder.root / "git_reports" / "branches.csv",
        """
        full_ref,short_name_without_remote,recommendation
        "refs/remotes/origin/a","a","clean"
        """,
    )
    assert delete_local.main(["--repo", str(repo_builder.root)]) == 1

    plain_dir = tmp_path / "plain"
    plain_dir.mkdir()
    assert delete_local.main(["--repo", str(plain_dir)]) == delete_local.EXIT_NOT_A_REPO


def test_cli_runs_against_report(reported_repo) -> None:
    builder, _, settings = reported_repo

    assert delete_local.main(["--repo", str(builder.root)]) == 0

    assert not builder.ref_exists("refs/heads/old-feature")
    assert len(DeletionLog(settings.deletion_log_path).entries()) == 4
