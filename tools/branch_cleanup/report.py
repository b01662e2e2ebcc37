#!/usr/bin/env python3
"""Generate the remote branch report without touching any ref.

The report scans only locally cached remote-tracking refs (no fetch), checks
each one against every configured environment branch, and writes a
timestamped CSV with one row per branch followed by a summary section.  The
``recommendation`` column (clean / review / critical) drives the local
deletion pass.
"""
from __future__ import annotations

import argparse
import datetime as _dt
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, List, Optional, Sequence

from tools.branch_cleanup.classify import (
    CLEAN,
    CRITICAL,
    MERGED,
    NO_COMMIT,
    RECOMMENDATIONS,
    REVIEW,
    UNKNOWN_NO_REF,
    commit_age_days,
    merge_statuses,
    recommend,
)
from tools.branch_cleanup.collector import (
    BranchRef,
    EnvironmentRef,
    collect_branch_refs,
    resolve_environment_refs,
    resolve_primary_ref,
)
from tools.branch_cleanup.csvio import plain_writer, quoted_writer
from tools.branch_cleanup.errors import BranchCleanupError, NotARepositoryError
from tools.branch_cleanup.gitcli import GitRepository
from tools.branch_cleanup.logger import Logger
from tools.branch_cleanup.settings import DEFAULT_REPORT_BASE_NAME, CleanupSettings, load_settings


NOTE_NO_COMMIT = "no-commit-found"
TIMESTAMP_FORMAT = "%Y-%m-%d_%H-%M-%S"

EXIT_NOT_A_REPO = 2


@dataclass(frozen=True)
class ReportRow:
    branch: BranchRef
    merge_statuses: Dict[str, str]
    notes: str
    recommendation: str
    commit_age_days: Optional[int]
    last_activity_commits: Optional[int]

    def to_fields(self) -> List[str]:
        return [
            self.branch.full_ref,
            self.branch.short_name,
            self.branch.commit_id,
            self.branch.author,
            self.branch.committed_at,
            *self.merge_statuses.values(),
            self.notes,
            self.recommendation,
            _optional_int(self.commit_age_days),
            _optional_int(self.last_activity_commits),
        ]


@dataclass
class ScanSummary:
    environment_branches: Sequence[str]
    total_refs: int = 0
    refs_with_no_commit: int = 0
    merged_counts: Dict[str, int] = field(default_factory=dict)
    unresolved_counts: Dict[str, int] = field(default_factory=dict)
    no_commit_counts: Dict[str, int] = field(default_factory=dict)
    recommendation_counts: Dict[str, int] = field(default_factory=dict)
    earliest_commit: str = ""
    latest_commit: str = ""

    def __post_init__(self) -> None:
        for env in self.environment_branches:
            self.merged_counts.setdefault(env, 0)
            self.unresolved_counts.setdefault(env, 0)
            self.no_commit_counts.setdefault(env, 0)
        for recommendation in RECOMMENDATIONS:
            self.recommendation_counts.setdefault(recommendation, 0)

    def record(self, row: ReportRow) -> None:
        self.total_refs += 1
        if not row.branch.commit_id:
            self.refs_with_no_commit += 1
        for env, status in row.merge_statuses.items():
            if status == MERGED:
                self.merged_counts[env] += 1
            elif status == UNKNOWN_NO_REF:
                self.unresolved_counts[env] += 1
            elif status == NO_COMMIT:
                self.no_commit_counts[env] += 1
        self.recommendation_counts[row.recommendation] += 1
        committed_at = row.branch.committed_at
        if committed_at:
            if not self.earliest_commit or committed_at < self.earliest_commit:
                self.earliest_commit = committed_at
            if not self.latest_commit or committed_at > self.latest_commit:
                self.latest_commit = committed_at


@dataclass
class BranchReport:
    repo_name: str
    remote: str
    environments: List[EnvironmentRef]
    primary_ref: Optional[str]
    generated_at: _dt.datetime
    rows: List[ReportRow]
    summary: ScanSummary

    @property
    def environment_branches(self) -> List[str]:
        return [env.name for env in self.environments]


def _optional_int(value: Optional[int]) -> str:
    return "" if value is None else str(value)


def report_header(environment_branches: Sequence[str]) -> List[str]:
    return [
        "full_ref",
        "short_name_without_remote",
        "commit_full",
        "author",
        "date_iso",
        *(f"merged_into_{env}" for env in environment_branches),
        "notes",
        "recommendation",
        "commit_age_days",
        "last_activity_commits",
    ]


def build_row(
    repo: GitRepository,
    branch: BranchRef,
    environments: Sequence[EnvironmentRef],
    review_days: int,
    now: _dt.datetime,
) -> ReportRow:
    statuses = merge_statuses(repo, branch, environments)
    age_days = commit_age_days(branch.committed_at, now)
    last_activity = repo.count_commits(branch.full_ref) if branch.commit_id else None
    return ReportRow(
        branch=branch,
        merge_statuses=statuses,
        notes="" if branch.commit_id else NOTE_NO_COMMIT,
        recommendation=recommend(branch.commit_id, statuses, age_days, review_days),
        commit_age_days=age_days,
        last_activity_commits=last_activity,
    )


def scan_branches(
    repo: GitRepository,
    settings: CleanupSettings,
    now: Optional[_dt.datetime] = None,
    logger: Optional[Logger] = None,
) -> BranchReport:
    now = now or _dt.datetime.now(_dt.timezone.utc)
    environments = resolve_environment_refs(repo, settings.remote, settings.environment_branches)
    primary_ref = resolve_primary_ref(repo, settings.remote)
    if logger:
        for env in environments:
            if env.resolved:
                logger.info(f"Environment branch {env.name} -> {env.ref}")
            else:
                logger.warn(f"Environment branch {env.name} not found locally or on {settings.remote}")
        logger.info(f"Primary branch: {primary_ref or 'not found'}")

    summary = ScanSummary(environment_branches=settings.environment_branches)
    rows: List[ReportRow] = []
    for branch in collect_branch_refs(repo, settings.remote, settings.environment_branches):
        row = build_row(repo, branch, environments, settings.review_days, now)
        summary.record(row)
        rows.append(row)
    if logger:
        log_scan_details(summary, logger)

    return BranchReport(
        repo_name=repo.name,
        remote=settings.remote,
        environments=environments,
        primary_ref=primary_ref,
        generated_at=now,
        rows=rows,
        summary=summary,
    )


def log_scan_details(summary: ScanSummary, logger: Logger) -> None:
    """Log the counts that the CSV summary block leaves out."""
    if summary.refs_with_no_commit:
        logger.warn(f"{summary.refs_with_no_commit} refs did not resolve to a commit")
    for env in summary.environment_branches:
        if summary.unresolved_counts[env]:
            logger.warn(f"{env}: {summary.unresolved_counts[env]} refs checked against a missing branch")
        if summary.no_commit_counts[env]:
            logger.warn(f"{env}: {summary.no_commit_counts[env]} refs skipped without a commit")
    if summary.earliest_commit:
        logger.info(f"Commit dates range from {summary.earliest_commit} to {summary.latest_commit}")


def render_summary(report: BranchReport) -> List[str]:
    summary = report.summary
    lines = [
        "",
        f"Repository Summary - {report.repo_name}",
        f"Total Remote References: {summary.total_refs}",
        "",
        "Environment Merge Status",
    ]
    for env in report.environment_branches:
        lines.append(f"{env}: {summary.merged_counts[env]} merged")
    lines.extend(
        [
            "",
            "Recommendations",
            f"Clean: {summary.recommendation_counts[CLEAN]} references",
            f"Review: {summary.recommendation_counts[REVIEW]} references",
            f"Critical: {summary.recommendation_counts[CRITICAL]} references",
        ]
    )
    return lines


def report_path(reports_dir: Path, base_name: str, generated_at: _dt.datetime) -> Path:
    return reports_dir / f"{base_name}_{generated_at.strftime(TIMESTAMP_FORMAT)}.csv"


def write_report(report: BranchReport, out_path: Path) -> Path:
    out_path.parent.mkdir(parents=True, exist_ok=True)
    with out_path.open("w", encoding="utf-8", newline="") as fp:
        plain_writer(fp).writerow(report_header(report.environment_branches))
        writer = quoted_writer(fp)
        for row in report.rows:
            writer.writerow(row.to_fields())
        fp.write("\n".join(render_summary(report)) + "\n")
    return out_path


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Generate a CSV report of remote branches with cleanup recommendations.")
    parser.add_argument("output_base_name", nargs="?", default=DEFAULT_REPORT_BASE_NAME, help="Base name of the report file (default: %(default)s)")
    parser.add_argument("remote", nargs="?", default=None, help="Remote whose tracking refs are scanned (default: origin)")
    parser.add_argument("review_days", nargs="?", type=int, default=None, help="Merged branches younger than this many days need review (default: 14)")
    parser.add_argument("--repo", type=Path, default=Path.cwd(), help="Path inside the git repository (default: current directory)")
    parser.add_argument("--reports-dir", type=Path, default=None, help="Directory for reports (default: git_reports under the repository root)")
    parser.add_argument("--log-file", type=Path, default=None, help="Also append diagnostic output to this file")
    return parser.parse_args(argv)


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    logger = Logger(args.log_file)
    try:
        repo = GitRepository.discover(args.repo.resolve())
        settings = load_settings(
            repo.root,
            remote=args.remote,
            review_days=args.review_days,
            reports_dir=args.reports_dir,
        )
        report = scan_branches(repo, settings, logger=logger)
        out_path = write_report(report, report_path(settings.reports_dir, args.output_base_name, report.generated_at.astimezone()))
    except NotARepositoryError as exc:
        logger.error(str(exc))
        return EXIT_NOT_A_REPO
    except BranchCleanupError as exc:
        logger.error(str(exc))
        return 1
    logger.info(f"Scanned {report.summary.total_refs} refs on {report.remote}")
    logger.info(f"Wrote: {out_path}")
    return 0


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    raise SystemExit(main())
