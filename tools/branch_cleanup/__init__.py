"""Report, delete and restore git branches through a CSV deletion log."""

from .classify import CLEAN, CRITICAL, REVIEW, commit_age_days, merge_status, merge_statuses, recommend
from .collector import BranchRef, EnvironmentRef, collect_branch_refs, resolve_environment_refs
from .deletion_log import DeletionLog, DeletionLogEntry
from .errors import (
    BranchCleanupError,
    ConfigError,
    GitCommandError,
    MissingColumnError,
    MissingInputError,
    NotARepositoryError,
)
from .gitcli import GitRepository
from .report import BranchReport, ReportRow, scan_branches, write_report

__all__ = [
    "BranchCleanupError",
    "BranchRef",
    "BranchReport",
    "CLEAN",
    "CRITICAL",
    "ConfigError",
    "DeletionLog",
    "DeletionLogEntry",
    "EnvironmentRef",
    "GitCommandError",
    "GitRepository",
    "MissingColumnError",
    "MissingInputError",
    "NotARepositoryError",
    "REVIEW",
    "ReportRow",
    "collect_branch_refs",
    "commit_age_days",
    "merge_status",
    "merge_statuses",
    "recommend",
    "resolve_environment_refs",
    "scan_branches",
    "write_report",
]
