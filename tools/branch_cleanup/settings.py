"""Run settings for the branch cleanup passes.

Each value is resolved from, in order: the command line, an environment
variable, the repository's ``.branch-cleanup.toml`` and finally the built-in
default.
"""
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, Optional, Sequence, Tuple

try:
    import tomllib  # Python 3.11+
except ModuleNotFoundError:  # pragma: no cover - fallback for older interpreters
    import tomli as tomllib  # type: ignore

from tools.branch_cleanup.errors import ConfigError


DEFAULT_REMOTE = "origin"
DEFAULT_ENVIRONMENT_BRANCHES: Tuple[str, ...] = ("dev", "qa", "prod", "main")
DEFAULT_REVIEW_DAYS = 14
DEFAULT_REPORTS_DIR = Path("git_reports")
DEFAULT_REPORT_BASE_NAME = "remote_env_report"

REPORT_INPUT_NAME = "branches.csv"
DELETION_LOG_NAME = "deleted_branches_log.csv"
CONFIG_FILE_NAME = ".branch-cleanup.toml"

ENV_CONFIG = "BRANCH_CLEANUP_CONFIG"
ENV_REMOTE = "BRANCH_CLEANUP_REMOTE"
ENV_ENVIRONMENT_BRANCHES = "BRANCH_CLEANUP_ENV_BRANCHES"
ENV_REVIEW_DAYS = "BRANCH_CLEANUP_REVIEW_DAYS"
ENV_REPORTS_DIR = "BRANCH_CLEANUP_REPORTS_DIR"


@dataclass(frozen=True)
class CleanupSettings:
    remote: str
    environment_branches: Tuple[str, ...]
    review_days: int
    reports_dir: Path

    @property
    def report_input_path(self) -> Path:
        return self.reports_dir / REPORT_INPUT_NAME

    @property
    def deletion_log_path(self) -> Path:
        return self.reports_dir / DELETION_LOG_NAME


def load_config(repo: Path) -> Dict[str, Any]:
    override = os.getenv(ENV_CONFIG)
    config_path = Path(override) if override else repo / CONFIG_FILE_NAME
    if not config_path.exists():
        if override:
            raise ConfigError(f"config file not found: {config_path}")
        return {}
    try:
        with config_path.open("rb") as fp:
            return tomllib.load(fp)
    except tomllib.TOMLDecodeError as exc:
        raise ConfigError(f"{config_path} is not valid TOML: {exc}") from exc


def _parse_review_days(value: Any) -> int:
    if isinstance(value, bool):
        raise ConfigError(f"review days must be an integer, got {value!r}")
    try:
        days = int(value)
    except (TypeError, ValueError) as exc:
        raise ConfigError(f"review days must be an integer, got {value!r}") from exc
    if days < 0:
        raise ConfigError(f"review days must not be negative, got {days}")
    return days


def _parse_environment_branches(value: Any) -> Tuple[str, ...]:
    if isinstance(value, str):
        names = [part.strip() for part in value.split(",")]
    elif isinstance(value, (list, tuple)):
        names = [str(part).strip() for part in value]
    else:
        raise ConfigError(f"environment branches must be a list, got {value!r}")
    names = [name for name in names if name]
    if not names:
        raise ConfigError("at least one environment branch must be configured")
    return tuple(dict.fromkeys(names))


def _pick(cli_value: Any, env_name: str, config: Dict[str, Any], key: str, default: Any) -> Any:
    if cli_value is not None:
        return cli_value
    env_value = os.getenv(env_name)
    if env_value:
        return env_value
    if config.get(key) is not None:
        return config[key]
    return default


def load_settings(
    repo: Path,
    *,
    remote: Optional[str] = None,
    review_days: Optional[int] = None,
    environment_branches: Optional[Sequence[str]] = None,
    reports_dir: Optional[Path] = None,
) -> CleanupSettings:
    config = load_config(repo)
    resolved_remote = str(_pick(remote, ENV_REMOTE, config, "remote", DEFAULT_REMOTE)).strip()
    if not resolved_remote:
        raise ConfigError("remote name must not be empty")
    resolved_reports = Path(_pick(reports_dir, ENV_REPORTS_DIR, config, "reports_dir", DEFAULT_REPORTS_DIR))
    if not resolved_reports.is_absolute():
        resolved_reports = repo / resolved_reports
    return CleanupSettings(
        remote=resolved_remote,
        environment_branches=_parse_environment_branches(
            _pick(environment_branches, ENV_ENVIRONMENT_BRANCHES, config, "environment_branches", DEFAULT_ENVIRONMENT_BRANCHES)
        ),
        review_days=_parse_review_days(_pick(review_days, ENV_REVIEW_DAYS, config, "review_days", DEFAULT_REVIEW_DAYS)),
        reports_dir=resolved_reports,
    )
