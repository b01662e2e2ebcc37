"""Merge classification and the clean/review/critical recommendation."""
from __future__ import annotations

import datetime as _dt
from typing import Dict, Mapping, Optional, Sequence

from tools.branch_cleanup.collector import PRIMARY_BRANCH_NAMES, BranchRef, EnvironmentRef
from tools.branch_cleanup.gitcli import GitRepository


MERGED = "yes"
NOT_MERGED = "no"
UNKNOWN_NO_REF = "unknown-no-ref"
NO_COMMIT = "no-commit"

CLEAN = "clean"
REVIEW = "review"
CRITICAL = "critical"
RECOMMENDATIONS = (CLEAN, REVIEW, CRITICAL)

SECONDS_PER_DAY = 86400


def merge_status(repo: GitRepository, branch: BranchRef, environment: EnvironmentRef) -> str:
    if environment.ref is None:
        return UNKNOWN_NO_REF
    if not branch.commit_id:
        return NO_COMMIT
    if repo.is_ancestor(branch.commit_id, environment.ref):
        return MERGED
    return NOT_MERGED


def merge_statuses(
    repo: GitRepository, branch: BranchRef, environments: Sequence[EnvironmentRef]
) -> Dict[str, str]:
    # Every environment is checked; all statuses end up in the report.
    return {env.name: merge_status(repo, branch, env) for env in environments}


def parse_commit_time(committed_at: str) -> Optional[_dt.datetime]:
    if not committed_at:
        return None
    try:
        parsed = _dt.datetime.fromisoformat(committed_at.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=_dt.timezone.utc)
    return parsed


def commit_age_days(committed_at: str, now: _dt.datetime) -> Optional[int]:
    commit_time = parse_commit_time(committed_at)
    if commit_time is None:
        return None
    # clock skew can date a commit after now
    return max(0, int((now - commit_time).total_seconds() // SECONDS_PER_DAY))


def recommend(
    commit_id: str,
    statuses: Mapping[str, str],
    age_days: Optional[int],
    review_days: int,
) -> str:
    """Return the recommendation for one branch.

    An unresolvable commit is always ``critical``.  A branch merged into
    ``main``/``master`` is ``clean`` unless its last commit is younger than
    ``review_days``; a branch merged only into other environments needs
    ``review``; a branch merged nowhere is ``clean``.  Finally, a ``clean``
    verdict is downgraded to ``review`` whenever an environment branch could
    not be resolved.
    """
    if not commit_id:
        return CRITICAL

    merged_into_primary = any(
        status == MERGED for name, status in statuses.items() if name in PRIMARY_BRANCH_NAMES
    )
    if merged_into_primary:
        if age_days is not None and age_days < review_days:
            recommendation = REVIEW
        else:
            recommendation = CLEAN
    elif any(status == MERGED for status in statuses.values()):
        recommendation = REVIEW
    else:
        recommendation = CLEAN

    if recommendation == CLEAN and UNKNOWN_NO_REF in statuses.values():
        recommendation = REVIEW
    return recommendation
