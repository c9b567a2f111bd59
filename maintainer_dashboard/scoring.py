"""
Attention scoring and overview assembly.
"""

from datetime import datetime

from maintainer_dashboard.config import DEFAULT_ATTENTION_WEIGHTS
from maintainer_dashboard.models import RepoOverview, RepoSummary
from maintainer_dashboard.overview import release_stale_days


def compute_attention_score(
    open_issues: int,
    open_prs: int,
    release_stale_days: float,
    unengaged_count: int,
    weights: dict[str, float] | None = None,
) -> float:
    """
    Computes how urgently a repository needs maintainer attention.

    Score = issues × w_issues + prs × w_prs
            + release staleness (days) × w_release_staleness
            + unengaged items × w_unengaged

    Default weights are issues=1, prs=2, release_staleness=0.5, unengaged=3,
    so open PRs and unanswered items weigh more than raw backlog size.

    Args:
        open_issues: Open issue count.
        open_prs: Open pull request count.
        release_stale_days: Days since the latest release.
        unengaged_count: Unengaged issues and PRs.
        weights: Optional weight overrides (see config.get_attention_weights).

    Returns:
        Score rounded to one decimal place. Higher needs more attention.
    """
    w = {**DEFAULT_ATTENTION_WEIGHTS, **(weights or {})}
    score = (
        open_issues * w["issues"]
        + open_prs * w["prs"]
        + release_stale_days * w["release_staleness"]
        + unengaged_count * w["unengaged"]
    )
    return round(score, 1)


def build_overview(
    summary: RepoSummary,
    unengaged_count: int,
    now: datetime,
    weights: dict[str, float] | None = None,
) -> RepoOverview:
    stale_days = release_stale_days(summary.last_release_at, now)
    return RepoOverview(
        name=summary.name,
        description=summary.description,
        language=summary.language,
        open_issues=summary.open_issues,
        open_prs=summary.open_prs,
        last_release=summary.last_release_at,
        last_release_tag=summary.last_release_tag,
        commits_since_release=summary.commits_since_release,
        last_push=summary.pushed_at,
        attention_score=compute_attention_score(
            summary.open_issues,
            summary.open_prs,
            stale_days,
            unengaged_count,
            weights,
        ),
        unengaged_count=unengaged_count,
    )


def build_overviews(
    summaries: list[RepoSummary],
    unengaged_by_repo: dict[str, int],
    now: datetime,
    weights: dict[str, float] | None = None,
) -> list[RepoOverview]:
    """
    Score every fetched repository and sort highest attention first.

    unengaged_by_repo is keyed by lower-cased full name. Ties keep fetch order.
    """
    overviews = [
        build_overview(
            summary, unengaged_by_repo.get(summary.name.lower(), 0), now, weights
        )
        for summary in summaries
    ]
    overviews.sort(key=lambda overview: overview.attention_score, reverse=True)
    return overviews
