"""
Overview fetcher: summary metrics for each selected repository.
"""

from datetime import datetime

from rich.console import Console

from maintainer_dashboard.batch import parse_timestamp
from maintainer_dashboard.concurrency import run_bounded
from maintainer_dashboard.github import (
    COMMITS_SINCE_QUERY,
    REPO_OVERVIEW_QUERY,
    GraphQLExecutor,
    get_repository_node,
)
from maintainer_dashboard.models import (
    FetchWarning,
    RepoRegistryEntry,
    RepoSummary,
    split_repo_name,
)

console = Console()

# Staleness used for repositories that have never published a release.
NO_RELEASE_STALE_DAYS = 365


async def fetch_commits_since_release(
    client: GraphQLExecutor, full_name: str, since: str
) -> int:
    """
    Count commits on the default branch since a release was published.

    Best effort: any failure counts as zero commits.
    """
    owner, name = split_repo_name(full_name)
    try:
        data = await client.execute(
            COMMITS_SINCE_QUERY, {"owner": owner, "name": name, "since": since}
        )
        branch = (data.get("repository") or {}).get("defaultBranchRef")
        if not branch:
            return 0
        history = (branch.get("target") or {}).get("history") or {}
        return int(history.get("totalCount", 0))
    except Exception:
        return 0


async def fetch_repo_overview(client: GraphQLExecutor, full_name: str) -> RepoSummary:
    """
    Fetch summary metrics for one repository.

    Args:
        client: GraphQL executor.
        full_name: Repository in "owner/repo" form.

    Returns:
        The repository summary, including commits since the latest release.

    Raises:
        ValueError: If the repository is missing or inaccessible.
        httpx.HTTPStatusError: If the GitHub API returns an error.
    """
    owner, name = split_repo_name(full_name)
    data = await client.execute(REPO_OVERVIEW_QUERY, {"owner": owner, "name": name})
    repo = get_repository_node(data, full_name)

    primary_language = repo.get("primaryLanguage")
    releases = (repo.get("releases") or {}).get("nodes") or []
    latest_release = releases[0] if releases else None

    summary = RepoSummary(
        name=full_name,
        description=repo.get("description"),
        is_archived=bool(repo.get("isArchived", False)),
        language=primary_language.get("name") if primary_language else None,
        open_issues=(repo.get("issues") or {}).get("totalCount", 0),
        open_prs=(repo.get("pullRequests") or {}).get("totalCount", 0),
        last_release_tag=latest_release.get("tagName") if latest_release else None,
        last_release_at=latest_release.get("publishedAt") if latest_release else None,
        pushed_at=repo.get("pushedAt"),
    )

    if summary.last_release_at:
        commits = await fetch_commits_since_release(
            client, full_name, summary.last_release_at
        )
        summary = summary._replace(commits_since_release=commits)

    return summary


def release_stale_days(release_at: str | None, now: datetime) -> int:
    """
    Whole days since the latest release was published.

    Repositories without a release (or with an unparseable date) get
    NO_RELEASE_STALE_DAYS.
    """
    published = parse_timestamp(release_at)
    if published is None:
        return NO_RELEASE_STALE_DAYS
    return max(0, (now - published).days)


async def fetch_overviews(
    client: GraphQLExecutor,
    repos: list[RepoRegistryEntry],
    concurrency: int = 1,
    verbose: bool = False,
) -> tuple[list[RepoSummary], list[FetchWarning]]:
    """
    Fetch overviews for all selected repositories.

    Failures are recorded as warnings and the repository is left out; the
    remaining repositories are still fetched. Results keep selection order.
    """
    warnings: list[FetchWarning] = []

    async def fetch_one(entry: RepoRegistryEntry) -> RepoSummary | None:
        if verbose:
            console.print(f"  [dim]Fetching {entry.name}...[/dim]")
        try:
            summary = await fetch_repo_overview(client, entry.name)
        except Exception as e:
            warnings.append(
                FetchWarning(entry.name, f"Failed to fetch overview - {e}")
            )
            console.print(
                f"  [yellow]⚠️  {entry.name}: failed to fetch overview - {e}[/yellow]"
            )
            return None

        if summary.is_archived and entry.active:
            warnings.append(
                FetchWarning(
                    entry.name, "Repository is archived but marked active in registry"
                )
            )
            console.print(
                f"  [yellow]⚠️  {entry.name}: archived but marked active in registry[/yellow]"
            )
        return summary

    results = await run_bounded(repos, fetch_one, concurrency)
    summaries = [summary for summary in results if summary is not None]
    return summaries, warnings
