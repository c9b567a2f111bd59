"""
Detail fetcher: issue, pull request and release listings per repository.
"""

from rich.console import Console

from maintainer_dashboard.concurrency import run_bounded
from maintainer_dashboard.github import (
    REPO_DETAIL_QUERY,
    GraphQLExecutor,
    get_author_login,
    get_repository_node,
)
from maintainer_dashboard.models import (
    FetchWarning,
    RepoDetail,
    RepoIssue,
    RepoOverview,
    RepoPR,
    RepoRelease,
    split_repo_name,
)

console = Console()


def needs_detail(overview: RepoOverview) -> bool:
    """Only repositories with open issues or PRs get a detail document."""
    return overview.open_issues > 0 or overview.open_prs > 0


async def fetch_repo_detail(
    client: GraphQLExecutor, overview: RepoOverview
) -> RepoDetail:
    """
    Fetch the newest open issues and PRs and the latest releases of a repository.

    Raises:
        ValueError: If the repository is missing or inaccessible.
        httpx.HTTPStatusError: If the GitHub API returns an error.
    """
    owner, name = split_repo_name(overview.name)
    data = await client.execute(REPO_DETAIL_QUERY, {"owner": owner, "name": name})
    repo = get_repository_node(data, overview.name)

    issues = [
        RepoIssue(
            title=node.get("title", ""),
            author=get_author_login(node),
            labels=[
                label["name"]
                for label in (node.get("labels") or {}).get("nodes") or []
                if label
            ],
            created_at=node.get("createdAt", ""),
            comment_count=(node.get("comments") or {}).get("totalCount", 0),
            url=node.get("url", ""),
        )
        for node in (repo.get("issues") or {}).get("nodes") or []
        if node
    ]
    pull_requests = [
        RepoPR(
            title=node.get("title", ""),
            author=get_author_login(node),
            created_at=node.get("createdAt", ""),
            review_count=(node.get("reviews") or {}).get("totalCount", 0),
            url=node.get("url", ""),
        )
        for node in (repo.get("pullRequests") or {}).get("nodes") or []
        if node
    ]
    releases = [
        RepoRelease(
            tag_name=node.get("tagName", ""),
            published_at=node.get("publishedAt"),
            url=node.get("url", ""),
        )
        for node in (repo.get("releases") or {}).get("nodes") or []
        if node
    ]

    return RepoDetail(
        name=overview.name,
        description=overview.description,
        language=overview.language,
        issues=issues,
        pull_requests=pull_requests,
        releases=releases,
    )


async def fetch_details(
    client: GraphQLExecutor,
    overviews: list[RepoOverview],
    concurrency: int = 1,
    verbose: bool = False,
) -> tuple[list[RepoDetail], list[FetchWarning]]:
    """
    Fetch detail documents for every overview that has open issues or PRs.

    A failing repository is reported as a warning and skipped.
    """
    warnings: list[FetchWarning] = []

    async def fetch_one(overview: RepoOverview) -> RepoDetail | None:
        if verbose:
            console.print(f"  [dim]Fetching detail for {overview.name}...[/dim]")
        try:
            return await fetch_repo_detail(client, overview)
        except Exception as e:
            warnings.append(FetchWarning(overview.name, f"Failed to fetch detail - {e}"))
            console.print(
                f"  [yellow]⚠️  {overview.name}: failed to fetch detail - {e}[/yellow]"
            )
            return None

    with_activity = [overview for overview in overviews if needs_detail(overview)]
    results = await run_bounded(with_activity, fetch_one, concurrency)
    return [detail for detail in results if detail is not None], warnings
