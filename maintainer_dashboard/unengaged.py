"""
Unengaged-item scanner.

Finds open issues without comments and open pull requests without reviews
that are older than the grace window, using GitHub issue search.
"""

import asyncio
from collections import Counter
from datetime import datetime, timedelta
from typing import Any

from rich.console import Console

from maintainer_dashboard.batch import EPOCH, parse_timestamp
from maintainer_dashboard.github import (
    UNENGAGED_ISSUES_QUERY,
    UNENGAGED_PRS_QUERY,
    GraphQLExecutor,
    get_author_login,
)
from maintainer_dashboard.models import FetchWarning, UrgentItem

console = Console()

# GitHub rejects search strings longer than this.
MAX_SEARCH_QUERY_LENGTH = 256

SEARCH_WARNING_REPO = "search"

_SCANS = {
    "issue": ("is:issue is:open comments:0", UNENGAGED_ISSUES_QUERY),
    "pr": ("is:pr is:open review:none", UNENGAGED_PRS_QUERY),
}


def unengaged_cutoff(now: datetime, grace_days: int = 3) -> datetime:
    """
    Items created at or after the returned moment are too young to be flagged.

    Raises:
        ValueError: If grace_days is negative.
    """
    if grace_days < 0:
        raise ValueError(f"Grace window must not be negative, got {grace_days} days.")
    return now - timedelta(days=grace_days)


def format_search_timestamp(moment: datetime) -> str:
    return moment.strftime("%Y-%m-%dT%H:%M:%SZ")


def build_search_queries(
    repo_names: list[str], qualifiers: str, cutoff: datetime
) -> list[str]:
    """
    Build search strings covering repo_names, split to respect the length limit.

    Returns an empty list for an empty repository set, since an unscoped
    search would match all of GitHub.
    """
    suffix = f"{qualifiers} created:<{format_search_timestamp(cutoff)}"
    queries: list[str] = []
    chunk: list[str] = []

    for name in repo_names:
        qualifier = f"repo:{name}"
        candidate = " ".join([*chunk, qualifier, suffix])
        if chunk and len(candidate) > MAX_SEARCH_QUERY_LENGTH:
            queries.append(" ".join([*chunk, suffix]))
            chunk = []
        chunk.append(qualifier)

    if chunk:
        queries.append(" ".join([*chunk, suffix]))
    return queries


async def paginate_search(
    client: GraphQLExecutor, query: str, search_query: str
) -> list[dict[str, Any]]:
    """Collect the nodes of every page of a search."""
    nodes: list[dict[str, Any]] = []
    cursor: str | None = None

    while True:
        data = await client.execute(
            query, {"searchQuery": search_query, "cursor": cursor}
        )
        search = data["search"]
        nodes.extend(node for node in search.get("nodes") or [] if node)

        page_info = search.get("pageInfo") or {}
        cursor = page_info.get("endCursor")
        # Without a cursor the next request would repeat the first page.
        if not page_info.get("hasNextPage") or not cursor:
            break

    return nodes


def _to_urgent_item(node: dict[str, Any], kind: str) -> UrgentItem:
    return UrgentItem(
        repo=node["repository"]["nameWithOwner"],
        number=node["number"],
        title=node.get("title", ""),
        author=get_author_login(node),
        created_at=node["createdAt"],
        url=node.get("url", ""),
        type=kind,
    )


async def scan_kind(
    client: GraphQLExecutor, repo_names: list[str], cutoff: datetime, kind: str
) -> list[UrgentItem]:
    """
    Scan one kind ("issue" or "pr") across all repositories.

    Raises:
        httpx.HTTPError: If any page of any search fails.
    """
    qualifiers, query = _SCANS[kind]
    items: list[UrgentItem] = []

    for search_query in build_search_queries(repo_names, qualifiers, cutoff):
        for node in await paginate_search(client, query, search_query):
            item = _to_urgent_item(node, kind)
            created_at = parse_timestamp(item.created_at)
            # Search date filters are coarse; the grace window is enforced here.
            if created_at is None or created_at >= cutoff:
                continue
            items.append(item)

    return items


async def scan_unengaged_items(
    client: GraphQLExecutor, repo_names: list[str], cutoff: datetime
) -> tuple[list[UrgentItem], list[FetchWarning]]:
    """
    Find unengaged issues and pull requests created before cutoff.

    The issue and PR scans run concurrently. A failing scan is reported as a
    warning and contributes no items; the other scan is unaffected.

    Returns:
        Items sorted oldest first, and warnings for failed scans.
    """
    warnings: list[FetchWarning] = []

    async def guarded_scan(kind: str) -> list[UrgentItem]:
        try:
            return await scan_kind(client, repo_names, cutoff, kind)
        except Exception as e:
            label = "issues" if kind == "issue" else "pull requests"
            warnings.append(
                FetchWarning(
                    SEARCH_WARNING_REPO, f"Failed to scan unengaged {label} - {e}"
                )
            )
            console.print(
                f"  [yellow]⚠️  Failed to scan unengaged {label} - {e}[/yellow]"
            )
            return []

    issues, prs = await asyncio.gather(guarded_scan("issue"), guarded_scan("pr"))

    items = [*issues, *prs]
    items.sort(key=lambda item: parse_timestamp(item.created_at) or EPOCH)
    return items, warnings


def find_unmatched_items(
    items: list[UrgentItem], repo_names: list[str]
) -> list[FetchWarning]:
    """
    Warn about scanned items whose repository is not one of repo_names.

    GitHub reports the current nameWithOwner, so items of a renamed or
    transferred repository land here while the registry has its old name.
    """
    known = {name.lower() for name in repo_names}
    unmatched = Counter(item.repo for item in items if item.repo.lower() not in known)
    return [
        FetchWarning(
            repo,
            f"{count} unengaged item(s) matched no tracked repository; "
            "it may have been renamed or transferred",
        )
        for repo, count in unmatched.items()
    ]


def count_unengaged_by_repo(items: list[UrgentItem]) -> Counter:
    """Number of unengaged items per repository, keyed by lower-cased full name."""
    return Counter(item.repo.lower() for item in items)
