"""
The refresh pipeline: select, fetch, score and persist dashboard data.
"""

from datetime import datetime, timedelta, timezone
from pathlib import Path
from typing import NamedTuple

from rich.console import Console

from maintainer_dashboard.batch import is_full_refresh, select_repos
from maintainer_dashboard.config import DEFAULT_UNENGAGED_DAYS
from maintainer_dashboard.detail import fetch_details
from maintainer_dashboard.github import GraphQLExecutor
from maintainer_dashboard.models import RunResult
from maintainer_dashboard.overview import fetch_overviews
from maintainer_dashboard.registry import (
    load_refresh_status,
    load_registry,
    save_refresh_status,
    update_refresh_status,
)
from maintainer_dashboard.scoring import build_overviews
from maintainer_dashboard.snapshot import write_detail_snapshot, write_overview_snapshots
from maintainer_dashboard.unengaged import (
    count_unengaged_by_repo,
    find_unmatched_items,
    scan_unengaged_items,
    unengaged_cutoff,
)

console = Console()


class RunOptions(NamedTuple):
    """Parameters of one pipeline run."""

    max_age: timedelta | None = None
    batch_size: int | None = None
    force_include: tuple[str, ...] = ()
    concurrency: int = 1
    unengaged_days: int = DEFAULT_UNENGAGED_DAYS
    weights: dict[str, float] | None = None
    verbose: bool = False

    @property
    def full_refresh(self) -> bool:
        return is_full_refresh(self.max_age, self.batch_size)


def format_timestamp(moment: datetime) -> str:
    """ISO 8601 UTC timestamp with a trailing Z, to the second."""
    return (
        moment.astimezone(timezone.utc)
        .isoformat(timespec="seconds")
        .replace("+00:00", "Z")
    )


async def run_pipeline(
    client: GraphQLExecutor,
    registry_path: Path,
    data_dir: Path,
    options: RunOptions | None = None,
    now: datetime | None = None,
) -> RunResult:
    """
    Run one refresh of the dashboard data.

    Args:
        client: GraphQL executor used for every API call.
        registry_path: Registry document listing tracked repositories.
        data_dir: Directory holding the snapshot and refresh-state documents.
        options: Batch and tuning parameters (defaults to a full refresh).
        now: Run start time (defaults to the current UTC time).

    Returns:
        What the run fetched, computed and warned about. When no repository
        needs refreshing, nothing is written and the result is empty.

    Raises:
        RegistryError: If the registry cannot be loaded.
    """
    options = options or RunOptions()
    now = now or datetime.now(timezone.utc)
    fetched_at = format_timestamp(now)

    registry = load_registry(registry_path)
    refresh_status = load_refresh_status(data_dir)
    active_count = sum(1 for entry in registry if entry.active)
    console.print(
        f"Loaded registry with {len(registry)} repos ({active_count} active)"
    )

    selected = select_repos(
        registry,
        refresh_status,
        max_age=options.max_age,
        batch_size=options.batch_size,
        force_include=list(options.force_include),
        now=now,
    )
    if not selected:
        if active_count == 0:
            console.print("[yellow]Registry has no active repositories.[/yellow]")
        else:
            console.print("No repos need refreshing based on current criteria.")
        return RunResult(None, [], [], [], [], [])

    console.print(f"\nProcessing {len(selected)} repos...")

    console.print("\n[bold cyan]--- Fetching repo overviews ---[/bold cyan]")
    summaries, warnings = await fetch_overviews(
        client, selected, options.concurrency, options.verbose
    )
    console.print(f"Successfully fetched {len(summaries)}/{len(selected)} repos")

    cutoff = unengaged_cutoff(now, options.unengaged_days)
    console.print(
        f"\n[bold cyan]--- Fetching unengaged items (older than {cutoff.date()}) ---[/bold cyan]"
    )
    scanned_names = [summary.name for summary in summaries]
    urgent_items, scan_warnings = await scan_unengaged_items(
        client, scanned_names, cutoff
    )
    warnings.extend(scan_warnings)
    for warning in find_unmatched_items(urgent_items, scanned_names):
        console.print(f"  [yellow]⚠️  {warning.repo}: {warning.message}[/yellow]")
        warnings.append(warning)
    issue_count = sum(1 for item in urgent_items if item.type == "issue")
    console.print(
        f"Found {issue_count} unengaged issues and "
        f"{len(urgent_items) - issue_count} unengaged PRs"
    )

    overviews = build_overviews(
        summaries, count_unengaged_by_repo(urgent_items), now, options.weights
    )
    overview_path, urgent_path = write_overview_snapshots(
        data_dir, overviews, urgent_items, fetched_at
    )
    console.print(f"Wrote {len(overviews)} repos to {overview_path}")
    console.print(f"Wrote {len(urgent_items)} urgent items to {urgent_path}")

    console.print("\n[bold cyan]--- Fetching repo details ---[/bold cyan]")
    details, detail_warnings = await fetch_details(
        client, overviews, options.concurrency, options.verbose
    )
    warnings.extend(detail_warnings)
    for detail in details:
        write_detail_snapshot(data_dir, detail)
    console.print(f"Wrote detail data for {len(details)} repos")

    updated_status = update_refresh_status(
        refresh_status,
        fetched_at,
        overview_repos=[summary.name for summary in summaries],
        detail_repos=[detail.name for detail in details],
        full_refresh=options.full_refresh,
    )
    save_refresh_status(data_dir, updated_status)
    console.print("Updated refresh status")

    return RunResult(
        fetched_at=fetched_at,
        selected=selected,
        overviews=overviews,
        urgent_items=urgent_items,
        details=details,
        warnings=warnings,
    )
