"""
Command-line interface for the maintainer dashboard data pipeline.
"""

import asyncio
import functools
from pathlib import Path

import httpx
import typer
from rich.console import Console
from rich.table import Table

from maintainer_dashboard.batch import parse_duration
from maintainer_dashboard.config import (
    get_attention_weights,
    get_concurrency,
    get_data_dir,
    get_registry_path,
    get_unengaged_days,
    set_concurrency,
    set_data_dir,
    set_registry_path,
    set_verify_ssl,
)
from maintainer_dashboard.github import GitHubClient
from maintainer_dashboard.http_client import close_async_http_client
from maintainer_dashboard.models import FetchWarning, RunResult
from maintainer_dashboard.pipeline import RunOptions, run_pipeline
from maintainer_dashboard.registry import (
    RegistryError,
    load_refresh_status,
    load_registry,
)

# --- Typer App ---
app = typer.Typer(help="Refresh the data behind the maintainer attention dashboard.")
console = Console()

SUMMARY_ROWS = 10


def syncify(func):
    """Let typer call an async command."""

    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        return asyncio.run(func(*args, **kwargs))

    return wrapper


def parse_include(values: list[str] | None) -> tuple[str, ...]:
    """Flatten repeated and comma-separated --include values."""
    names: list[str] = []
    for value in values or []:
        names.extend(part.strip() for part in value.split(",") if part.strip())
    return tuple(dict.fromkeys(names))


def display_summary(result: RunResult):
    """Display the highest-attention repositories and run totals."""
    if result.overviews:
        table = Table(title="Repositories needing attention")
        table.add_column("Repository", justify="left", style="cyan", no_wrap=True)
        table.add_column("Score", justify="right", style="magenta")
        table.add_column("Issues", justify="right")
        table.add_column("PRs", justify="right")
        table.add_column("Unengaged", justify="right")
        table.add_column("Last release", justify="left")

        for overview in result.overviews[:SUMMARY_ROWS]:
            unengaged_color = "red" if overview.unengaged_count else "green"
            table.add_row(
                overview.name,
                f"{overview.attention_score:.1f}",
                str(overview.open_issues),
                str(overview.open_prs),
                f"[{unengaged_color}]{overview.unengaged_count}[/{unengaged_color}]",
                overview.last_release_tag or "[dim]never[/dim]",
            )
        console.print(table)

    console.print("\n[bold]Summary[/bold]")
    console.print(f"  Repos processed: {len(result.overviews)}")
    console.print(f"  Detail files written: {len(result.details)}")
    console.print(f"  Urgent items found: {len(result.urgent_items)}")


def display_warnings(warnings: list[FetchWarning]):
    """Print collected warnings. They never change the exit status."""
    if not warnings:
        return
    console.print(f"\n[yellow]Warnings ({len(warnings)}):[/yellow]")
    for warning in warnings:
        console.print(f"  - [{warning.repo}] {warning.message}", markup=False)
    console.print(
        "\n[dim]These warnings are informational and do not affect other repos.[/dim]"
    )


@app.command()
@syncify
async def fetch(
    max_age: str | None = typer.Option(
        None,
        "--max-age",
        help='Skip repositories refreshed more recently than this (e.g. "30m", "2h", "1d").',
    ),
    batch_size: int | None = typer.Option(
        None,
        "--batch-size",
        min=1,
        help="Process at most this many repositories, least recently refreshed first.",
    ),
    include: list[str] | None = typer.Option(
        None,
        "--include",
        help="Repositories (owner/repo, comma-separated or repeated) to refresh regardless of age.",
    ),
    data_dir: Path | None = typer.Option(
        None,
        "--data-dir",
        help="Directory for the generated JSON documents (default: public/data).",
    ),
    registry: Path | None = typer.Option(
        None,
        "--registry",
        help="Registry document listing tracked repositories (default: config/repos.json).",
    ),
    concurrency: int | None = typer.Option(
        None,
        "--concurrency",
        "-w",
        min=1,
        help="Repository requests allowed in flight at once (default: 1, mind GitHub rate limits).",
    ),
    insecure: bool = typer.Option(
        False,
        "--insecure",
        help="Disable SSL certificate verification for HTTPS requests.",
    ),
    verbose: bool = typer.Option(
        False,
        "--verbose",
        "-v",
        help="Print every repository request.",
    ),
) -> None:
    """Fetch repository health data and write the dashboard snapshot."""
    if data_dir:
        set_data_dir(data_dir)
    if registry:
        set_registry_path(registry)
    if concurrency:
        set_concurrency(concurrency)
    set_verify_ssl(not insecure)

    try:
        max_age_delta = parse_duration(max_age) if max_age else None
        weights = get_attention_weights()
        concurrency_limit = get_concurrency()
        unengaged_days = get_unengaged_days()
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    try:
        client = GitHubClient()
    except ValueError as e:
        console.print(f"[bold red]Error:[/bold red] {e}")
        raise typer.Exit(code=1) from None

    options = RunOptions(
        max_age=max_age_delta,
        batch_size=batch_size,
        force_include=parse_include(include),
        concurrency=concurrency_limit,
        unengaged_days=unengaged_days,
        weights=weights,
        verbose=verbose,
    )

    console.print("=" * 60)
    console.print("[bold]Maintainer Dashboard - Data Fetch[/bold]")
    console.print("=" * 60)
    if max_age:
        console.print(f"Max age: {max_age}")
    if batch_size:
        console.print(f"Batch size: {batch_size}")
    if options.force_include:
        console.print(f"Force include: {', '.join(options.force_include)}")

    try:
        result = await run_pipeline(
            client, get_registry_path(), get_data_dir(), options
        )
    except RegistryError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None
    except httpx.HTTPError as e:
        console.print(f"[red]HTTP Error: {e}[/red]")
        raise typer.Exit(code=1) from None
    except Exception as e:
        console.print(f"[red]Failed to fetch data: {e}[/red]")
        raise typer.Exit(code=1) from None
    finally:
        await close_async_http_client()

    if result.skipped:
        return

    display_summary(result)
    display_warnings(result.warnings)


@app.command()
def status(
    data_dir: Path | None = typer.Option(
        None,
        "--data-dir",
        help="Directory for the generated JSON documents (default: public/data).",
    ),
    registry: Path | None = typer.Option(
        None,
        "--registry",
        help="Registry document listing tracked repositories (default: config/repos.json).",
    ),
):
    """Display when each tracked repository was last refreshed."""
    if data_dir:
        set_data_dir(data_dir)
    if registry:
        set_registry_path(registry)

    try:
        entries = load_registry(get_registry_path())
    except RegistryError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(code=1) from None

    refresh_status = load_refresh_status(get_data_dir())
    last_full = refresh_status["meta"].get("lastFullRefresh")

    console.print("[bold cyan]Refresh Status[/bold cyan]")
    console.print(f"  Last full refresh: {last_full or '[yellow]never[/yellow]'}")

    table = Table(show_header=True, header_style="bold magenta")
    table.add_column("Repository", style="cyan")
    table.add_column("Category")
    table.add_column("Active", justify="center")
    table.add_column("Overview")
    table.add_column("Detail")

    for entry in entries:
        timestamps = refresh_status["repos"].get(entry.name) or {}
        table.add_row(
            entry.name,
            entry.category,
            "[green]yes[/green]" if entry.active else "[dim]no[/dim]",
            timestamps.get("overview") or "[yellow]never[/yellow]",
            timestamps.get("detail") or "[dim]-[/dim]",
        )

    console.print(table)


if __name__ == "__main__":
    app()
