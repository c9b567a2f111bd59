"""
Batch selection: which repositories a run refreshes.
"""

import re
from datetime import datetime, timedelta, timezone
from typing import Any

from maintainer_dashboard.models import RepoRegistryEntry
from maintainer_dashboard.registry import get_last_overview_refresh

_DURATION_PATTERN = re.compile(r"^(\d+)([mhd])$")

_DURATION_UNITS = {
    "m": timedelta(minutes=1),
    "h": timedelta(hours=1),
    "d": timedelta(days=1),
}

EPOCH = datetime(1970, 1, 1, tzinfo=timezone.utc)


def parse_duration(duration: str) -> timedelta:
    """
    Parse a duration string such as "30m", "2h" or "1d".

    Raises:
        ValueError: If the string is not <digits><m|h|d>.
    """
    match = _DURATION_PATTERN.match(duration.strip())
    if not match:
        raise ValueError(
            f'Invalid duration format: {duration}. Use e.g., "30m", "2h", "1d".'
        )
    value, unit = match.groups()
    return int(value) * _DURATION_UNITS[unit]


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO 8601 timestamp (GitHub's trailing Z included) as UTC."""
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except (ValueError, AttributeError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def is_full_refresh(max_age: timedelta | None, batch_size: int | None) -> bool:
    return max_age is None and batch_size is None


def select_repos(
    registry: list[RepoRegistryEntry],
    refresh_status: dict[str, Any],
    max_age: timedelta | None = None,
    batch_size: int | None = None,
    force_include: list[str] | None = None,
    now: datetime | None = None,
) -> list[RepoRegistryEntry]:
    """
    Compute the ordered list of repositories to process in this run.

    Without max_age and batch_size every active repository is returned in
    registry order. Otherwise repositories are ordered oldest refresh first
    (never refreshed counts as the epoch); force-included repositories skip
    the max_age filter and are ordered together with the rest; batch_size
    truncates the ordered list.

    Args:
        registry: All tracked repositories.
        refresh_status: The refresh-state document.
        max_age: Skip repositories refreshed more recently than this.
        batch_size: Maximum number of repositories to return.
        force_include: Repository names that bypass the max_age filter.
        now: Reference time (defaults to the current UTC time).

    Returns:
        Registry entries to process, in processing order.
    """
    repos = [entry for entry in registry if entry.active]

    if is_full_refresh(max_age, batch_size):
        return repos

    now = now or datetime.now(timezone.utc)
    forced = set(force_include or [])

    with_times = [
        (
            entry,
            parse_timestamp(get_last_overview_refresh(refresh_status, entry.name))
            or EPOCH,
        )
        for entry in repos
    ]

    if max_age is not None:
        cutoff = now - max_age
        with_times = [
            (entry, refreshed_at)
            for entry, refreshed_at in with_times
            if entry.name in forced or refreshed_at < cutoff
        ]

    # sorted() is stable, so ties keep registry order
    with_times.sort(key=lambda pair: pair[1])
    selected = [entry for entry, _ in with_times]

    if batch_size is not None and len(selected) > batch_size:
        selected = selected[:batch_size]

    return selected
