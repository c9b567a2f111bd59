"""
Snapshot writer for the documents the dashboard UI reads.

Layout under the data directory:
  repos-overview.json     overview rows, highest attention first
  urgent-items.json       unengaged issues and PRs, oldest first
  repos/<short-name>.json one detail document per repository with activity
  refresh-status.json     see registry.py
"""

from pathlib import Path
from typing import Any

from maintainer_dashboard.models import (
    RepoDetail,
    RepoOverview,
    UrgentItem,
    get_repo_short_name,
)
from maintainer_dashboard.registry import write_json_atomic

OVERVIEW_FILENAME = "repos-overview.json"
URGENT_ITEMS_FILENAME = "urgent-items.json"
DETAIL_DIRNAME = "repos"


def build_meta(fetched_at: str, repo_count: int, item_count: int | None = None) -> dict:
    meta: dict[str, Any] = {"fetchedAt": fetched_at, "repoCount": repo_count}
    if item_count is not None:
        meta["itemCount"] = item_count
    return meta


def build_overview_document(
    overviews: list[RepoOverview], fetched_at: str
) -> dict[str, Any]:
    return {
        "meta": build_meta(fetched_at, len(overviews)),
        "repos": [overview.to_dict() for overview in overviews],
    }


def build_urgent_document(
    items: list[UrgentItem], fetched_at: str, repo_count: int
) -> dict[str, Any]:
    return {
        "meta": build_meta(fetched_at, repo_count, len(items)),
        "items": [item.to_dict() for item in items],
    }


def write_overview_snapshots(
    data_dir: Path,
    overviews: list[RepoOverview],
    items: list[UrgentItem],
    fetched_at: str,
) -> tuple[Path, Path]:
    """
    Overwrite the overview and urgent-items documents.

    Both carry the same fetchedAt so the UI sees one consistent "as of" time.
    """
    overview_path = write_json_atomic(
        data_dir / OVERVIEW_FILENAME, build_overview_document(overviews, fetched_at)
    )
    urgent_path = write_json_atomic(
        data_dir / URGENT_ITEMS_FILENAME,
        build_urgent_document(items, fetched_at, len(overviews)),
    )
    return overview_path, urgent_path


def get_detail_path(data_dir: Path, full_name: str) -> Path:
    return data_dir / DETAIL_DIRNAME / f"{get_repo_short_name(full_name)}.json"


def write_detail_snapshot(data_dir: Path, detail: RepoDetail) -> Path:
    """Overwrite the detail document of one repository."""
    return write_json_atomic(get_detail_path(data_dir, detail.name), detail.to_dict())
