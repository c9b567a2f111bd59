"""
Registry and refresh-state storage.

The registry is the static list of tracked repositories. The refresh-state
document records when each repository was last refreshed and is rewritten as
a whole at the end of every run.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any

from maintainer_dashboard.models import RepoRegistryEntry, split_repo_name

REFRESH_STATUS_FILENAME = "refresh-status.json"


class RegistryError(ValueError):
    """The registry document is missing or malformed."""


def load_registry(path: Path) -> list[RepoRegistryEntry]:
    """
    Load tracked repositories from the registry document.

    Args:
        path: Path to a JSON document of the form {"repos": [...]}.

    Returns:
        Registry entries in document order.

    Raises:
        RegistryError: If the file is missing, unreadable, malformed, or two
            active repositories share a short name.
    """
    if not path.exists():
        raise RegistryError(f"Registry file not found: {path}")

    try:
        with open(path, "r", encoding="utf-8") as f:
            raw = json.load(f)
    except (json.JSONDecodeError, OSError) as e:
        raise RegistryError(f"Failed to read registry {path}: {e}") from e

    if not isinstance(raw, dict) or not isinstance(raw.get("repos"), list):
        raise RegistryError(f"Registry {path} must contain a 'repos' list.")

    entries: list[RepoRegistryEntry] = []
    for index, item in enumerate(raw["repos"]):
        if not isinstance(item, dict) or "name" not in item:
            raise RegistryError(f"Registry entry #{index} has no 'name'.")
        try:
            split_repo_name(item["name"])
        except ValueError as e:
            raise RegistryError(str(e)) from e
        active = item.get("active", True)
        if not isinstance(active, bool):
            raise RegistryError(
                f"Registry entry {item['name']} has a non-boolean 'active' value: {active!r}."
            )
        entries.append(
            RepoRegistryEntry(
                name=item["name"],
                category=item.get("category", "other"),
                active=active,
                description=item.get("description", ""),
            )
        )

    _check_short_name_collisions(entries)
    return entries


def _check_short_name_collisions(entries: list[RepoRegistryEntry]) -> None:
    # Detail documents are keyed by short name.
    seen: dict[str, str] = {}
    for entry in entries:
        if not entry.active:
            continue
        key = entry.short_name.lower()
        if key in seen:
            raise RegistryError(
                f"Active repositories {seen[key]} and {entry.name} share the short "
                f"name '{entry.short_name}'; detail documents would overwrite each other."
            )
        seen[key] = entry.name


def empty_refresh_status() -> dict[str, Any]:
    return {"meta": {"lastFullRefresh": None}, "repos": {}}


def load_refresh_status(data_dir: Path) -> dict[str, Any]:
    """
    Load the refresh-state document, or an empty one if it does not exist yet.

    A corrupted document is treated like a missing one so the next run can
    rebuild it.
    """
    path = data_dir / REFRESH_STATUS_FILENAME
    if not path.exists():
        return empty_refresh_status()

    try:
        with open(path, "r", encoding="utf-8") as f:
            status = json.load(f)
    except (json.JSONDecodeError, IOError):
        return empty_refresh_status()

    if not isinstance(status, dict):
        return empty_refresh_status()
    meta = status.get("meta", {})
    repos = status.get("repos", {})
    if not isinstance(meta, dict) or not isinstance(repos, dict):
        return empty_refresh_status()

    meta.setdefault("lastFullRefresh", None)
    return {
        "meta": meta,
        # Entries of the wrong shape are dropped; those repos count as never refreshed.
        "repos": {
            name: timestamps
            for name, timestamps in repos.items()
            if isinstance(timestamps, dict)
        },
    }


def get_last_overview_refresh(status: dict[str, Any], repo_name: str) -> str | None:
    return (status.get("repos", {}).get(repo_name) or {}).get("overview")


def update_refresh_status(
    status: dict[str, Any],
    now: str,
    overview_repos: list[str],
    detail_repos: list[str],
    full_refresh: bool,
) -> dict[str, Any]:
    """
    Return a copy of the refresh state advanced for the repositories processed.

    Entries of repositories not named here keep their previous timestamps.
    lastFullRefresh only moves on a full refresh.
    """
    repos = {name: dict(entry) for name, entry in status.get("repos", {}).items()}

    for name in overview_repos:
        entry = repos.setdefault(name, {"overview": None, "detail": None})
        entry["overview"] = now
    for name in detail_repos:
        entry = repos.setdefault(name, {"overview": None, "detail": None})
        entry["detail"] = now

    meta = dict(status.get("meta", {}))
    meta.setdefault("lastFullRefresh", None)
    if full_refresh:
        meta["lastFullRefresh"] = now

    return {"meta": meta, "repos": repos}


def write_json_atomic(path: Path, data: Any) -> Path:
    """Write a JSON document by replacing the target file in one step."""
    path.parent.mkdir(parents=True, exist_ok=True)
    fd, tmp_name = tempfile.mkstemp(
        prefix=f".{path.name}.", suffix=".tmp", dir=path.parent
    )
    try:
        with os.fdopen(fd, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2, ensure_ascii=False)
            f.write("\n")
        os.replace(tmp_name, path)
    except BaseException:
        Path(tmp_name).unlink(missing_ok=True)
        raise
    return path


def save_refresh_status(data_dir: Path, status: dict[str, Any]) -> Path:
    """Overwrite the refresh-state document."""
    return write_json_atomic(data_dir / REFRESH_STATUS_FILENAME, status)
