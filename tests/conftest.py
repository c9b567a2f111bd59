"""
Shared fixtures: an in-memory GitHub client and config isolation.
"""

import json
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

import pytest

from maintainer_dashboard import config
from maintainer_dashboard.github import (
    COMMITS_SINCE_QUERY,
    REPO_DETAIL_QUERY,
    REPO_OVERVIEW_QUERY,
    UNENGAGED_ISSUES_QUERY,
    UNENGAGED_PRS_QUERY,
)

NOW = datetime(2024, 6, 1, 12, 0, 0, tzinfo=timezone.utc)


def make_repo(
    name: str,
    issues: int = 0,
    prs: int = 0,
    release: tuple[str, str] | None = None,
    archived: bool = False,
    language: str | None = "JavaScript",
    description: str | None = "A repository",
    pushed_at: str = "2024-05-30T10:00:00Z",
) -> dict[str, Any]:
    """Overview query payload for one repository."""
    return {
        "name": name.split("/", 1)[1],
        "description": description,
        "isArchived": archived,
        "primaryLanguage": {"name": language} if language else None,
        "issues": {"totalCount": issues},
        "pullRequests": {"totalCount": prs},
        "releases": {
            "nodes": [{"tagName": release[0], "publishedAt": release[1]}]
            if release
            else []
        },
        "pushedAt": pushed_at,
    }


def make_search_node(
    repo: str,
    number: int,
    created_at: str,
    author: str | None = "octocat",
    title: str | None = None,
) -> dict[str, Any]:
    return {
        "repository": {"nameWithOwner": repo},
        "number": number,
        "title": title or f"Item {number}",
        "author": {"login": author} if author else None,
        "createdAt": created_at,
        "url": f"https://github.com/{repo}/issues/{number}",
    }


def make_detail(issues: int = 1, prs: int = 1, releases: int = 1) -> dict[str, Any]:
    """Detail query payload."""
    return {
        "issues": {
            "nodes": [
                {
                    "title": f"Issue {i}",
                    "author": {"login": "reporter"},
                    "labels": {"nodes": [{"name": "bug"}]},
                    "createdAt": "2024-05-01T00:00:00Z",
                    "comments": {"totalCount": i},
                    "url": f"https://example.test/issues/{i}",
                }
                for i in range(issues)
            ]
        },
        "pullRequests": {
            "nodes": [
                {
                    "title": f"PR {i}",
                    "author": None,
                    "createdAt": "2024-05-02T00:00:00Z",
                    "reviews": {"totalCount": 0},
                    "url": f"https://example.test/pull/{i}",
                }
                for i in range(prs)
            ]
        },
        "releases": {
            "nodes": [
                {
                    "tagName": f"v1.{i}.0",
                    "publishedAt": "2024-04-01T00:00:00Z",
                    "url": f"https://example.test/releases/v1.{i}.0",
                }
                for i in range(releases)
            ]
        },
    }


class FakeGitHubClient:
    """
    In-memory stand-in for GitHubClient.execute().

    Values in overview/commits/details may be exceptions, which are raised.
    Search pages are lists of node lists; cursors are "page-<n>".
    """

    def __init__(
        self,
        overview: dict[str, Any] | None = None,
        commits: dict[str, Any] | None = None,
        details: dict[str, Any] | None = None,
        issue_pages: list[list[dict]] | None = None,
        pr_pages: list[list[dict]] | None = None,
        issue_error: Exception | None = None,
        pr_error: Exception | None = None,
    ):
        self.overview = overview or {}
        self.commits = commits or {}
        self.details = details or {}
        self.issue_pages = issue_pages or [[]]
        self.pr_pages = pr_pages or [[]]
        self.issue_error = issue_error
        self.pr_error = pr_error
        self.calls: list[tuple[str, dict[str, Any]]] = []

    async def execute(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        self.calls.append((query, dict(variables)))

        if query == UNENGAGED_ISSUES_QUERY:
            return self._search(self.issue_pages, variables, self.issue_error)
        if query == UNENGAGED_PRS_QUERY:
            return self._search(self.pr_pages, variables, self.pr_error)

        full_name = f"{variables['owner']}/{variables['name']}"
        if query == REPO_OVERVIEW_QUERY:
            return {"repository": self._lookup(self.overview, full_name)}
        if query == COMMITS_SINCE_QUERY:
            count = self._lookup(self.commits, full_name, default=0)
            return {
                "repository": {
                    "defaultBranchRef": {"target": {"history": {"totalCount": count}}}
                }
            }
        if query == REPO_DETAIL_QUERY:
            return {"repository": self._lookup(self.details, full_name)}
        raise AssertionError(f"Unexpected query: {query[:40]}")

    @staticmethod
    def _lookup(table: dict[str, Any], key: str, default: Any = None) -> Any:
        value = table.get(key, default)
        if isinstance(value, Exception):
            raise value
        return value

    @staticmethod
    def _search(
        pages: list[list[dict]], variables: dict[str, Any], error: Exception | None
    ) -> dict[str, Any]:
        cursor = variables.get("cursor")
        index = int(cursor.split("-")[1]) if cursor else 0
        if error is not None and index == len(pages) - 1:
            raise error
        has_next = index < len(pages) - 1
        return {
            "search": {
                "pageInfo": {
                    "hasNextPage": has_next,
                    "endCursor": f"page-{index + 1}" if has_next else None,
                },
                "nodes": pages[index],
            }
        }

    def queries(self, query: str) -> list[dict[str, Any]]:
        return [variables for q, variables in self.calls if q == query]


def write_registry(path: Path, repos: list[dict[str, Any]]) -> Path:
    path.write_text(json.dumps({"repos": repos}), encoding="utf-8")
    return path


def registry_entry(name: str, active: bool = True, category: str = "core") -> dict:
    return {
        "name": name,
        "category": category,
        "active": active,
        "description": f"{name} description",
    }


@pytest.fixture(autouse=True)
def reset_config(monkeypatch, tmp_path):
    """Keep explicit config and project files from leaking between tests."""
    monkeypatch.setattr(config, "PROJECT_ROOT", tmp_path / "project")
    for var in (
        "MAINTAINER_DASHBOARD_DATA_DIR",
        "MAINTAINER_DASHBOARD_REGISTRY",
        "MAINTAINER_DASHBOARD_CONCURRENCY",
    ):
        monkeypatch.delenv(var, raising=False)
    yield
    config.set_data_dir(None)
    config.set_registry_path(None)
    config.set_concurrency(None)
    config.set_verify_ssl(True)


@pytest.fixture
def data_dir(tmp_path) -> Path:
    return tmp_path / "data"
