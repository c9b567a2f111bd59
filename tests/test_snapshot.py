"""
Tests for the snapshot documents.
"""

import json

from maintainer_dashboard.models import RepoDetail, RepoOverview, UrgentItem
from maintainer_dashboard.snapshot import (
    get_detail_path,
    write_detail_snapshot,
    write_overview_snapshots,
)

FETCHED_AT = "2024-06-01T12:00:00Z"


def overview(name: str, score: float) -> RepoOverview:
    return RepoOverview(name, None, None, 1, 0, None, None, 0, None, score, 0)


def test_overview_and_urgent_documents_share_fetched_at(data_dir):
    items = [
        UrgentItem("org/a", 5, "Help", "someone", "2024-05-01T00:00:00Z", "u", "issue")
    ]

    overview_path, urgent_path = write_overview_snapshots(
        data_dir, [overview("org/a", 3.0), overview("org/b", 1.0)], items, FETCHED_AT
    )

    overview_doc = json.loads(overview_path.read_text(encoding="utf-8"))
    urgent_doc = json.loads(urgent_path.read_text(encoding="utf-8"))

    assert overview_doc["meta"] == {"fetchedAt": FETCHED_AT, "repoCount": 2}
    assert [r["name"] for r in overview_doc["repos"]] == ["org/a", "org/b"]
    assert urgent_doc["meta"] == {
        "fetchedAt": FETCHED_AT,
        "repoCount": 2,
        "itemCount": 1,
    }
    assert urgent_doc["items"][0]["type"] == "issue"
    assert urgent_doc["items"][0]["createdAt"] == "2024-05-01T00:00:00Z"


def test_snapshots_overwrite_previous_documents(data_dir):
    write_overview_snapshots(data_dir, [overview("org/a", 1.0)], [], FETCHED_AT)
    overview_path, _ = write_overview_snapshots(data_dir, [], [], "2024-06-02T00:00:00Z")

    doc = json.loads(overview_path.read_text(encoding="utf-8"))
    assert doc == {"meta": {"fetchedAt": "2024-06-02T00:00:00Z", "repoCount": 0}, "repos": []}


def test_detail_document_keyed_by_short_name(data_dir):
    detail = RepoDetail("lando/php", "PHP plugin", "JavaScript", [], [], [])

    path = write_detail_snapshot(data_dir, detail)

    assert path == data_dir / "repos" / "php.json"
    assert path == get_detail_path(data_dir, "lando/php")
    assert json.loads(path.read_text(encoding="utf-8")) == {
        "name": "lando/php",
        "description": "PHP plugin",
        "language": "JavaScript",
        "issues": [],
        "pullRequests": [],
        "releases": [],
    }
