"""
Tests for the registry and refresh-state store.
"""

import json

import pytest
from conftest import registry_entry, write_registry

from maintainer_dashboard.registry import (
    REFRESH_STATUS_FILENAME,
    RegistryError,
    load_refresh_status,
    load_registry,
    save_refresh_status,
    update_refresh_status,
    write_json_atomic,
)


class TestLoadRegistry:
    def test_loads_entries_in_order(self, tmp_path):
        path = write_registry(
            tmp_path / "repos.json",
            [registry_entry("org/b"), registry_entry("org/a", active=False)],
        )

        entries = load_registry(path)

        assert [e.name for e in entries] == ["org/b", "org/a"]
        assert entries[0].active is True
        assert entries[1].active is False
        assert entries[0].short_name == "b"

    def test_missing_file_is_fatal(self, tmp_path):
        with pytest.raises(RegistryError, match="Registry file not found"):
            load_registry(tmp_path / "missing.json")

    def test_malformed_json(self, tmp_path):
        path = tmp_path / "repos.json"
        path.write_text("{not json", encoding="utf-8")
        with pytest.raises(RegistryError, match="Failed to read registry"):
            load_registry(path)

    def test_requires_repos_list(self, tmp_path):
        path = tmp_path / "repos.json"
        path.write_text(json.dumps({"repositories": []}), encoding="utf-8")
        with pytest.raises(RegistryError, match="'repos' list"):
            load_registry(path)

    def test_rejects_names_without_owner(self, tmp_path):
        path = write_registry(tmp_path / "repos.json", [registry_entry("lonely")])
        with pytest.raises(RegistryError, match="Invalid repository name"):
            load_registry(path)

    def test_rejects_short_name_collisions_between_active_repos(self, tmp_path):
        path = write_registry(
            tmp_path / "repos.json",
            [registry_entry("org-one/tools"), registry_entry("org-two/Tools")],
        )
        with pytest.raises(RegistryError, match="share the short name"):
            load_registry(path)

    def test_inactive_duplicates_are_allowed(self, tmp_path):
        path = write_registry(
            tmp_path / "repos.json",
            [registry_entry("a/tools"), registry_entry("b/tools", active=False)],
        )
        assert len(load_registry(path)) == 2

    def test_empty_registry(self, tmp_path):
        path = write_registry(tmp_path / "repos.json", [])
        assert load_registry(path) == []

    @pytest.mark.parametrize("active", ["false", 0, None])
    def test_rejects_non_boolean_active(self, tmp_path, active):
        entry = registry_entry("org/a")
        entry["active"] = active
        path = write_registry(tmp_path / "repos.json", [entry])
        with pytest.raises(RegistryError, match="non-boolean 'active'"):
            load_registry(path)

    def test_active_defaults_to_true(self, tmp_path):
        path = write_registry(tmp_path / "repos.json", [{"name": "org/a"}])
        assert load_registry(path)[0].active is True


class TestRefreshStatus:
    def test_missing_document_is_empty(self, data_dir):
        assert load_refresh_status(data_dir) == {
            "meta": {"lastFullRefresh": None},
            "repos": {},
        }

    def test_corrupted_document_is_empty(self, data_dir):
        data_dir.mkdir()
        (data_dir / REFRESH_STATUS_FILENAME).write_text("[1, 2", encoding="utf-8")
        assert load_refresh_status(data_dir)["repos"] == {}

    @pytest.mark.parametrize(
        "document",
        [
            {"meta": {}, "repos": []},
            {"meta": [], "repos": {}},
            {"meta": None, "repos": {}},
            {"meta": {}, "repos": "org/a"},
        ],
    )
    def test_wrong_shape_is_empty(self, data_dir, document):
        data_dir.mkdir()
        (data_dir / REFRESH_STATUS_FILENAME).write_text(
            json.dumps(document), encoding="utf-8"
        )
        assert load_refresh_status(data_dir) == {
            "meta": {"lastFullRefresh": None},
            "repos": {},
        }

    def test_malformed_repo_entries_are_dropped(self, data_dir):
        data_dir.mkdir()
        (data_dir / REFRESH_STATUS_FILENAME).write_text(
            json.dumps(
                {
                    "meta": {"lastFullRefresh": "2024-01-01T00:00:00Z"},
                    "repos": {
                        "org/a": {"overview": "2024-01-01T00:00:00Z", "detail": None},
                        "org/b": ["2024-01-01T00:00:00Z"],
                        "org/c": None,
                    },
                }
            ),
            encoding="utf-8",
        )

        status = load_refresh_status(data_dir)

        assert list(status["repos"]) == ["org/a"]
        assert status["meta"]["lastFullRefresh"] == "2024-01-01T00:00:00Z"

    def test_round_trip(self, data_dir):
        status = {
            "meta": {"lastFullRefresh": "2024-01-01T00:00:00Z"},
            "repos": {"org/a": {"overview": "2024-01-01T00:00:00Z", "detail": None}},
        }
        save_refresh_status(data_dir, status)
        assert load_refresh_status(data_dir) == status

    def test_update_advances_only_processed_repos(self):
        previous = {
            "meta": {"lastFullRefresh": "2024-01-01T00:00:00Z"},
            "repos": {
                "org/a": {"overview": "2024-01-01T00:00:00Z", "detail": "2024-01-01T00:00:00Z"},
                "org/untouched": {"overview": "2023-12-01T00:00:00Z", "detail": None},
            },
        }

        updated = update_refresh_status(
            previous,
            "2024-06-01T12:00:00Z",
            overview_repos=["org/a", "org/new"],
            detail_repos=["org/new"],
            full_refresh=False,
        )

        assert updated["repos"]["org/a"] == {
            "overview": "2024-06-01T12:00:00Z",
            "detail": "2024-01-01T00:00:00Z",
        }
        assert updated["repos"]["org/new"] == {
            "overview": "2024-06-01T12:00:00Z",
            "detail": "2024-06-01T12:00:00Z",
        }
        assert updated["repos"]["org/untouched"] == previous["repos"]["org/untouched"]
        assert updated["meta"]["lastFullRefresh"] == "2024-01-01T00:00:00Z"
        # The input document is left alone
        assert previous["repos"]["org/a"]["overview"] == "2024-01-01T00:00:00Z"

    def test_full_refresh_moves_last_full_refresh(self):
        updated = update_refresh_status(
            {"meta": {"lastFullRefresh": None}, "repos": {}},
            "2024-06-01T12:00:00Z",
            overview_repos=[],
            detail_repos=[],
            full_refresh=True,
        )
        assert updated["meta"]["lastFullRefresh"] == "2024-06-01T12:00:00Z"


def test_write_json_atomic_replaces_and_leaves_no_temp_files(tmp_path):
    target = tmp_path / "nested" / "doc.json"
    write_json_atomic(target, {"v": 1})
    write_json_atomic(target, {"v": 2})

    assert json.loads(target.read_text(encoding="utf-8")) == {"v": 2}
    assert [p.name for p in target.parent.iterdir()] == ["doc.json"]
