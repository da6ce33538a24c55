"""Tests for the JSON, SQLite and in-memory persistence adapters."""

import json

import pytest

from conftest import T0, run

from timesync.models import Project, TimeEntry
from timesync.repository import JsonFileRepository, MemoryRepository, SqliteRepository


def sample_projects() -> list[Project]:
    return [
        Project(
            id=T0,
            name="alpha",
            time=300,
            time_entries=[TimeEntry(T0 + 100_000, 120), TimeEntry(T0 + 400_000, 180)],
        ),
        Project(id=T0 + 1, name="beta", time=42, is_running=True, last_start=T0 + 5000),
    ]


@pytest.fixture(params=["json", "sqlite"])
def repo(request, tmp_path):
    if request.param == "json":
        return JsonFileRepository(tmp_path / "state" / "projects.json")
    return SqliteRepository(tmp_path / "state" / "timesync.db")


# ---- Shared behaviour ----

class TestRoundTrip:
    def test_missing_storage_is_empty(self, repo):
        assert run(repo.load_projects()) == []
        assert run(repo.load_limits()) == {}

    def test_projects_keep_order_and_ledger(self, repo):
        projects = sample_projects()
        run(repo.save_projects(projects))
        assert run(repo.load_projects()) == projects

    def test_limits(self, repo):
        run(repo.save_limits({T0: 3600, T0 + 1: 60}))
        assert run(repo.load_limits()) == {T0: 3600, T0 + 1: 60}

    def test_save_replaces_previous_snapshot(self, repo):
        run(repo.save_projects(sample_projects()))
        run(repo.save_limits({T0: 3600}))
        run(repo.save_projects(sample_projects()[:1]))
        run(repo.save_limits({}))
        assert [p.name for p in run(repo.load_projects())] == ["alpha"]
        assert run(repo.load_limits()) == {}


# ---- JSON specifics ----

class TestJsonFileRepository:
    def test_reads_browser_export(self, tmp_path):
        """The localStorage shape of the browser version loads unchanged."""
        path = tmp_path / "projects.json"
        path.write_text(json.dumps({
            "projects": [
                {"id": 1700000000000, "name": "legacy", "time": 3661, "isRunning": False, "lastStart": None},
                {"id": 1700000000001, "name": "running", "time": 0, "isRunning": True,
                 "lastStart": 1700000005000, "timeEntries": [{"timestamp": 1700000004000, "duration": 4}]},
            ],
            "timeLimits": {"1700000000000": 7200, "1700000000001": 0},
        }), encoding="utf-8")
        repo = JsonFileRepository(path)

        legacy, running = run(repo.load_projects())
        assert legacy.time_entries == []
        assert running.is_running
        assert running.last_start == 1700000005000
        assert running.time_entries == [TimeEntry(1700000004000, 4)]
        # A stored 0 meant "no limit" in the browser version
        assert run(repo.load_limits()) == {1700000000000: 7200}

    def test_corrupt_file_loads_empty(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text("{not json", encoding="utf-8")
        repo = JsonFileRepository(path)
        assert run(repo.load_projects()) == []
        assert run(repo.load_limits()) == {}

    def test_malformed_entries_are_skipped(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text(json.dumps({
            "projects": [{"name": "no id"}, {"id": 3, "name": "ok"}, "junk"],
            "timeLimits": {"3": "soon", "x": 60},
        }), encoding="utf-8")
        repo = JsonFileRepository(path)
        assert [p.id for p in run(repo.load_projects())] == [3]
        assert run(repo.load_limits()) == {}

    def test_invariant_repaired_on_load(self, tmp_path):
        path = tmp_path / "projects.json"
        path.write_text(json.dumps({
            "projects": [{"id": 1, "name": "broken", "isRunning": True, "lastStart": None}],
        }), encoding="utf-8")
        project = run(JsonFileRepository(path).load_projects())[0]
        assert not project.is_running
        assert project.last_start is None

    def test_saving_one_key_keeps_the_other(self, tmp_path):
        repo = JsonFileRepository(tmp_path / "projects.json")
        run(repo.save_limits({5: 600}))
        run(repo.save_projects([Project(id=5, name="five")]))
        data = json.loads((tmp_path / "projects.json").read_text(encoding="utf-8"))
        assert data["timeLimits"] == {"5": 600}
        assert data["projects"][0]["name"] == "five"
        assert list(tmp_path.glob("*.tmp")) == []


# ---- SQLite specifics ----

class TestSqliteRepository:
    def test_garbage_file_loads_empty(self, tmp_path):
        path = tmp_path / "timesync.db"
        path.write_bytes(b"this is not a sqlite database" * 100)
        repo = SqliteRepository(path)
        assert run(repo.load_projects()) == []
        assert run(repo.load_limits()) == {}

    def test_running_state_round_trip(self, tmp_path):
        repo = SqliteRepository(tmp_path / "timesync.db")
        run(repo.save_projects(sample_projects()))
        beta = run(repo.load_projects())[1]
        assert beta.is_running
        assert beta.last_start == T0 + 5000


# ---- Memory ----

class TestMemoryRepository:
    def test_counts_saves(self):
        repo = MemoryRepository()
        run(repo.save_projects([Project(id=1, name="one")]))
        run(repo.save_limits({1: 60}))
        assert repo.saves == 2
        assert run(repo.load_limits()) == {1: 60}
