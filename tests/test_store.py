"""Tests for the in-memory TaskStore."""

from pathlib import Path

from aitasks.codec import error_entry, parse_task_file
from aitasks.errors import ParseErrorKind
from aitasks.store import TaskStore, is_task_file_name, list_task_files
from aitasks.types import normalize_path

from tests.conftest import make_task


VALID = {"projectName": "Valid", "tasks": [make_task("t1")]}


class TestListTaskFiles:
    def test_filters_and_sorts(self, tasks_folder, write_file):
        write_file("b.md", VALID)
        write_file("a.md", VALID)
        write_file("_template.md", VALID)
        write_file("notes.txt", "not a task file")
        (tasks_folder / ".auto-check").write_text("")
        (tasks_folder / "sub.md").mkdir()

        assert [p.name for p in list_task_files(tasks_folder)] == ["a.md", "b.md"]

    def test_missing_folder(self, tmp_path):
        assert list_task_files(tmp_path / "nope") == []

    def test_is_task_file_name(self):
        assert is_task_file_name("proj.md")
        assert not is_task_file_name("_system.md")
        assert not is_task_file_name(".hidden.md")
        assert not is_task_file_name("proj.md.swp")


class TestLoadAll:
    def test_error_isolation(self, tasks_folder, write_file):
        write_file("broken.md", "---\n{\"projectName\": \"X\", \"tasks\": []}\n\nno closing\n")
        write_file("good.md", VALID)

        store = TaskStore()
        projects = store.load_all(tasks_folder)

        assert len(projects) == 2
        broken, good = projects
        assert broken.error_kind is ParseErrorKind.MALFORMED_DELIMITERS
        assert broken.data.tasks == []
        assert good.is_valid
        assert good.data.project_name == "Valid"
        assert len(store) == 2

    def test_reload_replaces_cache(self, tasks_folder, write_file):
        path = write_file("a.md", VALID)
        store = TaskStore()
        store.load_all(tasks_folder)
        path.unlink()
        assert store.load_all(tasks_folder) == []
        assert len(store) == 0


class TestUpsertRemoveFind:
    def test_upsert_replaces_by_case_insensitive_identity(self, tasks_folder, write_file):
        path = write_file("Proj.md", VALID)
        store = TaskStore()
        store.upsert(parse_task_file(path))

        replacement = error_entry(Path(str(tasks_folder / "PROJ.md")), ParseErrorKind.UNREADABLE, "gone")
        store.upsert(replacement)

        assert len(store) == 1
        assert store.get(path) is replacement

    def test_upsert_appends_new_paths(self, tasks_folder, write_file):
        store = TaskStore()
        store.upsert(parse_task_file(write_file("a.md", VALID)))
        store.upsert(parse_task_file(write_file("b.md", VALID)))
        assert [p.file_name for p in store.projects] == ["a.md", "b.md"]

    def test_remove(self, tasks_folder, write_file):
        path = write_file("a.md", VALID)
        store = TaskStore()
        store.upsert(parse_task_file(path))
        removed = store.remove(tasks_folder / "A.md")
        assert removed is not None
        assert store.remove(path) is None
        assert len(store) == 0

    def test_find(self, tasks_folder, write_file):
        store = TaskStore()
        store.load_all(tasks_folder)
        store.upsert(parse_task_file(write_file("a.md", VALID)))
        assert store.find(lambda p: p.data.project_name == "Valid").file_name == "a.md"
        assert store.find(lambda p: False) is None

    def test_find_for_workspace(self, tasks_folder, write_file):
        header = {"projectName": "WS", "projectPath": "/Users/Me/Code/App", "tasks": []}
        write_file("ws.md", header)
        write_file("other.md", VALID)
        store = TaskStore()
        store.load_all(tasks_folder)

        assert store.find_for_workspace("/users/me/code/app/").file_name == "ws.md"
        assert store.find_for_workspace("/elsewhere") is None

    def test_projects_is_a_copy(self, tasks_folder, write_file):
        write_file("a.md", VALID)
        store = TaskStore()
        store.load_all(tasks_folder)
        store.projects.clear()
        assert len(store) == 1


class TestSnapshot:
    def test_context_stripped(self, tasks_folder, write_file):
        write_file("a.md", VALID, context="secret notes")
        write_file("bad.md", "garbage")
        store = TaskStore()
        store.load_all(tasks_folder)

        snapshot = store.snapshot()

        assert [s["fileName"] for s in snapshot] == ["a.md", "bad.md"]
        assert all(s["context"] == "" for s in snapshot)
        assert "parseError" not in snapshot[0]
        assert snapshot[1]["parseError"]
        assert snapshot[0]["data"]["tasks"][0]["id"] == "t1"
        # the cached record itself keeps its context
        assert store.projects[0].context == "secret notes"


def test_normalize_path_folds_case_and_separators():
    assert normalize_path("C:\\Users\\Me\\a.md") == normalize_path("c:/users/me/A.md")
    assert normalize_path("/tmp/x/../a.md") == normalize_path("/tmp/a.md")
