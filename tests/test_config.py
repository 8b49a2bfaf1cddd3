"""Tests for TOML configuration loading and saving."""

import tomllib
from pathlib import Path

import pytest

from aitasks.config import (
    TaskConfig,
    get_config_path,
    load_config,
    load_or_create_config,
    save_config,
)


@pytest.fixture(autouse=True)
def _no_env(monkeypatch):
    monkeypatch.delenv("AI_TASKS_CONFIG", raising=False)
    monkeypatch.delenv("AI_TASKS_FOLDER", raising=False)


def _write(path: Path, text: str) -> Path:
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    def test_full_file(self, tmp_path):
        path = _write(tmp_path / "config.toml", """
[config]
version = 1

[tasks]
folder = "/data/tasks"
auto_check = true
max_done_tasks = 20
debounce_ms = 100
suppress_ms = 2000
""")
        config = load_config(path)

        assert config.tasks_folder == Path("/data/tasks")
        assert config.auto_check_tasks is True
        assert config.max_done_tasks == 20
        assert config.debounce_seconds == 0.1
        assert config.suppress_seconds == 2.0
        assert config.config_path == path

    def test_defaults_for_missing_keys(self, tmp_path):
        config = load_config(_write(tmp_path / "config.toml", "[tasks]\n"))
        assert config.tasks_folder == Path("~/.ai-tasks").expanduser()
        assert config.auto_check_tasks is False
        assert config.max_done_tasks == 0
        assert config.debounce_ms == 300
        assert config.suppress_ms == 1000

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(tmp_path / "absent.toml")

    @pytest.mark.parametrize("body", [
        "[tasks]\nmax_done_tasks = -1\n",
        "[tasks]\nmax_done_tasks = true\n",
        "[tasks]\nauto_check = \"yes\"\n",
        "[tasks]\nfolder = 3\n",
        "[config]\nversion = 99\n",
    ])
    def test_invalid_values(self, tmp_path, body):
        with pytest.raises(ValueError):
            load_config(_write(tmp_path / "config.toml", body))


class TestTaskConfig:
    def test_tilde_is_expanded(self):
        assert TaskConfig(tasks_folder="~/x").tasks_folder == Path.home() / "x"

    def test_suppress_window_covers_debounce(self):
        config = TaskConfig(debounce_ms=1500, suppress_ms=1000)
        assert config.suppress_seconds == 1.5

    def test_negative_debounce_rejected(self):
        with pytest.raises(ValueError):
            TaskConfig(debounce_ms=-1)


class TestSaveAndCreate:
    def test_round_trip(self, tmp_path):
        path = tmp_path / "nested" / "config.toml"
        config = TaskConfig(tasks_folder=tmp_path / "t", max_done_tasks=5, config_path=path)

        save_config(config)

        with open(path, "rb") as f:
            data = tomllib.load(f)
        assert data["tasks"]["max_done_tasks"] == 5
        loaded = load_config(path)
        assert loaded.tasks_folder == tmp_path / "t"
        assert loaded.max_done_tasks == 5

    def test_creates_default_file(self, tmp_path):
        path = tmp_path / "config.toml"
        config = load_or_create_config(path)
        assert path.exists()
        assert config.config_path == path

    def test_env_overrides(self, tmp_path, monkeypatch):
        path = tmp_path / "env.toml"
        monkeypatch.setenv("AI_TASKS_CONFIG", str(path))
        monkeypatch.setenv("AI_TASKS_FOLDER", str(tmp_path / "elsewhere"))

        assert get_config_path() == path
        config = load_or_create_config()

        assert config.tasks_folder == tmp_path / "elsewhere"
        # the override is not persisted
        assert load_config(path).tasks_folder != tmp_path / "elsewhere"
