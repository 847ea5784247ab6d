import textwrap
from pathlib import Path

import pytest

from safe_claim.claim import TaskClaimer
from safe_claim.config import BASE_DIR_ENV, load_config, resolve_base_dir


def write_config(path: Path, content: str):
    path.write_text(textwrap.dedent(content), encoding="utf-8")


@pytest.fixture(autouse=True)
def _no_env_override(monkeypatch):
    monkeypatch.delenv(BASE_DIR_ENV, raising=False)


def test_defaults_without_file(tmp_path):
    cfg = load_config(tmp_path)
    assert cfg["tasks"]["base_dir"] == "~/.claude/tasks"
    assert cfg["tasks"]["task_suffix"] == ".json"
    assert cfg["tasks"]["lock_name"] == ".lock"
    assert cfg["claim"]["lock_timeout_seconds"] is None
    assert cfg["claim"]["strict_team_resolution"] is False


def test_user_config_merged_onto_defaults(tmp_path):
    write_config(tmp_path / "config.yaml", """
    tasks:
      base_dir: /srv/tasks
    claim:
      lock_timeout_seconds: "2.5"
    """)

    cfg = load_config(tmp_path)
    assert cfg["tasks"]["base_dir"] == "/srv/tasks"
    assert cfg["tasks"]["lock_name"] == ".lock"
    assert cfg["claim"]["lock_timeout_seconds"] == 2.5


def test_env_overrides_file(tmp_path, monkeypatch):
    write_config(tmp_path / "config.yaml", """
    tasks:
      base_dir: /srv/tasks
    """)
    monkeypatch.setenv(BASE_DIR_ENV, str(tmp_path / "env-tasks"))

    cfg = load_config(tmp_path)
    assert cfg["tasks"]["base_dir"] == str(tmp_path / "env-tasks")


def test_malformed_yaml_fallback(tmp_path, capsys):
    # Intentionally malformed YAML
    write_config(tmp_path / "config.yaml", """
    bad: [unclosed
    """)

    cfg = load_config(tmp_path)
    assert isinstance(cfg, dict)
    assert "tasks" in cfg

    captured = capsys.readouterr()
    assert "Failed to parse" in captured.err


def test_malformed_yaml_fail_fast(tmp_path):
    write_config(tmp_path / "config.yaml", """
    bad: [unclosed
    """)

    with pytest.raises(SystemExit):
        load_config(tmp_path, fail_on_error=True)


@pytest.mark.parametrize("value", ["soon", "-1", "0", "true"])
def test_invalid_lock_timeout(tmp_path, value):
    write_config(tmp_path / "config.yaml", f"""
    claim:
      lock_timeout_seconds: {value}
    """)

    with pytest.raises(ValueError, match="lock_timeout_seconds"):
        load_config(tmp_path)


def test_invalid_strict_flag(tmp_path):
    write_config(tmp_path / "config.yaml", """
    claim:
      strict_team_resolution: "maybe"
    """)

    with pytest.raises(ValueError, match="strict_team_resolution"):
        load_config(tmp_path)
    with pytest.raises(SystemExit):
        load_config(tmp_path, fail_on_error=True)


def test_non_mapping_section(tmp_path):
    write_config(tmp_path / "config.yaml", """
    tasks: nope
    """)

    with pytest.raises(ValueError, match="tasks"):
        load_config(tmp_path)


def test_resolve_base_dir_expands_home(monkeypatch, tmp_path):
    monkeypatch.setattr(Path, "home", classmethod(lambda cls: tmp_path))
    cfg = load_config(tmp_path)
    assert resolve_base_dir(cfg) == tmp_path / ".claude" / "tasks"


def test_resolve_base_dir_without_home(monkeypatch, tmp_path):
    def _no_home(cls):
        raise RuntimeError("Could not determine home directory.")

    monkeypatch.setattr(Path, "home", classmethod(_no_home))
    cfg = load_config(tmp_path)
    assert resolve_base_dir(cfg) == Path("/tmp/.claude/tasks")


def test_claimer_from_config(tmp_path):
    write_config(tmp_path / "config.yaml", f"""
    tasks:
      base_dir: {tmp_path / "tasks"}
      lock_name: claim.lock
    claim:
      lock_timeout_seconds: 3
      strict_team_resolution: true
    """)

    claimer = TaskClaimer.from_config(load_config(tmp_path))
    assert claimer.base_dir == tmp_path / "tasks"
    assert claimer.lock_name == "claim.lock"
    assert claimer.lock_timeout == 3.0
    assert claimer.strict_team is True
