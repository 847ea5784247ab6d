import json
from pathlib import Path

import pytest


def write_task(team_dir: Path, task_id: str, status: str = "pending", owner=None, **fields) -> Path:
    """Write a task file the way the surrounding tooling lays it out."""
    team_dir.mkdir(parents=True, exist_ok=True)
    data = {
        "id": task_id,
        "subject": fields.pop("subject", "Test task"),
        "description": fields.pop("description", "A test"),
        "activeForm": fields.pop("activeForm", "Testing"),
        "status": status,
        "owner": owner,
        "blocks": fields.pop("blocks", []),
        "blockedBy": fields.pop("blockedBy", []),
        "metadata": fields.pop("metadata", None),
    }
    data.update(fields)
    path = team_dir / f"{task_id}.json"
    path.write_text(json.dumps(data, indent=2), encoding="utf-8")
    return path


def read_task(path: Path) -> dict:
    return json.loads(path.read_text(encoding="utf-8"))


@pytest.fixture
def base_dir(tmp_path):
    """An empty tasks base directory."""
    base = tmp_path / "tasks"
    base.mkdir()
    return base


@pytest.fixture
def team_dir(base_dir):
    """A single team directory named 'alpha'."""
    team = base_dir / "alpha"
    team.mkdir()
    return team


@pytest.fixture
def make_task(team_dir):
    """Fixture providing write_task bound to the 'alpha' team.

    Usage:
        path = make_task("7", status="pending", subject="Write docs")
    """
    def _make(task_id: str, status: str = "pending", owner=None, **fields) -> Path:
        return write_task(team_dir, task_id, status=status, owner=owner, **fields)
    return _make
