"""
Resolver — Map a team name and task id to concrete paths.

Layout under the base directory:

    <base_dir>/
    ├── alpha/           # one directory per team
    │   ├── .lock        # shared lock file, created on first claim
    │   ├── 1.json
    │   └── 7.json
    └── beta/

Assumptions and edge cases:
- An explicit team name is returned without checking that it exists; the
  claim protocol reports a missing team directory itself.
- Without a team, the lexicographically first subdirectory is used. When
  several exist the choice is logged as a warning, or refused outright in
  strict mode. Callers with more than one team should always pass a team.
- Names must be a single path component so a task id like ``../x`` can
  never address a file outside its team directory.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Optional

from .errors import InvalidNameError, ResolutionError

logger = logging.getLogger(__name__)

DEFAULT_TASK_SUFFIX = ".json"
DEFAULT_LOCK_NAME = ".lock"


@dataclass(frozen=True)
class TeamPaths:
    """Resolved locations for one claim."""
    team: str
    team_dir: Path
    task_path: Path
    lock_path: Path


def validate_name(value: str, what: str) -> str:
    """Reject names that are empty or not a single path component."""
    if not isinstance(value, str) or value == "":
        raise InvalidNameError(f"{what} must be a non-empty string")
    if value in (".", "..") or any(sep in value for sep in ("/", "\\", "\0")):
        raise InvalidNameError(f"invalid {what}: {value!r}")
    return value


def list_teams(base_dir: Path | str) -> list[str]:
    """Return the names of all team directories, sorted.

    Raises ResolutionError if the base directory cannot be read.
    """
    base = Path(base_dir)
    try:
        return sorted(entry.name for entry in base.iterdir() if entry.is_dir())
    except OSError as e:
        raise ResolutionError(f"cannot read {base}: {e}") from e


def resolve_team(
    base_dir: Path | str,
    requested_team: Optional[str] = None,
    strict: bool = False,
) -> str:
    """Return the team to use for a claim."""
    if requested_team is not None:
        return validate_name(requested_team, "team name")

    teams = list_teams(base_dir)
    if not teams:
        raise ResolutionError(f"no team directories found in {base_dir}")
    if len(teams) > 1:
        if strict:
            raise ResolutionError(
                f"multiple team directories found in {base_dir} "
                f"({', '.join(teams)}); specify a team"
            )
        logger.warning(
            "No team given and %d teams exist in %s; using %s",
            len(teams), base_dir, teams[0],
        )
    return teams[0]


def resolve_paths(
    base_dir: Path | str,
    team: str,
    task_id: str,
    suffix: str = DEFAULT_TASK_SUFFIX,
    lock_name: str = DEFAULT_LOCK_NAME,
) -> TeamPaths:
    """Join the team directory, task file and lock file paths. No I/O."""
    validate_name(team, "team name")
    validate_name(task_id, "task id")
    team_dir = Path(base_dir) / team
    return TeamPaths(
        team=team,
        team_dir=team_dir,
        task_path=team_dir / f"{task_id}{suffix}",
        lock_path=team_dir / lock_name,
    )
