"""
Claim — Guarded read-modify-write of a task's owner and status.

Protocol for one claim:

    resolve team ─► check team dir ─► check task file
        ─► lock <team>/.lock ─► read + decode ─► validate
        ─► set owner, status=in_progress ─► atomic write ─► unlock

Assumptions and edge cases:
- The lock covers the whole team directory, so claims on different tasks
  of one team also serialise. Claims in different teams run in parallel.
- The lock is released on every path once acquired, including decode
  failures, denials and write failures.
- A denied or failed claim never writes the task file.
- Nothing is retried. Waiting for the lock is the only wait; set
  ``lock_timeout`` to bound it.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from .errors import (
    AlreadyClaimedError,
    AlreadyCompletedError,
    AlreadyInProgressError,
    ClaimError,
    ClaimIOError,
    DeletedError,
    InvalidNameError,
    NotFoundError,
    ParseError,
)
from .locking import team_lock
from .protocol import ClaimResult, TaskRecord, TaskStatus, decode
from .resolver import (
    DEFAULT_LOCK_NAME,
    DEFAULT_TASK_SUFFIX,
    TeamPaths,
    resolve_paths,
    resolve_team,
    validate_name,
)

logger = logging.getLogger(__name__)


def check_claimable(task: TaskRecord) -> None:
    """Raise the matching denial if ``task`` cannot be claimed."""
    if task.is_claimed:
        raise AlreadyClaimedError(task.owner)
    if task.status == TaskStatus.IN_PROGRESS:
        raise AlreadyInProgressError()
    if task.status == TaskStatus.COMPLETED:
        raise AlreadyCompletedError()
    if task.status == TaskStatus.DELETED:
        raise DeletedError()


def success_message(task: TaskRecord) -> str:
    return f"Claimed task {task.id}: {task.subject}"


class TaskClaimer:
    """
    Claims tasks stored under a base directory of team directories.

    Usage:
        claimer = TaskClaimer(Path.home() / ".claude" / "tasks")
        claimer.safe_claim("7", "agent-x", team="alpha")
        # -> "Claimed task 7: Write docs"
    """

    def __init__(
        self,
        base_dir: Path | str,
        task_suffix: str = DEFAULT_TASK_SUFFIX,
        lock_name: str = DEFAULT_LOCK_NAME,
        lock_timeout: Optional[float] = None,
        strict_team: bool = False,
    ):
        self.base_dir = Path(base_dir)
        self.task_suffix = task_suffix
        self.lock_name = lock_name
        self.lock_timeout = lock_timeout
        self.strict_team = strict_team

    @classmethod
    def from_config(cls, config: dict[str, Any]) -> TaskClaimer:
        """Build a claimer from a dict returned by load_config()."""
        from .config import resolve_base_dir

        tasks_cfg = config.get("tasks", {})
        claim_cfg = config.get("claim", {})
        return cls(
            base_dir=resolve_base_dir(config),
            task_suffix=tasks_cfg.get("task_suffix", DEFAULT_TASK_SUFFIX),
            lock_name=tasks_cfg.get("lock_name", DEFAULT_LOCK_NAME),
            lock_timeout=claim_cfg.get("lock_timeout_seconds"),
            strict_team=claim_cfg.get("strict_team_resolution", False),
        )

    # ── Resolution ───────────────────────────────────────────────────

    def resolve(self, task_id: str, team: Optional[str] = None) -> TeamPaths:
        """Resolve and check the team directory and task file for a claim."""
        validate_name(task_id, "task id")
        team_name = resolve_team(self.base_dir, team, strict=self.strict_team)
        paths = resolve_paths(
            self.base_dir, team_name, task_id,
            suffix=self.task_suffix, lock_name=self.lock_name,
        )
        if not paths.team_dir.is_dir():
            raise NotFoundError(f"team directory not found: {paths.team_dir}")
        if not paths.task_path.is_file():
            raise NotFoundError(f"task file not found: {paths.task_path}")
        return paths

    # ── Core operation ───────────────────────────────────────────────

    def claim(self, task_id: str, owner: str, team: Optional[str] = None) -> TaskRecord:
        """
        Claim ``task_id`` for ``owner``.

        Returns the updated record. Raises a ClaimError subclass when the
        task cannot be located, cannot be parsed, is not claimable, or an
        OS operation fails.
        """
        if not isinstance(owner, str) or not owner:
            raise InvalidNameError("owner must be a non-empty string")
        paths = self.resolve(task_id, team)

        with team_lock(paths.lock_path, timeout=self.lock_timeout):
            return self._claim_under_lock(paths.task_path, task_id, owner)

    def _claim_under_lock(self, task_path: Path, task_id: str, owner: str) -> TaskRecord:
        try:
            raw = task_path.read_bytes()
        except FileNotFoundError as e:
            # Removed between the existence check and taking the lock
            raise NotFoundError(f"task file not found: {task_path}") from e
        except OSError as e:
            raise ClaimIOError(f"cannot read task {task_id}: {e}") from e

        try:
            task = decode(raw)
        except ParseError as e:
            logger.warning("Malformed task file %s: %s", task_path, e)
            raise ParseError(f"invalid task file {task_id}: {e}") from e

        try:
            check_claimable(task)
        except ClaimError as e:
            logger.info("Claim of task %s by %s denied: %s", task_id, owner, e)
            raise

        task.mark_claimed(owner)
        try:
            task.save(task_path)
        except OSError as e:
            logger.error("Failed to write task %s at %s: %s", task_id, task_path, e)
            raise ClaimIOError(f"cannot write task {task_id}: {e}") from e

        logger.info("Task %s claimed by %s", task_id, owner)
        return task

    # ── Boundary forms ───────────────────────────────────────────────

    def try_claim(self, task_id: str, owner: str, team: Optional[str] = None) -> ClaimResult:
        """Like claim(), but report the outcome as a ClaimResult."""
        try:
            task = self.claim(task_id, owner, team)
        except ClaimError as e:
            return ClaimResult(ok=False, kind=e.kind, message=str(e), denied=e.denied)
        except OSError as e:
            logger.error("Claim of task %s failed: %s", task_id, e)
            return ClaimResult(ok=False, kind=ClaimIOError.kind, message=str(e))
        return ClaimResult(ok=True, kind="claimed", message=success_message(task), task=task)

    def safe_claim(self, task_id: str, owner: str, team: Optional[str] = None) -> str:
        """Claim and return ``Claimed task {id}: {subject}`` or ``Error: ...``."""
        return str(self.try_claim(task_id, owner, team))

    def __repr__(self) -> str:
        return f"TaskClaimer(base_dir={self.base_dir})"
