# Safe Claim — Lock-guarded task claiming for cooperating agents.
# Claims a task file in a shared team directory so that no two agents ever own the same task.

__version__ = "0.1.0"

from pathlib import Path
from typing import Optional

from .claim import TaskClaimer
from .errors import (
    AlreadyClaimedError,
    AlreadyCompletedError,
    AlreadyInProgressError,
    ClaimError,
    ClaimIOError,
    DeletedError,
    InvalidNameError,
    LockError,
    LockTimeoutError,
    NotFoundError,
    ParseError,
    ResolutionError,
)
from .protocol import ClaimResult, TaskRecord, TaskStatus, decode, encode

__all__ = [
    "TaskClaimer",
    "TaskRecord",
    "TaskStatus",
    "ClaimResult",
    "decode",
    "encode",
    "claim_task",
    "ClaimError",
    "ResolutionError",
    "InvalidNameError",
    "NotFoundError",
    "ParseError",
    "AlreadyClaimedError",
    "AlreadyInProgressError",
    "AlreadyCompletedError",
    "DeletedError",
    "ClaimIOError",
    "LockError",
    "LockTimeoutError",
]


def claim_task(
    task_id: str,
    owner: str,
    team: Optional[str] = None,
    project_root: str | Path | None = None,
) -> str:
    """
    Claim a task using the configured base directory.

    This is the primary function an agent calls before starting work.

    Args:
        task_id:       Id of the task to claim (its filename stem).
        owner:         Name of the agent claiming the task.
        team:          Team directory name; auto-selected if omitted.
        project_root:  Where config.yaml is looked up (default: cwd).

    Returns:
        ``Claimed task {id}: {subject}`` on success, ``Error: ...`` otherwise.
    """
    from .config import load_config

    cfg = load_config(project_root)
    claimer = TaskClaimer.from_config(cfg)
    return claimer.safe_claim(task_id, owner, team)
