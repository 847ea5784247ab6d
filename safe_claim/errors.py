"""
Errors — Failure taxonomy for the claim protocol.

Every failure raised by the package derives from ClaimError. Each class
carries a stable ``kind`` tag so callers that want a discriminated result
(see ClaimResult) can branch without parsing the message, and a ``denied``
flag marking the expected "someone else got there first" outcomes.

The message of each exception is the short English sentence that ends up
after ``Error:`` at the boundary, e.g. ``already claimed by agent-x``.
"""

from __future__ import annotations


class ClaimError(Exception):
    """Base class for every claim failure."""
    kind: str = "error"
    denied: bool = False


class ResolutionError(ClaimError):
    """No team could be determined."""
    kind = "resolution"


class InvalidNameError(ClaimError):
    """A team name, task id or owner is not usable."""
    kind = "invalid_name"


class NotFoundError(ClaimError):
    """Team directory or task file does not exist."""
    kind = "not_found"


class ParseError(ClaimError):
    """Task file is not well-formed or misses a required field."""
    kind = "parse"


class AlreadyClaimedError(ClaimError):
    kind = "already_claimed"
    denied = True

    def __init__(self, owner: str):
        super().__init__(f"already claimed by {owner}")
        self.owner = owner


class AlreadyInProgressError(ClaimError):
    kind = "already_in_progress"
    denied = True

    def __init__(self, message: str = "task is already in_progress"):
        super().__init__(message)


class AlreadyCompletedError(ClaimError):
    kind = "already_completed"
    denied = True

    def __init__(self, message: str = "task is already completed"):
        super().__init__(message)


class DeletedError(ClaimError):
    kind = "deleted"
    denied = True

    def __init__(self, message: str = "task is deleted"):
        super().__init__(message)


class ClaimIOError(ClaimError):
    """OS-level failure reading or writing a task file."""
    kind = "io"


class LockError(ClaimIOError):
    """Opening, locking or unlocking the team lock file failed."""


class LockTimeoutError(LockError):
    """The team lock was not acquired within the configured timeout."""
    kind = "lock_timeout"
