"""
Locking — Exclusive advisory lock on a team's lock file.

- POSIX uses ``fcntl.flock``; Windows uses ``msvcrt.locking`` on the first
  byte of the file in a non-blocking retry loop.
- The lock belongs to the open file handle. If the holder crashes the OS
  drops the lock with the handle, so a team can never stay locked by a dead
  process.
- flock locks are per open file description: two threads of one process
  that each call acquire() exclude each other just like two processes.
- The lock is advisory. It only restrains code that goes through acquire().
- The lock file is opened in append mode so it is created when missing and
  never truncated. It is never deleted.
"""

from __future__ import annotations

import errno
import logging
import os
import time
from contextlib import contextmanager
from dataclasses import dataclass
from pathlib import Path
from typing import IO, Iterator, Optional

from .errors import LockError, LockTimeoutError

if os.name == "nt":
    import msvcrt
else:
    import fcntl

logger = logging.getLogger(__name__)

DEFAULT_POLL_INTERVAL = 0.05


@dataclass
class LockHandle:
    """An acquired lock. Pass it to release() exactly once."""
    path: Path
    file: Optional[IO[bytes]]

    @property
    def held(self) -> bool:
        return self.file is not None


def _try_lock(fh: IO[bytes]) -> bool:
    """Attempt a non-blocking exclusive lock. False means contention."""
    if os.name == "nt":
        fh.seek(0)
        try:
            msvcrt.locking(fh.fileno(), msvcrt.LK_NBLCK, 1)
        except OSError as e:
            if e.errno in (errno.EACCES, errno.EDEADLK):
                return False
            raise
        return True
    try:
        fcntl.flock(fh.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
    except BlockingIOError:
        return False
    return True


def _lock_blocking(fh: IO[bytes], poll_interval: float) -> None:
    if os.name == "nt":
        while not _try_lock(fh):
            time.sleep(poll_interval)
        return
    fcntl.flock(fh.fileno(), fcntl.LOCK_EX)


def _unlock(fh: IO[bytes]) -> None:
    if os.name == "nt":
        fh.seek(0)
        msvcrt.locking(fh.fileno(), msvcrt.LK_UNLCK, 1)
    else:
        fcntl.flock(fh.fileno(), fcntl.LOCK_UN)


def acquire(
    lock_path: Path | str,
    timeout: Optional[float] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> LockHandle:
    """Open ``lock_path`` (creating it if absent) and lock it exclusively.

    Blocks until the lock is held. With ``timeout`` set, polls with a
    non-blocking lock and raises LockTimeoutError once ``timeout`` seconds
    have passed.

    Raises:
        LockError: the file could not be opened or the OS refused the lock.
        LockTimeoutError: ``timeout`` expired first.
    """
    path = Path(lock_path)
    try:
        fh = open(path, "a+b")
    except OSError as e:
        raise LockError(f"cannot open lock: {path}: {e}") from e

    start = time.monotonic()
    try:
        if timeout is None:
            _lock_blocking(fh, poll_interval)
        else:
            while not _try_lock(fh):
                if time.monotonic() - start >= timeout:
                    raise LockTimeoutError(
                        f"could not acquire lock on {path} within {timeout}s"
                    )
                time.sleep(poll_interval)
    except OSError as e:
        fh.close()
        raise LockError(f"flock failed on {path}: {e}") from e
    except BaseException:
        fh.close()
        raise

    logger.debug("Acquired lock %s after %.3fs", path, time.monotonic() - start)
    return LockHandle(path=path, file=fh)


def release(handle: LockHandle) -> None:
    """Drop the lock and close its file handle.

    The handle is closed even when unlocking fails. Releasing an already
    released handle is a no-op.
    """
    fh = handle.file
    if fh is None:
        return
    handle.file = None
    try:
        _unlock(fh)
    except OSError as e:
        raise LockError(f"flock failed on {handle.path}: {e}") from e
    finally:
        fh.close()
    logger.debug("Released lock %s", handle.path)


@contextmanager
def team_lock(
    lock_path: Path | str,
    timeout: Optional[float] = None,
    poll_interval: float = DEFAULT_POLL_INTERVAL,
) -> Iterator[LockHandle]:
    """Hold the lock for the duration of the ``with`` block.

    A failure to release is logged rather than raised when the block is
    already propagating an exception, so the original error is not masked.
    """
    handle = acquire(lock_path, timeout=timeout, poll_interval=poll_interval)
    try:
        yield handle
    except BaseException:
        try:
            release(handle)
        except LockError as e:
            logger.error("Failed to release lock %s: %s", handle.path, e)
        raise
    release(handle)
