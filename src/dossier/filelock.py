"""Cross-process lock for the JSON metadata store.

Several browser processes may share one project directory.  Each store
write is a read-modify-write of the whole file, so it runs under an
exclusive ``fcntl.flock`` on a sibling ``<file>.lock``.  The kernel drops
the lock when the descriptor closes, including on process death.

Not reentrant: nesting file_lock() on the same path in one thread blocks
until the timeout.
"""

from __future__ import annotations

import fcntl
import time
from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path
from typing import IO

DEFAULT_LOCK_TIMEOUT = 5.0

_POLL_INTERVAL = 0.05


class LockTimeout(OSError):
    """Another process held the lock for longer than the timeout."""

    def __init__(self, target: Path, timeout: float):
        super().__init__(f"Could not acquire lock on {target} within {timeout:.1f}s")
        self.target = target
        self.timeout = timeout


def lock_path_for(target: Path) -> Path:
    return target.with_name(target.name + ".lock")


def _acquire(fd: IO[str], target: Path, timeout: float) -> None:
    deadline = time.monotonic() + timeout
    while True:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
            return
        except BlockingIOError:
            if time.monotonic() >= deadline:
                raise LockTimeout(target, timeout) from None
            time.sleep(_POLL_INTERVAL)


@contextmanager
def file_lock(target: Path, timeout: float = DEFAULT_LOCK_TIMEOUT) -> Iterator[Path]:
    """Hold the lock for *target* for the duration of the block.

    Yields the lock file path.  A *timeout* of 0 makes one attempt.

    Raises:
        LockTimeout: If the lock is still held elsewhere after *timeout* seconds.
    """
    lock_path = lock_path_for(target)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    with open(lock_path, "a", encoding="utf-8") as fd:
        _acquire(fd, target, timeout)
        try:
            yield lock_path
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
