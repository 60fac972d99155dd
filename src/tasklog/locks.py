# src/tasklog/locks.py

from __future__ import annotations

import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import IO, Iterator

logger = logging.getLogger(__name__)


class LockError(RuntimeError):
    """The store is locked by another process, or locking is unsupported."""


@contextmanager
def store_lock(lock_path: Path) -> Iterator[IO[str]]:
    """Acquire an exclusive, non-blocking lock on the store's PID file.

    Only one process may mutate a given store at a time. Contention fails
    immediately; there is no retry. The PID is cleared on release; the file
    itself is left in place.
    """

    lock_path = Path(lock_path)
    lock_path.parent.mkdir(parents=True, exist_ok=True)
    handle = lock_path.open("a+", encoding="utf-8")
    try:
        try:
            import fcntl

            fcntl.flock(handle.fileno(), fcntl.LOCK_EX | fcntl.LOCK_NB)
        except ModuleNotFoundError as exc:
            raise LockError("Store locks require fcntl (not available on this platform).") from exc
        except OSError as exc:
            raise LockError(f"Another tasklog process holds the store lock ({lock_path}).") from exc

        handle.seek(0)
        handle.truncate()
        handle.write(f"{os.getpid()}\n")
        handle.flush()
        logger.debug("Acquired store lock %s", lock_path)

        try:
            yield handle
        finally:
            # The file stays on disk so every process locks the same inode.
            handle.seek(0)
            handle.truncate()
            handle.flush()
            fcntl.flock(handle.fileno(), fcntl.LOCK_UN)
            logger.debug("Released store lock %s", lock_path)
    finally:
        handle.close()
