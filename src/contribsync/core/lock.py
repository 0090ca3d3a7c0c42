"""Process-wide mutual exclusion through sync files."""

import fcntl
import logging
import os
from contextlib import contextmanager
from pathlib import Path
from typing import Iterator

from contribsync.errors import LockContentionError

logger = logging.getLogger(__name__)


@contextmanager
def acquiring_sync_file(lock_dir: Path, scope: str) -> Iterator[Path]:
    """Hold an exclusive lock on ``<scope>.lock`` for the duration of the block.

    If another process holds it this fails right away instead of waiting.
    The lock belongs to the open file, so the kernel drops it when the
    holder exits, even if it is killed. The sync file itself is left in
    place and reused.
    """
    lock_dir = Path(lock_dir)
    lock_dir.mkdir(parents=True, exist_ok=True)
    sync_file = lock_dir / f"{scope}.lock"

    fd = os.open(sync_file, os.O_CREAT | os.O_RDWR, 0o644)
    try:
        try:
            fcntl.flock(fd, fcntl.LOCK_EX | fcntl.LOCK_NB)
        except BlockingIOError as e:
            raise LockContentionError(
                f"{scope!r} is already running (sync file {sync_file} is locked)"
            ) from e

        try:
            os.ftruncate(fd, 0)
            os.write(fd, str(os.getpid()).encode())
            logger.debug("acquired %s", sync_file)
            yield sync_file
        finally:
            fcntl.flock(fd, fcntl.LOCK_UN)
            logger.debug("released %s", sync_file)
    finally:
        os.close(fd)
