"""Imports the commits of the history log that are not in the database yet."""

import logging
from typing import Callable, List

from sqlalchemy import exists, select
from sqlalchemy.exc import IntegrityError
from sqlalchemy.orm import Session

from contribsync.errors import ImportValidationError
from contribsync.models.commit import Commit
from contribsync.models.log_entry import LogEntry

logger = logging.getLogger(__name__)

BATCH_SIZE = 100

LogReader = Callable[[str, int, int], List[LogEntry]]


def import_new_commits(
    session: Session, log: LogReader, branch: str, batch_size: int = BATCH_SIZE
) -> int:
    """Walk the log from the tip down and import unseen commits.

    As soon as a known commit comes up we are done, as we are when a page
    comes back empty (the root of the history). Returns the number of
    commits imported.

    Commits are inserted newest first, so ids only reflect recency relative
    to other commits of the same import.

    Raises ImportValidationError if a commit can't be persisted. The caller
    is expected to roll back, so either all of the new commits are imported
    or none is.
    """
    ncommits = 0
    offset = 0
    while True:
        entries = log(branch, batch_size, offset)
        if not entries:
            return ncommits
        for entry in entries:
            if session.scalar(select(exists().where(Commit.sha1 == entry.sha1))):
                return ncommits
            import_log_entry(session, entry)
            ncommits += 1
        offset += len(entries)


def import_log_entry(session: Session, entry: LogEntry) -> Commit:
    """Persist a new commit built from ``entry``."""
    try:
        commit = Commit.from_log_entry(entry)
        session.add(commit)
        session.flush()
    except (ValueError, IntegrityError) as e:
        # Fatal, the whole transaction has to go.
        logger.error("couldn't import commit %s", entry.sha1)
        logger.error("%s", e)
        raise ImportValidationError(entry.sha1, [str(e)]) from e

    logger.info("imported commit %s", commit.short_sha1)
    return commit
