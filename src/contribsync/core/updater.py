"""Updates the database from a recent pull of the mirror.

This is the entry point, everything else is composed here:

1. take the ``updating`` sync file, or fail right away,
2. pull the mirror,
3. in one transaction: import new commits, reconcile contributors with the
   current naming rules and, if anything changed, assign contributions and
   recompute ranks,
4. purge the view cache if needed,
5. record the update.

Pulling and purging happen outside the transaction because a rollback
can't undo them. Re-running after a failure is always safe: the import
resumes at the first known commit and contributors are recomputed from
scratch.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Callable, List, Optional

from pydantic import BaseModel

from contribsync.config import Settings, load_settings
from contribsync.core.cache import ViewCache, cache_needs_expiration, database_needs_update
from contribsync.core.contributors import (
    assign_contributors,
    compute_current_contributions,
    update_contributors,
)
from contribsync.core.history import GitHistory
from contribsync.core.importer import import_new_commits
from contribsync.core.lock import acquiring_sync_file
from contribsync.core.names import NameResolver, load_naming_rules
from contribsync.core.ranks import update_ranks
from contribsync.core.store import Store
from contribsync.models.repo_update import RepoUpdate

logger = logging.getLogger(__name__)

LOCK_SCOPE = "updating"


class UpdateResult(BaseModel):
    """Summary of a completed update."""

    ncommits: int
    gone_names: List[str]
    database_updated: bool
    cache_expired: bool
    started_at: datetime
    pulled_at: datetime
    ended_at: datetime

    @property
    def duration(self) -> float:
        return (self.ended_at - self.started_at).total_seconds()


class RepoUpdater:
    """Runs one update of the database from the mirror at ``path``."""

    def __init__(
        self,
        path: Path,
        settings: Optional[Settings] = None,
        history: Optional[GitHistory] = None,
        store: Optional[Store] = None,
        cache: Optional[ViewCache] = None,
        clock: Callable[[], datetime] = datetime.now,
    ):
        self.path = Path(path)
        self.settings = settings or load_settings()
        self.history = history or GitHistory(self.path, branch=self.settings.branch)
        self.store = store or Store(self.settings.database_url)
        self.cache = cache or ViewCache(self.settings.cache_dir)
        self.clock = clock

    def update(self) -> UpdateResult:
        with acquiring_sync_file(self.settings.lock_dir, LOCK_SCOPE):
            started_at = self.clock()
            rules = load_naming_rules(self.settings.names_file)

            self.history.pull()
            pulled_at = self.clock()

            self.store.ensure_schema()
            resolver = NameResolver(rules, detail=self.history.detail)

            with self.store.transaction() as session:
                ncommits = import_new_commits(
                    session,
                    self.history.log,
                    self.settings.branch,
                    self.settings.batch_size,
                )
                logger.info("%d new commits imported into the database", ncommits)

                # Even with no new commits we go on, the naming rules could
                # have changed since the last update.
                current_names, names_per_commit = compute_current_contributions(
                    session, resolver
                )
                gone_names = update_contributors(session, current_names)
                if gone_names:
                    logger.info("these names are gone: %s", ", ".join(sorted(gone_names)))
                else:
                    logger.info("no names are gone")

                database_updated = database_needs_update(ncommits, gone_names)
                if database_updated:
                    logger.info("updating database")
                    assign_contributors(session, names_per_commit)
                    update_ranks(session)

                last_update = session.scalar(RepoUpdate.last())
                last_update_at = last_update.created_at if last_update else None

            cache_expired = cache_needs_expiration(
                ncommits, gone_names, last_update_at, self.clock()
            )
            if cache_expired:
                logger.info("expiring cache")
                self.cache.purge()
            else:
                logger.info("cache needs no expiration")

            ended_at = self.clock()
            logger.info(
                "update completed in %.1f seconds", (ended_at - started_at).total_seconds()
            )
            with self.store.transaction() as session:
                session.add(
                    RepoUpdate(
                        ncommits=ncommits,
                        started_at=started_at,
                        pulled_at=pulled_at,
                        ended_at=ended_at,
                        created_at=ended_at,
                    )
                )

        return UpdateResult(
            ncommits=ncommits,
            gone_names=sorted(gone_names),
            database_updated=database_updated,
            cache_expired=cache_expired,
            started_at=started_at,
            pulled_at=pulled_at,
            ended_at=ended_at,
        )


def update(path: Path) -> UpdateResult:
    """Update the database from a recent pull of the mirror at ``path``."""
    return RepoUpdater(path).update()
