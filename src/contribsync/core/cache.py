"""Decides when rendered views are stale and purges them."""

import logging
import shutil
from datetime import datetime, time, timedelta
from pathlib import Path
from typing import Optional, Set

logger = logging.getLogger(__name__)


class ViewCache:
    """Rendered views cached on disk. Can only be purged as a whole."""

    def __init__(self, cache_dir: Path):
        self.cache_dir = Path(cache_dir)

    def purge(self) -> None:
        if self.cache_dir.exists():
            shutil.rmtree(self.cache_dir)
        logger.info("purged %s", self.cache_dir)


def database_needs_update(ncommits: int, gone_names: Set[str]) -> bool:
    return ncommits > 0 or bool(gone_names)


def beginning_of_week(now: datetime) -> datetime:
    """Monday at midnight of the week of ``now``."""
    monday = now.date() - timedelta(days=now.weekday())
    return datetime.combine(monday, time.min, tzinfo=now.tzinfo)


def beginning_of_month(now: datetime) -> datetime:
    return datetime.combine(now.date().replace(day=1), time.min, tzinfo=now.tzinfo)


def switching_time_ranges(last_update_at: Optional[datetime], now: datetime) -> bool:
    """Whether a week or a month started since the last update.

    Views bucket data by week and month, so they go stale at those
    boundaries even if the data did not change. A year boundary is always
    a month boundary.
    """
    if last_update_at is None:
        return False
    return last_update_at < beginning_of_week(now) or last_update_at < beginning_of_month(now)


def cache_needs_expiration(
    ncommits: int,
    gone_names: Set[str],
    last_update_at: Optional[datetime],
    now: datetime,
) -> bool:
    return database_needs_update(ncommits, gone_names) or switching_time_ranges(
        last_update_at, now
    )
