"""Dense ranking of contributors by number of contributions."""

import logging
from typing import Iterable, Iterator, List, Optional, Tuple

from sqlalchemy.orm import Session

from contribsync.models.contributor import Contributor

logger = logging.getLogger(__name__)


def dense_ranks(counts: Iterable[int]) -> Iterator[int]:
    """Yield the dense rank of each count. Counts must come in descending order.

    >>> list(dense_ranks([10, 10, 7, 3, 3, 3]))
    [1, 1, 2, 3, 3, 3]
    """
    rank = 0
    last_count: Optional[int] = None
    for count in counts:
        if count != last_count:
            rank += 1
            last_count = count
        yield rank


def contributors_with_ncontributions(session: Session) -> List[Tuple[Contributor, int]]:
    """All contributors with their number of contributions, most contributions first."""
    return [tuple(row) for row in session.execute(Contributor.all_with_ncontributions())]


def update_ranks(session: Session) -> int:
    """Assign each contributor its dense rank. Returns how many ranks changed.

    Only contributors whose rank actually changes are written.
    """
    rows = contributors_with_ncontributions(session)
    nchanged = 0
    for (contributor, _), rank in zip(rows, dense_ranks(n for _, n in rows)):
        if contributor.rank != rank:
            contributor.rank = rank
            nchanged += 1
    session.flush()
    logger.info("%d ranks changed", nchanged)
    return nchanged
