"""Database engine, sessions and the transaction used by updates."""

import logging
from contextlib import contextmanager
from typing import Any, Dict, Iterator

from sqlalchemy import create_engine
from sqlalchemy.engine import Engine
from sqlalchemy.orm import Session, sessionmaker
from sqlalchemy.pool import NullPool

from contribsync.models import Base

logger = logging.getLogger(__name__)


def _create_engine(url: str) -> Engine:
    kwargs: Dict[str, Any] = {"pool_pre_ping": True}
    if url.startswith("sqlite"):
        kwargs["connect_args"] = {"check_same_thread": False}
        kwargs["poolclass"] = NullPool
    return create_engine(url, **kwargs)


class Store:
    """Relational store holding commits, contributors and update records."""

    def __init__(self, database_url: str):
        self.database_url = database_url
        self.engine = _create_engine(database_url)
        self.SessionLocal = sessionmaker(
            bind=self.engine, autocommit=False, autoflush=False, expire_on_commit=False
        )

    def ensure_schema(self) -> None:
        """Create tables if they don't exist."""
        Base.metadata.create_all(bind=self.engine)

    @contextmanager
    def transaction(self) -> Iterator[Session]:
        """Run a block in one atomic transaction.

        Everything done through the yielded session is committed when the
        block exits normally and rolled back if it raises.
        """
        session = self.SessionLocal()
        try:
            yield session
            session.commit()
        except Exception:
            logger.warning("rolling back transaction")
            session.rollback()
            raise
        finally:
            session.close()

    def session(self) -> Session:
        """Plain session for read-only queries. The caller closes it."""
        return self.SessionLocal()
