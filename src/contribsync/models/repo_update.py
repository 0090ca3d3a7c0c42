"""Audit record written after every completed update."""

from datetime import datetime
from typing import Optional

from sqlalchemy import DateTime, Integer, Select, select
from sqlalchemy.orm import Mapped, mapped_column

from contribsync.models.base import Base


class RepoUpdate(Base):
    __tablename__ = "repo_updates"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    ncommits: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    started_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    pulled_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    ended_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)
    created_at: Mapped[datetime] = mapped_column(
        DateTime, nullable=False, default=datetime.now
    )

    @classmethod
    def last(cls) -> Select:
        return select(cls).order_by(cls.id.desc()).limit(1)

    @property
    def duration(self) -> Optional[float]:
        """Get update duration in seconds."""
        if self.started_at is None or self.ended_at is None:
            return None
        return (self.ended_at - self.started_at).total_seconds()
