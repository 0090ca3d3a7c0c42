"""Commit model, one row per commit imported from the git mirror."""

import re
from datetime import datetime, timezone
from typing import TYPE_CHECKING, List

from sqlalchemy import DateTime, Integer, Select, String, Text, select
from sqlalchemy.orm import Mapped, mapped_column, relationship, validates

from contribsync.models.base import Base
from contribsync.models.log_entry import LogEntry

if TYPE_CHECKING:
    from contribsync.models.contributor import Contribution, Contributor

SHA1_RE = re.compile(r"^[0-9a-f]{40}$")


class Commit(Base):
    """Represents a commit of the mirrored repository.

    Commits are immutable once imported, only their contributions change.
    Primary keys follow discovery order within one import run (the most
    recent commit gets the lowest id), they are not chronological across runs.
    """

    __tablename__ = "commits"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    sha1: Mapped[str] = mapped_column(String(40), nullable=False, unique=True, index=True)
    author: Mapped[str] = mapped_column(String, nullable=False)
    message: Mapped[str] = mapped_column(Text, nullable=False, default="")
    authored_at: Mapped[datetime] = mapped_column(DateTime, nullable=False)

    contributions: Mapped[List["Contribution"]] = relationship(
        back_populates="commit", cascade="all, delete-orphan"
    )
    contributors: Mapped[List["Contributor"]] = relationship(
        secondary="contributions", viewonly=True, order_by="Contributor.name"
    )

    @validates("sha1")
    def _validate_sha1(self, key: str, value: str) -> str:
        if not value or not SHA1_RE.match(value):
            raise ValueError(f"sha1 is not a 40 character hex digest: {value!r}")
        return value

    @validates("author")
    def _validate_author(self, key: str, value: str) -> str:
        if not value or not value.strip():
            raise ValueError("author can't be blank")
        return value

    @classmethod
    def from_log_entry(cls, entry: LogEntry) -> "Commit":
        """Build a new commit from a record of the history log."""
        authored_at = entry.authored_at
        if authored_at.tzinfo is not None:
            authored_at = authored_at.astimezone(timezone.utc).replace(tzinfo=None)
        return cls(
            sha1=entry.sha1,
            author=entry.author,
            message=entry.message,
            authored_at=authored_at,
        )

    @classmethod
    def with_no_contributors(cls) -> Select:
        return select(cls).where(~cls.contributions.any()).order_by(cls.id)

    @property
    def short_sha1(self) -> str:
        return self.sha1[:7]

    def __repr__(self) -> str:
        return f"<Commit {self.short_sha1}>"
