"""Contributor and Contribution models."""

from typing import TYPE_CHECKING, List, Optional

from sqlalchemy import ForeignKey, Integer, Select, String, UniqueConstraint, func, select
from sqlalchemy.orm import Mapped, mapped_column, relationship

from contribsync.models.base import Base

if TYPE_CHECKING:
    from contribsync.models.commit import Commit


class Contributor(Base):
    """A canonical contributor name together with its current rank."""

    __tablename__ = "contributors"

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    name: Mapped[str] = mapped_column(String, nullable=False, unique=True, index=True)
    rank: Mapped[Optional[int]] = mapped_column(Integer, nullable=True)

    contributions: Mapped[List["Contribution"]] = relationship(
        back_populates="contributor", cascade="all, delete-orphan"
    )
    commits: Mapped[List["Commit"]] = relationship(
        secondary="contributions", viewonly=True, order_by="Commit.id"
    )

    @classmethod
    def all_with_ncontributions(cls) -> Select:
        """Select (contributor, ncontributions) rows, most contributions first.

        Ties are ordered by name.
        """
        ncontributions = func.count(Contribution.id).label("ncontributions")
        return (
            select(cls, ncontributions)
            .outerjoin(cls.contributions)
            .group_by(cls.id)
            .order_by(ncontributions.desc(), cls.name)
        )

    def __repr__(self) -> str:
        return f"<Contributor {self.name!r} rank={self.rank}>"


class Contribution(Base):
    """Links one commit to one of its contributors."""

    __tablename__ = "contributions"
    __table_args__ = (UniqueConstraint("commit_id", "contributor_id"),)

    id: Mapped[int] = mapped_column(Integer, primary_key=True, autoincrement=True)
    commit_id: Mapped[int] = mapped_column(
        ForeignKey("commits.id"), nullable=False, index=True
    )
    contributor_id: Mapped[int] = mapped_column(
        ForeignKey("contributors.id"), nullable=False, index=True
    )

    commit: Mapped["Commit"] = relationship(back_populates="contributions")
    contributor: Mapped["Contributor"] = relationship(back_populates="contributions")
