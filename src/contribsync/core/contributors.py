"""Keeps contributors and contributions in line with the current naming rules."""

import logging
from typing import Dict, FrozenSet, List, Set, Tuple

from sqlalchemy import delete, select
from sqlalchemy.orm import Session

from contribsync.core.names import NameResolver
from contribsync.models.commit import Commit
from contribsync.models.contributor import Contribution, Contributor

logger = logging.getLogger(__name__)

NamesPerCommit = Dict[str, FrozenSet[str]]


def compute_current_contributions(
    session: Session, resolver: NameResolver
) -> Tuple[Set[str], NamesPerCommit]:
    """Resolve the contributor names of every commit in the database.

    This ignores the contributions table altogether. It only takes into
    account the stored commits and the current naming rules, which may have
    changed in a way that affects any past commit.

    Returns the set of all current names, and the names of each commit
    keyed by sha1.
    """
    current_contributor_names: Set[str] = set()
    contributor_names_per_commit: NamesPerCommit = {}
    for commit in session.scalars(select(Commit).order_by(Commit.id)):
        names = resolver.resolve(commit)
        contributor_names_per_commit[commit.sha1] = names
        current_contributor_names.update(names)
    return current_contributor_names, contributor_names_per_commit


def update_contributors(session: Session, current_contributor_names: Set[str]) -> Set[str]:
    """Destroy contributors that are gone and clear the contributions of their commits.

    A name is gone when no stored commit resolves to it anymore, which
    happens when a new equivalence is known or a name gets denylisted.
    Rather than diffing contributions by hand, every commit of a gone
    contributor loses all of its contributions and is reassigned later.

    Returns the gone names.
    """
    previous_contributor_names = set(session.scalars(select(Contributor.name)))
    gone_names = previous_contributor_names - current_contributor_names
    if gone_names:
        commit_ids = destroy_gone_contributors(session, gone_names)
        if commit_ids:
            session.execute(
                delete(Contribution).where(Contribution.commit_id.in_(commit_ids))
            )
        session.flush()
        session.expire_all()
    return gone_names


def destroy_gone_contributors(session: Session, gone_names: Set[str]) -> List[int]:
    """Destroy the contributors in ``gone_names`` and return the ids of their commits."""
    gone_contributors = session.scalars(
        select(Contributor).where(Contributor.name.in_(gone_names))
    ).all()
    commit_ids = sorted(
        {commit.id for contributor in gone_contributors for commit in contributor.commits}
    )
    for contributor in gone_contributors:
        session.delete(contributor)
    session.flush()
    return commit_ids


def assign_contributors(session: Session, contributor_names_per_commit: NamesPerCommit) -> int:
    """Link every commit with no contributions to its resolved contributors.

    Commits that already have contributions are left alone. Returns the
    number of contributions created.
    """
    contributors_by_name: Dict[str, Contributor] = {}
    ncontributions = 0
    for commit in session.scalars(Commit.with_no_contributors()).all():
        for name in sorted(contributor_names_per_commit.get(commit.sha1, ())):
            contributor = contributors_by_name.get(name)
            if contributor is None:
                contributor = find_or_create_contributor(session, name)
                contributors_by_name[name] = contributor
            session.add(Contribution(commit=commit, contributor=contributor))
            ncontributions += 1
    session.flush()
    return ncontributions


def find_or_create_contributor(session: Session, name: str) -> Contributor:
    contributor = session.scalar(select(Contributor).where(Contributor.name == name))
    if contributor is None:
        contributor = Contributor(name=name)
        session.add(contributor)
        session.flush()
        logger.debug("created contributor %s", name)
    return contributor
