"""End to end tests of an update against real git mirrors."""

from datetime import datetime

import pytest
from sqlalchemy import func, select

from conftest import NOW, FakeHistory, entry, make_commit, write_rules
from contribsync.core.history import GitHistory
from contribsync.core.lock import acquiring_sync_file
from contribsync.core.updater import RepoUpdater
from contribsync.errors import ImportValidationError, LockContentionError, SourceIOError
from contribsync.models import Commit, Contribution, Contributor, RepoUpdate


def run_update(mirror, settings, store, clock=lambda: NOW, **kwargs):
    updater = RepoUpdater(mirror.working_dir, settings=settings, store=store, clock=clock, **kwargs)
    return updater.update()


def snapshot(store):
    """Everything an update may change, in comparable form."""
    with store.session() as session:
        commits = sorted(session.scalars(select(Commit.sha1)))
        contributors = sorted(
            tuple(row) for row in session.execute(select(Contributor.name, Contributor.rank))
        )
        links = sorted(
            tuple(row)
            for row in session.execute(
                select(Commit.sha1, Contributor.name)
                .join(Contribution, Contribution.commit_id == Commit.id)
                .join(Contributor, Contribution.contributor_id == Contributor.id)
            )
        )
    return commits, contributors, links


def contributor_commits(store, name):
    with store.session() as session:
        contributor = session.scalar(select(Contributor).where(Contributor.name == name))
        if contributor is None:
            return None
        return sorted(c.sha1 for c in contributor.commits)


def test_first_update_imports_everything(upstream, mirror, settings, store):
    """Test a first update pulls, imports, assigns and ranks."""
    make_commit(upstream, "Bob Jones", "Add feature")
    make_commit(upstream, "Alice Smith and Carol White", "Fix bug")

    result = run_update(mirror, settings, store)

    # Initial commit was cloned, the other two come with the pull
    assert result.ncommits == 3
    assert result.gone_names == []
    assert result.database_updated
    assert result.cache_expired
    commits, contributors, _ = snapshot(store)
    assert len(commits) == 3
    assert contributors == [("Alice Smith", 1), ("Bob Jones", 2), ("Carol White", 2)]

    with store.session() as session:
        record = session.scalar(RepoUpdate.last())
    assert record.ncommits == 3
    assert record.started_at == record.pulled_at == record.ended_at == NOW


def test_update_is_idempotent(upstream, mirror, settings, store):
    """Test that a second update with nothing new changes nothing."""
    make_commit(upstream, "Bob Jones", "Add feature")
    run_update(mirror, settings, store)
    before = snapshot(store)
    settings.cache_dir.mkdir(parents=True)

    result = run_update(mirror, settings, store)

    assert result.ncommits == 0
    assert result.gone_names == []
    assert not result.database_updated
    assert not result.cache_expired
    assert settings.cache_dir.exists()
    assert snapshot(store) == before
    with store.session() as session:
        assert session.scalar(select(func.count(RepoUpdate.id))) == 2


def test_incremental_update(upstream, mirror, settings, store):
    run_update(mirror, settings, store)
    first = make_commit(upstream, "Bob Jones", "Add feature")
    second = make_commit(upstream, "Bob Jones", "Add another feature")

    result = run_update(mirror, settings, store)

    assert result.ncommits == 2
    assert contributor_commits(store, "Bob Jones") == sorted([first, second])
    _, contributors, _ = snapshot(store)
    assert contributors == [("Alice Smith", 2), ("Bob Jones", 1)]


def test_rename_between_updates(upstream, mirror, settings, store, names_file):
    """Test that Bob becomes Robert when the rules change."""
    bob_commits = sorted(
        [
            make_commit(upstream, "Bob", "Add feature"),
            make_commit(upstream, "Bob", "Add docs"),
        ]
    )
    run_update(mirror, settings, store)
    alice_commits = contributor_commits(store, "Alice Smith")

    write_rules(names_file, equivalences={"Bob": "Robert"})
    result = run_update(mirror, settings, store)

    assert result.ncommits == 0
    assert result.gone_names == ["Bob"]
    assert result.database_updated
    assert result.cache_expired
    assert contributor_commits(store, "Bob") is None
    assert contributor_commits(store, "Robert") == bob_commits
    assert contributor_commits(store, "Alice Smith") == alice_commits
    _, contributors, _ = snapshot(store)
    assert contributors == [("Alice Smith", 2), ("Robert", 1)]


def test_cache_expires_when_a_week_started(upstream, mirror, settings, store):
    """Test calendar driven expiration with nothing new."""
    run_update(mirror, settings, store, clock=lambda: datetime(2026, 10, 9, 12, 0))
    settings.cache_dir.mkdir(parents=True)

    result = run_update(mirror, settings, store)

    assert result.ncommits == 0
    assert result.gone_names == []
    assert result.cache_expired
    assert not settings.cache_dir.exists()


def test_failed_import_rolls_everything_back(settings, store, tmp_path):
    """Test that no commit of a failed import is kept."""
    history = FakeHistory([entry("c1"), entry("c0")])
    RepoUpdater(tmp_path, settings=settings, history=history, store=store, clock=lambda: NOW).update()

    bad = entry("c3").model_copy(update={"sha1": "not-a-sha"})
    history.entries = [entry("c5"), entry("c4"), bad, entry("c2"), entry("c1.5")] + history.entries

    with pytest.raises(ImportValidationError):
        RepoUpdater(tmp_path, settings=settings, history=history, store=store, clock=lambda: NOW).update()

    commits, _, _ = snapshot(store)
    assert commits == sorted([entry("c1").sha1, entry("c0").sha1])
    with store.session() as session:
        assert session.scalar(select(func.count(RepoUpdate.id))) == 1
    # The sync file is released
    with acquiring_sync_file(settings.lock_dir, "updating"):
        pass


def test_concurrent_update_fails_fast(settings, store, tmp_path):
    history = FakeHistory([entry("c1")])

    with acquiring_sync_file(settings.lock_dir, "updating"):
        with pytest.raises(LockContentionError):
            RepoUpdater(tmp_path, settings=settings, history=history, store=store).update()

    assert history.pulls == 0
    commits, _, _ = snapshot(store)
    assert commits == []


def test_pull_failure_leaves_database_alone(tmp_path, settings, store):
    """Test that a mirror that can't be pulled aborts before the transaction."""
    history = GitHistory(tmp_path / "not-a-repo")

    with pytest.raises(SourceIOError):
        RepoUpdater(tmp_path, settings=settings, history=history, store=store).update()

    with store.session() as session:
        assert session.scalar(select(func.count(RepoUpdate.id))) == 0
    with acquiring_sync_file(settings.lock_dir, "updating"):
        pass
