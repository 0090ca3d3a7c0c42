"""Shared fixtures for contribsync tests."""

import hashlib
import json
from datetime import datetime, timedelta
from pathlib import Path
from typing import Dict, List, Optional

import pytest
from git import Actor, Repo

from contribsync.config import Settings
from contribsync.core.store import Store
from contribsync.models import LogEntry

NOW = datetime(2026, 10, 14, 12, 0)  # a Wednesday


def sha(label: str) -> str:
    return hashlib.sha1(label.encode()).hexdigest()


def entry(label: str, author: str = "Jane Doe", message: Optional[str] = None) -> LogEntry:
    return LogEntry(
        sha1=sha(label),
        author=author,
        message=message if message is not None else f"Commit {label}",
        authored_at=NOW - timedelta(hours=1),
    )


class FakeHistory:
    """In-memory history source, newest commit first."""

    def __init__(self, entries: Optional[List[LogEntry]] = None, details: Optional[Dict[str, str]] = None):
        self.entries = list(entries or [])
        self.details = details or {}
        self.pulls = 0
        self.pages = []

    def pull(self) -> None:
        self.pulls += 1

    def log(self, branch=None, limit=100, offset=0) -> List[LogEntry]:
        self.pages.append((limit, offset))
        return self.entries[offset : offset + limit]

    def detail(self, sha1: str) -> str:
        return self.details.get(sha1, "")


def make_commit(repo: Repo, author: str, message: str) -> str:
    """Commit a change to ``repo`` authored by ``author``, return its sha1."""
    path = Path(repo.working_dir) / "CHANGELOG"
    with open(path, "a") as f:
        f.write(f"{message}\n")
    repo.index.add(["CHANGELOG"])
    actor = Actor(author, f"{author.split()[0].lower()}@example.com")
    return repo.index.commit(message, author=actor, committer=actor).hexsha


@pytest.fixture
def upstream(tmp_path):
    """Upstream repository the mirror pulls from."""
    repo = Repo.init(tmp_path / "upstream")
    with repo.config_writer() as config:
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
    make_commit(repo, "Alice Smith", "Initial commit")
    return repo


@pytest.fixture
def mirror(tmp_path, upstream):
    """Local mirror cloned from upstream."""
    repo = Repo.clone_from(upstream.working_dir, tmp_path / "mirror")
    with repo.config_writer() as config:
        config.set_value("pull", "ff", "only")
        config.set_value("user", "name", "Test User")
        config.set_value("user", "email", "test@example.com")
    return repo


@pytest.fixture
def names_file(tmp_path):
    return tmp_path / "names.json"


def write_rules(names_file: Path, denylist=(), equivalences=None) -> None:
    names_file.write_text(
        json.dumps({"denylist": list(denylist), "equivalences": equivalences or {}})
    )


@pytest.fixture
def settings(tmp_path, names_file):
    return Settings(
        database_url=f"sqlite+pysqlite:///{tmp_path / 'contribsync.db'}",
        batch_size=100,
        cache_dir=tmp_path / "cache" / "views",
        lock_dir=tmp_path / "tmp",
        names_file=names_file,
    )


@pytest.fixture
def store(settings):
    store = Store(settings.database_url)
    store.ensure_schema()
    return store


@pytest.fixture
def session(store):
    with store.session() as session:
        yield session
