"""History source backed by a local git mirror."""

import logging
from pathlib import Path
from typing import List, Optional

import git
from git import Repo

from contribsync.errors import SourceIOError
from contribsync.models.log_entry import LogEntry

logger = logging.getLogger(__name__)


class GitHistory:
    """Reads the commit log of a local mirror and keeps it up to date."""

    def __init__(self, path: Path, branch: str = "HEAD"):
        self.path = Path(path)
        self.branch = branch
        self._repo: Optional[Repo] = None

    @property
    def repo(self) -> Repo:
        """Get the git repository, opening it if needed."""
        if self._repo is None:
            try:
                self._repo = Repo(self.path)
            except (git.exc.InvalidGitRepositoryError, git.exc.NoSuchPathError) as e:
                raise SourceIOError(f"Not a git repository: {self.path}") from e
        return self._repo

    def pull(self) -> None:
        """Fetch new history from upstream into the mirror."""
        logger.info("pulling %s", self.path)
        self._git("pull", "--quiet")

    def log(self, branch: Optional[str] = None, limit: int = 100, offset: int = 0) -> List[LogEntry]:
        """Return up to ``limit`` commits, newest first, skipping ``offset`` from the tip."""
        rev = branch or self.branch
        if rev == "HEAD" and not self.repo.head.is_valid():
            # Nothing committed yet
            return []
        try:
            commits = list(self.repo.iter_commits(rev, max_count=limit, skip=offset))
        except (git.exc.GitCommandError, ValueError) as e:
            raise SourceIOError(f"Cannot read the log of {rev}: {e}") from e

        return [
            LogEntry(
                sha1=commit.hexsha,
                author=commit.author.name or "",
                message=commit.message,
                authored_at=commit.authored_datetime,
            )
            for commit in commits
        ]

    def detail(self, sha1: str) -> str:
        """Return the raw ``git show`` output of a commit."""
        return self._git("show", sha1)

    def _git(self, command: str, *args: str) -> str:
        try:
            return getattr(self.repo.git, command)(*args)
        except git.exc.GitCommandError as e:
            raise SourceIOError(f"git {command} failed: {e}") from e
