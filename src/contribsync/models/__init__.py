"""Data models for contribsync."""

from .base import Base
from .commit import Commit
from .contributor import Contribution, Contributor
from .log_entry import LogEntry
from .naming_rules import NamingRules
from .repo_update import RepoUpdate

__all__ = [
    "Base",
    "Commit",
    "Contribution",
    "Contributor",
    "LogEntry",
    "NamingRules",
    "RepoUpdate",
]
