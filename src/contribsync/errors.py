"""Exceptions raised by contribsync."""

from typing import List


class ContribSyncError(Exception):
    """Base class for all contribsync errors."""


class ConfigurationError(ContribSyncError):
    """Settings or the naming ruleset could not be loaded."""


class LockContentionError(ContribSyncError):
    """Another update is already running."""


class SourceIOError(ContribSyncError):
    """The git mirror could not be pulled or read."""


class ImportValidationError(ContribSyncError):
    """A commit could not be persisted. The whole import is rolled back."""

    def __init__(self, sha1: str, details: List[str]):
        self.sha1 = sha1
        self.details = details
        super().__init__(f"couldn't import commit {sha1}: {'; '.join(details)}")
