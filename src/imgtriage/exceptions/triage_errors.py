"""
Domain-specific errors for the image triage application.

This module defines a hierarchy of custom exceptions that are specific to the
triage domain logic. Running off the end of the slideshow is deliberately not
part of it: navigation reports that condition by returning None.
"""

from pathlib import Path


class TriageError(Exception):
    """Base class for all triage domain errors.

    This exception should not be raised directly. Instead, subclass it to create
    more specific error types.
    """


class SourceUnavailable(TriageError):
    """Raised when the image folder listing cannot be read."""


class EmptyIndex(TriageError):
    """Raised when a session has no image entries to show."""


class EntryNotFound(TriageError):
    """Raised when a path is not part of the session's index."""


class RenameFailed(TriageError):
    """Raised when applying a name prefix to a file fails."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot rename '{path}': {reason}")
        self.path = path
        self.reason = reason


class MoveFailed(TriageError):
    """Raised when a single file cannot be moved (or deleted) during a bulk pass."""

    def __init__(self, path: Path, reason: str):
        super().__init__(f"Cannot move '{path}': {reason}")
        self.path = path
        self.reason = reason


class ViewerProcessLost(TriageError):
    """Raised when the external viewer process exited or cannot be reached."""


class ConfigError(TriageError):
    """Raised when the persisted configuration is malformed."""
