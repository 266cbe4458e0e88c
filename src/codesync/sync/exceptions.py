"""Exceptions for sync engine operations."""


class SyncError(Exception):
    """Base exception for all sync engine operations."""


class TreeConflictError(SyncError):
    """Raised when a tree node exists with the same name but a different type."""


class CommandParseError(SyncError):
    """Raised when a structured tool call cannot be turned into a FileCommand."""
