"""Exception hierarchy shared by the registry, the photo manager and the API layer."""

from __future__ import annotations


class TodoAppError(Exception):
    """Base exception for all todo service errors."""

    def __init__(self, message: str) -> None:
        super().__init__(message)
        self.message = message


class ValidationError(TodoAppError):
    """Raised when client input is invalid (blank text, bad upload)."""


class NotFoundError(TodoAppError):
    """Raised when a todo or its photo attachment does not exist."""


class TransformError(TodoAppError):
    """Raised when an uploaded image cannot be normalized."""


class StorageError(TodoAppError):
    """Raised when an object store put/delete/sign operation fails."""


class NotConfiguredError(StorageError):
    """Raised by the object store when no bucket is configured."""

    def __init__(self, message: str = "Photo storage is not configured") -> None:
        super().__init__(message)
