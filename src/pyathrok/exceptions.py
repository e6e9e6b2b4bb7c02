"""Custom exception hierarchy for pyathrok."""

from __future__ import annotations


class AthrokError(Exception):
    """Base exception for all pyathrok errors."""


class AthrokConfigError(AthrokError):
    """Invalid or missing configuration.

    Raised at construction time, e.g. when a container asks for persistence
    without a store name or storage manager, or when the synchronous
    initializer is handed an asynchronous backend.
    """


class AthrokStorageError(AthrokError):
    """A bundled storage backend could not read or write its backing store."""

    def __init__(
        self,
        message: str,
        *,
        path: str = "",
    ) -> None:
        self.path = path
        super().__init__(message)
