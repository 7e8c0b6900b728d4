"""Exception hierarchy for the catalog.

Every error raised by the catalog service derives from CatalogError so
callers can catch the whole family, while CommitConflictError stays distinct
as the one expected, retryable outcome.
"""

from __future__ import annotations


class CatalogError(RuntimeError):
    """Base exception for all catalog errors."""


class BackendError(CatalogError):
    """Raised when the registry or the object store cannot be reached or fails."""


class NotFoundError(CatalogError):
    """Raised when no catalog entry matches an identifier."""


class AlreadyExistsError(CatalogError):
    """Raised when registering an identifier that already has an entry."""


class CommitConflictError(CatalogError):
    """Raised when a compare-and-swap commit lost against a concurrent writer.

    The caller should reload the table, re-apply its change and retry.
    """


class RegistryIntegrityError(CatalogError):
    """Raised when more than one entry matched a key that must be unique."""


class MetadataDecodeError(CatalogError):
    """Raised when metadata bytes do not parse as table metadata."""
