# SPDX-License-Identifier: LGPL-2.1-only
# Copyright (c) 2026 Akshat Kotpalliwar (alias IntegerAlex)

"""
Catalog Backup/Restore Exceptions - Custom exceptions for the catalogbr package.
"""


class CatalogBRError(Exception):
    """Base exception for all catalogbr errors."""

    def __init__(self, message: str, details: dict | None = None):
        self.message = message
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        if self.details:
            return f"{self.message} | Details: {self.details}"
        return self.message


class ConfigurationError(CatalogBRError):
    """Raised when configuration is invalid."""

    pass


class ArchiveError(CatalogBRError):
    """Raised when an archive cannot be created or extracted."""

    pass


class ArchiveExistsError(ArchiveError):
    """Raised when a backup target already exists and overwrite is off."""

    pass


class ArchiveNotFoundError(ArchiveError):
    """Raised when a restore source archive does not exist."""

    pass


class UnreachablePathError(ArchiveError):
    """Raised when the parent directory of a backup target cannot be created."""

    pass


class ConcurrentExecutionError(CatalogBRError):
    """Raised when a job cannot be admitted because another one is running."""

    pass


class StageError(CatalogBRError):
    """Raised when an entity operation fails inside a pipeline stage."""

    pass


class LifecycleError(CatalogBRError):
    """Raised when the restore lock/commit/reload sequence fails."""

    pass


class SerializationError(CatalogBRError):
    """Raised when an entity cannot be encoded or decoded."""

    pass


class ResourceStoreError(CatalogBRError):
    """Raised when resource store operations fail."""

    pass


class CatalogError(CatalogBRError):
    """Raised when a catalog mutation violates catalog rules."""

    pass
