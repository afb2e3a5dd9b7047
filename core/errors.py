"""Workspace importer exception hierarchy.

Each stage of an import raises its own error type so the orchestrator can
report what went wrong without inspecting messages.
"""

from __future__ import annotations


class WorkspaceImportError(Exception):
    """Base exception for all import failures."""


class ArchiveError(WorkspaceImportError):
    """Raised when the source archive cannot be obtained or opened."""


class ArchiveDownloadError(ArchiveError):
    """Raised when the archive URL cannot be downloaded."""


class ArchiveExtractionError(ArchiveError):
    """Raised when the downloaded archive is corrupt or unreadable."""


class ImportAbortedError(WorkspaceImportError):
    """Raised when listing rows failed to persist and the run must roll back."""


class FileUploadError(WorkspaceImportError):
    """Raised by a file manager when an upload does not complete."""
