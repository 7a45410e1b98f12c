"""Pydantic models for reconciliation results.

- ``FileStatus``: classification of one system/repository pair.
- ``RestoreResult``: outcome of restoring one path.
- ``RestoreReport``: aggregate of a batch restore.
- ``SyncPreparation``: outcome of the pre-commit refresh pass.

All result models are frozen (immutable).
"""

from __future__ import annotations

from enum import Enum

from pydantic import BaseModel


class FileStatus(str, Enum):
    """Difference between a system file and its repository copy.

    Unchanged pairs have no status at all.
    """

    MODIFIED = "modified"  # both exist, content differs
    ADDED = "added"  # system only
    DELETED = "deleted"  # repository only
    MISSING = "missing"  # tracked, found on neither side


class RestoreResult(BaseModel):
    """Result of restoring one system path.

    Attributes:
        path: Absolute system path.
        success: Whether the content was written.
        error: Error message if the restore failed.
        metadata_error: Warning if content was restored but metadata
            (mode, ownership, symlink) could not be applied.
        backup_path: Where the previous system file was saved, if any.
    """

    path: str
    success: bool
    error: str | None = None
    metadata_error: str | None = None
    backup_path: str | None = None

    model_config = {"frozen": True}


class RestoreReport(BaseModel):
    """Aggregate report for a batch restore.

    Attributes:
        dry_run: Whether this was a preview (nothing written).
        results: Per-path results in request order.
        started_at: ISO 8601 timestamp when the batch started.
        completed_at: ISO 8601 timestamp when the batch finished.
    """

    dry_run: bool = False
    results: list[RestoreResult] = []
    started_at: str
    completed_at: str | None = None

    model_config = {"frozen": True}

    @property
    def restored(self) -> list[RestoreResult]:
        return [r for r in self.results if r.success]

    @property
    def restored_count(self) -> int:
        return len(self.restored)

    @property
    def failures(self) -> list[tuple[str, str]]:
        """``(path, error)`` pairs for every failed item."""
        return [
            (r.path, r.error or "unknown error")
            for r in self.results
            if not r.success
        ]

    @property
    def warnings(self) -> list[tuple[str, str]]:
        return [
            (r.path, r.metadata_error)
            for r in self.results
            if r.metadata_error
        ]


class SyncPreparation(BaseModel):
    """Outcome of refreshing the repository before a commit.

    Attributes:
        updated: System paths whose repository copy was rewritten.
        categories: Categories touched, sorted.
        message: Suggested commit message, ``None`` when nothing changed.
    """

    updated: list[str] = []
    categories: list[str] = []
    message: str | None = None

    model_config = {"frozen": True}

    @property
    def has_changes(self) -> bool:
        return self.message is not None
