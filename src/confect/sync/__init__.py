"""Reconciliation between the system tree and the repository tree.

Modules:

- ``reconciler`` -- ``FileReconciler``: add, remove, status, diff, refresh
  and restore tracked files.
- ``mapper``     -- ``expand_category`` and repository walks: the single
  place where a category becomes a list of concrete paths.
- ``diff``       -- ``positional_diff``: index-paired line diff.
- ``commit``     -- ``prepare_sync``: refresh plus commit-message
  suggestion for the version-control collaborator.
- ``models``     -- ``FileStatus``, ``RestoreResult``, ``RestoreReport``,
  ``SyncPreparation``.

Usage example
-------------
::

    from pathlib import Path
    from confect.workspace import Workspace

    ws = Workspace.open(Path("/var/lib/confect/repo"))
    for path, state in ws.reconciler.status().items():
        print(state.value, path)

    report = ws.reconciler.restore_many(
        [Path("/etc/nginx/nginx.conf")], backup=True
    )
    print(report.restored_count, report.failures)
"""

from .commit import build_commit_message, prepare_sync
from .diff import positional_diff
from .mapper import expand_category, walk_repo_category
from .models import (
    FileStatus,
    RestoreReport,
    RestoreResult,
    SyncPreparation,
)
from .reconciler import FileReconciler

__all__ = [
    "FileReconciler",
    "FileStatus",
    "RestoreReport",
    "RestoreResult",
    "SyncPreparation",
    "build_commit_message",
    "expand_category",
    "positional_diff",
    "prepare_sync",
    "walk_repo_category",
]
