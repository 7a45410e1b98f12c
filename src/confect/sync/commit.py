"""Pre-commit preparation: refresh, capture metadata, suggest a message.

Version control itself is left to the caller.  ``prepare_sync`` only needs
the caller's list of changed working-tree paths (repository-relative) to
describe files that were added since the last commit.
"""

from __future__ import annotations

import logging
from collections import Counter
from collections.abc import Sequence
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING

from confect.errors import PathNotTrackedError
from confect.sync.models import SyncPreparation

if TYPE_CHECKING:
    from confect.workspace import Workspace

logger = logging.getLogger(__name__)


def _category_counts(vcs_changes: Sequence[str | Path]) -> Counter[str]:
    """Count changed paths per top-level directory, skipping dot entries."""
    counts: Counter[str] = Counter()
    for change in vcs_changes:
        parts = PurePosixPath(change).parts
        if not parts or parts[0].startswith("."):
            continue
        counts[parts[0]] += 1
    return counts


def build_commit_message(
    updated_count: int,
    categories: Sequence[str],
    vcs_changes: Sequence[str | Path] = (),
) -> str | None:
    """Suggest a commit message.

    Refreshed files take priority.  Otherwise the change list is grouped by
    category (its first path component).  Returns ``None`` when there is
    nothing to describe.
    """
    if updated_count:
        distinct = sorted(set(categories))
        if len(distinct) == 1:
            return f"Update {distinct[0]} ({updated_count} files)"
        return (
            f"Update {updated_count} files across "
            f"{len(distinct)} categories"
        )

    if not vcs_changes:
        return None

    counts = _category_counts(vcs_changes)
    if not counts:
        return f"Add {len(vcs_changes)} files"
    if len(counts) == 1:
        ((name, count),) = counts.items()
        return f"Add {name} ({count} files)"

    ordered = sorted(counts.items(), key=lambda item: (-item[1], item[0]))
    return "Add " + ", ".join(f"{name} ({count})" for name, count in ordered)


def prepare_sync(
    workspace: Workspace, vcs_changes: Sequence[str | Path] = ()
) -> SyncPreparation:
    """Bring the repository up to date with the system before a commit.

    Refreshes every stale repository copy, recaptures metadata for the
    refreshed files, saves the metadata store and builds a message.

    Args:
        workspace: Loaded repository components.
        vcs_changes: Repository-relative paths the version-control
            collaborator reports as changed.
    """
    reconciler = workspace.reconciler
    updated = reconciler.refresh_all()

    categories: list[str] = []
    if updated:
        for path in updated:
            workspace.metadata.update_from_system(path)
            try:
                categories.append(reconciler.get_category(path))
            except PathNotTrackedError:
                logger.debug("Refreshed path %s has no category", path)
        workspace.metadata.save()

    message = build_commit_message(len(updated), categories, vcs_changes)
    if message is None:
        logger.info("Nothing to sync")
    return SyncPreparation(
        updated=[str(p) for p in updated],
        categories=sorted(set(categories)),
        message=message,
    )
