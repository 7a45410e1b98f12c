"""Tracking operations: start and stop tracking paths, manage categories.

Each operation updates content, registry and metadata together and saves
the workspace once at the end.
"""

import logging
import os
from pathlib import Path

from confect.errors import CategoryNotFoundError, MissingFileError
from confect.sync.mapper import pattern_for
from confect.validators import validate_category_name, validate_tracked_path
from confect.workspace import Workspace

logger = logging.getLogger(__name__)

DEFAULT_CATEGORY = "default"


def _check_name(name: str) -> None:
    valid, message = validate_category_name(name)
    if not valid:
        raise ValueError(message)


def _resolve_category(
    ws: Workspace,
    path: Path,
    pattern: str,
    category: str | None,
    create_category: bool,
) -> str:
    registry = ws.registry
    if category is not None:
        if not registry.exists(category):
            if not create_category:
                raise CategoryNotFoundError(category)
            _check_name(category)
            registry.create(category, include_patterns=[pattern])
        return category

    found = registry.find_for_path(path)
    if found is not None:
        return found.name
    if not registry.exists(DEFAULT_CATEGORY):
        registry.create(
            DEFAULT_CATEGORY, description="Files without a dedicated category"
        )
    return DEFAULT_CATEGORY


def track_path(
    ws: Workspace,
    path: str | Path,
    category: str | None = None,
    create_category: bool = False,
    encrypt: bool = False,
) -> list[Path]:
    """Start tracking *path* (file, symlink or directory).

    Category resolution: the explicit *category* (created on demand when
    *create_category* is set), else the first category that already claims
    the path, else ``default``.

    Returns:
        The system paths copied into the repository.

    Raises:
        ValueError: *path* is relative or the category name is invalid.
        ForbiddenPathError: *path* is a system-critical root.
        MissingFileError: *path* does not exist.
        CategoryNotFoundError: *category* does not exist and
            *create_category* is not set.
    """
    path = validate_tracked_path(path)
    if not os.path.lexists(path):
        raise MissingFileError(path)

    pattern = pattern_for(path)
    name = _resolve_category(ws, path, pattern, category, create_category)

    added = ws.reconciler.add(path, name, encrypt)

    if not ws.registry.contains_path(name, path):
        ws.registry.add_path(name, pattern)

    ws.save()
    logger.info(
        "Tracking %s in '%s' (%d file(s))", path, name, len(added)
    )
    return added


def untrack_path(
    ws: Workspace, path: str | Path, delete: bool = False
) -> list[Path]:
    """Stop tracking *path*.

    The include pattern registered for it is dropped from its category and
    its metadata entries are forgotten.  With *delete* the repository copy
    is removed as well.

    Returns:
        System paths whose repository copy existed.
    """
    path = Path(os.path.abspath(path))
    candidates = (str(path), f"{path}/**")

    owner = next(
        (
            cat
            for cat in ws.registry.list()
            if any(p in cat.paths for p in candidates)
        ),
        None,
    ) or ws.registry.find_for_path(path)

    if owner is None:
        logger.warning("%s is not tracked by any category", path)
        return []

    removed = ws.reconciler.remove(path, delete, category=owner.name)
    for pattern in candidates:
        ws.registry.remove_path(owner.name, pattern)

    ws.metadata.remove(path)
    for entry in removed:
        ws.metadata.remove(entry)

    ws.save()
    logger.info(
        "Stopped tracking %s in '%s'%s",
        path, owner.name, " and deleted repository copy" if delete else "",
    )
    return removed


def create_category(
    ws: Workspace,
    name: str,
    description: str | None = None,
    paths: list[str] | None = None,
    encrypt: list[str] | None = None,
) -> None:
    """Create and save a category with explicit include/encrypt patterns.

    Raises:
        ValueError: *name* is not a valid category name.
        CategoryExistsError: *name* is taken.
    """
    _check_name(name)
    cat = ws.registry.create(name, description, paths)
    cat.encrypt.extend(encrypt or [])
    ws.registry.save()


def delete_category(
    ws: Workspace, name: str, remove_files: bool = False
) -> list[Path]:
    """Delete category *name*, optionally with its repository subtree.

    Returns:
        System paths whose repository copy was removed.

    Raises:
        CategoryNotFoundError: No such category.
    """
    ws.registry.get(name)

    removed: list[Path] = []
    if remove_files:
        removed = ws.reconciler.purge_category(name)
        for entry in removed:
            ws.metadata.remove(entry)

    ws.registry.remove(name)
    ws.save()
    logger.info("Deleted category '%s'", name)
    return removed
