"""Expansion of categories into concrete paths.

Every operation that needs "the files of a category" goes through this
module so inclusion and exclusion are decided in one place:

- ``expand_category`` -- live system side: include globs expanded against
  the filesystem, excludes applied.
- ``walk_repo_category`` -- repository side: files under the category
  subtree paired with the system path they map back to.
- ``walk_entries`` -- regular files and symlinks under a directory, without
  following symlinks.
- ``pattern_for`` -- the registry pattern that covers one tracked path.

Expansion rules for one include entry:

1. **Glob** (contains ``*``, ``?`` or ``[``) -- ``glob.glob`` with ``**``
   recursion and hidden files; directories in the result are skipped.
2. **Literal directory** -- every file and symlink beneath it.
3. **Literal path** -- yielded as-is, even if it does not exist, so a stale
   entry can be reported.
"""

from __future__ import annotations

import glob
import os
import stat
from collections.abc import Iterator
from pathlib import Path

from confect.core.category import Category


def pattern_for(path: Path) -> str:
    """Registry pattern for *path*: directories cover everything below."""
    if path.is_dir() and not path.is_symlink():
        return f"{path}/**"
    return str(path)


def walk_entries(root: Path) -> Iterator[Path]:
    """Yield regular files and symlinks under *root*, sorted per directory.

    Symlinks (to files or directories) are yielded but never descended.
    """
    for dirpath, dirnames, filenames in os.walk(root, followlinks=False):
        dirnames.sort()
        base = Path(dirpath)
        for name in dirnames:
            if (base / name).is_symlink():
                yield base / name
        for name in sorted(filenames):
            path = base / name
            mode = os.lstat(path).st_mode
            if stat.S_ISREG(mode) or stat.S_ISLNK(mode):
                yield path


def _expand_pattern(pattern: str) -> Iterator[Path]:
    if glob.has_magic(pattern):
        for match in sorted(
            glob.glob(pattern, recursive=True, include_hidden=True)
        ):
            path = Path(match)
            if path.is_dir() and not path.is_symlink():
                continue
            yield path
        return

    path = Path(pattern)
    if path.is_dir() and not path.is_symlink():
        yield from walk_entries(path)
    else:
        yield path


def expand_category(category: Category) -> list[Path]:
    """Expand *category* against the live filesystem.

    Returns:
        Deduplicated system paths in include-pattern order.  Literal
        includes that do not exist are kept; excluded paths are dropped.
    """
    seen: dict[Path, None] = {}
    for pattern in category.paths:
        for path in _expand_pattern(pattern):
            if category.is_excluded(path):
                continue
            seen.setdefault(path, None)
    return list(seen)


def walk_repo_category(
    repo_root: Path, category: Category
) -> list[tuple[Path, Path]]:
    """Pair every file under the category subtree with its system path.

    Returns:
        ``(repo_file, system_path)`` tuples; repository entries that map
        to no system path are skipped.
    """
    category_dir = repo_root / category.name
    if not category_dir.is_dir():
        return []

    pairs: list[tuple[Path, Path]] = []
    for dirpath, dirnames, filenames in os.walk(category_dir):
        dirnames.sort()
        for name in sorted(filenames):
            repo_file = Path(dirpath) / name
            if not repo_file.is_file() or repo_file.is_symlink():
                continue
            system_path = category.system_path_for(
                repo_file.relative_to(repo_root)
            )
            if system_path is not None:
                pairs.append((repo_file, system_path))
    return pairs
