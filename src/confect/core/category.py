"""Categories and the category registry.

A category groups related system files under one name.  It carries three
ordered glob lists (``paths`` to include, ``encrypt`` for files stored
encrypted, ``exclude`` to skip) and owns the repository subtree rooted at its
name, which mirrors the absolute filesystem layout::

    /etc/nginx/nginx.conf  <->  nginx/etc/nginx/nginx.conf

Matching resolution:

1. **Exclude check** -- any exclude glob match rejects the path outright.
2. **Include check** -- any include glob match, or an include entry equal to
   the path string, accepts it.

Globs use ``fnmatch`` semantics, so ``*`` also crosses ``/``.

The registry persists to ``.confect/categories.yml``.  Iteration follows the
order categories were loaded or created, but that order is not a contract:
when several categories match one path, ``find_for_path`` picks whichever it
meets first.
"""

from __future__ import annotations

import fnmatch
import logging
from pathlib import Path, PurePosixPath
from typing import TYPE_CHECKING, Any

import yaml
from pydantic import BaseModel, Field, ValidationError

from confect.errors import (
    CategoryExistsError,
    CategoryNotFoundError,
    SerializationError,
    io_errors,
)
from confect.validators import normalize_path

if TYPE_CHECKING:
    from confect.core.repository import Repository

logger = logging.getLogger(__name__)


class Category(BaseModel):
    """A named group of tracked paths.

    Attributes:
        name: Unique category name; also the repository subtree root.
        description: Optional free-form description.
        paths: Include glob patterns (or literal paths), in order.
        encrypt: Glob patterns for files stored encrypted.
        exclude: Glob patterns that are never tracked.
    """

    name: str
    description: str | None = None
    paths: list[str] = Field(default_factory=list)
    encrypt: list[str] = Field(default_factory=list)
    exclude: list[str] = Field(default_factory=list)

    # ------------------------------------------------------------------
    # Classification
    # ------------------------------------------------------------------

    def is_excluded(self, path: str | Path) -> bool:
        """Return ``True`` if *path* matches any exclude pattern."""
        path_str = str(path)
        return any(
            fnmatch.fnmatchcase(path_str, pattern)
            for pattern in self.exclude
        )

    def matches(self, path: str | Path) -> bool:
        """Return ``True`` if this category claims *path*.

        Exclusions win over inclusions unconditionally.
        """
        if self.is_excluded(path):
            return False

        path_str = str(path)
        for pattern in self.paths:
            if fnmatch.fnmatchcase(path_str, pattern):
                return True
            if pattern == path_str:
                return True
        return False

    def should_encrypt(self, path: str | Path) -> bool:
        """Return ``True`` if *path* matches any encrypt pattern."""
        path_str = str(path)
        return any(
            fnmatch.fnmatchcase(path_str, pattern)
            for pattern in self.encrypt
        )

    # ------------------------------------------------------------------
    # Path mapping
    # ------------------------------------------------------------------

    def repo_path_for(self, system_path: str | Path) -> Path:
        """Map an absolute system path to its repository-relative path.

        ``/etc/nginx/nginx.conf`` in category ``nginx`` becomes
        ``nginx/etc/nginx/nginx.conf``.  ``..`` parts are collapsed first
        so the result always stays inside the category subtree.
        """
        relative = str(normalize_path(system_path)).lstrip("/")
        return Path(self.name) / relative

    def system_path_for(self, repo_path: str | Path) -> Path | None:
        """Map a repository-relative path back to its system path.

        The first component (the category name) is dropped and a leading
        ``/`` restored.  A bare category root maps to no system file.
        """
        parts = PurePosixPath(repo_path).parts
        if len(parts) < 2:
            return None
        return Path("/").joinpath(*parts[1:])

    def to_record(self) -> dict[str, Any]:
        """Serialise to the on-disk record (everything but the name)."""
        record = self.model_dump(exclude={"name"})
        if record["description"] is None:
            del record["description"]
        return record


class CategoryRegistry:
    """Holds the categories of one repository.

    Args:
        categories: Initial categories (names must be unique).
        path: Location of the categories file used by ``save()``.
    """

    def __init__(
        self,
        categories: list[Category] | None = None,
        path: Path | None = None,
    ) -> None:
        self._categories: dict[str, Category] = {}
        self._path = path
        for category in categories or []:
            self.add(category)

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, repo: Repository) -> CategoryRegistry:
        """Load the registry from ``repo``'s categories file.

        A missing file yields an empty registry.

        Raises:
            SerializationError: The file is not valid YAML or does not
                match the expected schema.
        """
        return cls.load_file(repo.categories_file)

    @classmethod
    def load_file(cls, path: Path) -> CategoryRegistry:
        if not path.exists():
            return cls(path=path)

        with io_errors("read", path):
            text = path.read_text(encoding="utf-8")
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise SerializationError(
                f"Cannot parse categories file {path}: {exc}"
            ) from exc
        if not isinstance(data, dict):
            raise SerializationError(
                f"Categories file {path} must contain a mapping"
            )

        raw = data.get("categories") or {}
        if not isinstance(raw, dict):
            raise SerializationError(
                f"'categories' in {path} must be a mapping"
            )

        categories = []
        for name, record in raw.items():
            try:
                categories.append(
                    Category(name=str(name), **(record or {}))
                )
            except (TypeError, ValidationError) as exc:
                raise SerializationError(
                    f"Invalid category '{name}' in {path}: {exc}"
                ) from exc

        logger.debug("Loaded %d categories from %s", len(categories), path)
        return cls(categories, path=path)

    def save(self, path: Path | None = None) -> Path:
        """Write the registry to disk and return the file written.

        Args:
            path: Override target; defaults to the file the registry was
                loaded from.
        """
        target = path or self._path
        if target is None:
            raise SerializationError(
                "Category registry has no file to save to"
            )

        payload = {
            "categories": {
                name: cat.to_record()
                for name, cat in self._categories.items()
            }
        }
        try:
            text = yaml.safe_dump(
                payload, sort_keys=False, default_flow_style=False
            )
        except yaml.YAMLError as exc:
            raise SerializationError(
                f"Cannot encode categories: {exc}"
            ) from exc

        with io_errors("write", target):
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        return target

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    def list(self) -> list[Category]:
        return list(self._categories.values())

    def exists(self, name: str) -> bool:
        return name in self._categories

    def get(self, name: str) -> Category:
        """Return the category called *name*.

        Raises:
            CategoryNotFoundError: No such category.
        """
        try:
            return self._categories[name]
        except KeyError:
            raise CategoryNotFoundError(name) from None

    def get_mut(self, name: str) -> Category:
        """Return the category for in-place edits (same object as ``get``)."""
        return self.get(name)

    def find_for_path(self, path: str | Path) -> Category | None:
        """Return the first category that claims *path*, if any."""
        for category in self._categories.values():
            if category.matches(path):
                return category
        return None

    def contains_path(self, name: str, path: str | Path) -> bool:
        category = self._categories.get(name)
        return category is not None and category.matches(path)

    def matches(self, path: str | Path) -> bool:
        """Return ``True`` if any category claims *path*."""
        return self.find_for_path(path) is not None

    # ------------------------------------------------------------------
    # Mutation
    # ------------------------------------------------------------------

    def add(self, category: Category) -> None:
        if category.name in self._categories:
            raise CategoryExistsError(category.name)
        self._categories[category.name] = category

    def create(
        self,
        name: str,
        description: str | None = None,
        include_patterns: list[str] | None = None,
    ) -> Category:
        """Create and register a new category.

        Raises:
            CategoryExistsError: *name* is already taken.
        """
        category = Category(
            name=name,
            description=description,
            paths=list(include_patterns or []),
        )
        self.add(category)
        logger.info("Created category '%s'", name)
        return category

    def remove(self, name: str) -> Category:
        try:
            return self._categories.pop(name)
        except KeyError:
            raise CategoryNotFoundError(name) from None

    def add_path(self, name: str, pattern: str, encrypt: bool = False) -> None:
        """Append *pattern* to the includes (and encrypt list) if absent."""
        category = self.get_mut(name)
        if pattern not in category.paths:
            category.paths.append(pattern)
        if encrypt and pattern not in category.encrypt:
            category.encrypt.append(pattern)

    def remove_path(self, name: str, pattern: str) -> None:
        """Drop *pattern* from both the include and encrypt lists."""
        category = self.get_mut(name)
        category.paths = [p for p in category.paths if p != pattern]
        category.encrypt = [p for p in category.encrypt if p != pattern]

    def __iter__(self):
        return iter(list(self._categories.values()))

    def __len__(self) -> int:
        return len(self._categories)
