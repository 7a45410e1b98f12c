"""Exception types raised by confect components.

Every failure a caller can act on derives from ``ConfectError`` so a single
``except ConfectError`` at the edge of a command is enough.  The hierarchy
mirrors the error kinds of the reconciliation core:

- ``NotFoundError`` -- category, tracked path or repository copy absent.
- ``CategoryExistsError`` -- duplicate category name.
- ``ForbiddenPathError`` -- attempt to track a system-critical root.
- ``ConfectIOError`` -- any filesystem failure (wraps ``OSError``).
- ``SerializationError`` -- persisted file unparsable or unencodable.
- ``EncryptionError`` / ``DecryptionError`` -- codec failures.
- ``PermissionDeniedError`` -- ownership change without privilege.
"""

from __future__ import annotations

from collections.abc import Iterator
from contextlib import contextmanager
from pathlib import Path


class ConfectError(Exception):
    """Base class for all confect errors."""


# ---------------------------------------------------------------------------
# Lookup failures
# ---------------------------------------------------------------------------


class NotFoundError(ConfectError):
    """A category, tracked path or repository copy does not exist."""


class CategoryNotFoundError(NotFoundError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Category '{name}' not found")
        self.name = name


class PathNotTrackedError(NotFoundError):
    def __init__(self, path: str | Path) -> None:
        super().__init__(f"Path not tracked: {path}")
        self.path = str(path)


class MissingFileError(NotFoundError):
    """A file expected on disk (system or repository side) is absent."""

    def __init__(self, path: str | Path) -> None:
        super().__init__(f"File not found: {path}")
        self.path = str(path)


class CategoryExistsError(ConfectError):
    def __init__(self, name: str) -> None:
        super().__init__(f"Category '{name}' already exists")
        self.name = name


class ForbiddenPathError(ConfectError):
    def __init__(self, path: str | Path) -> None:
        super().__init__(
            f"Forbidden path: {path}. "
            "Cannot track system-critical directories."
        )
        self.path = str(path)


# ---------------------------------------------------------------------------
# Repository / configuration
# ---------------------------------------------------------------------------


class NotInitializedError(ConfectError):
    def __init__(self, path: str | Path) -> None:
        super().__init__(
            f"Repository not initialized at {path}. "
            "Run Repository.init() first."
        )
        self.path = str(path)


class RepositoryExistsError(ConfectError):
    def __init__(self, path: str | Path) -> None:
        super().__init__(f"Repository already initialized at {path}")
        self.path = str(path)


class ConfigError(ConfectError):
    """Configuration is missing or invalid."""


# ---------------------------------------------------------------------------
# I/O, persistence, crypto, privileges
# ---------------------------------------------------------------------------


class ConfectIOError(ConfectError):
    """A filesystem operation failed.

    The original ``OSError`` is available as ``__cause__``.
    """

    def __init__(self, message: str, path: str | Path | None = None) -> None:
        super().__init__(message)
        self.path = str(path) if path is not None else None


class SerializationError(ConfectError):
    """A persisted file could not be parsed or written."""


class EncryptionError(ConfectError):
    pass


class DecryptionError(ConfectError):
    pass


class PermissionDeniedError(ConfectError):
    def __init__(self, path: str | Path, detail: str = "") -> None:
        message = f"Permission denied: {path}"
        if detail:
            message += f" ({detail})"
        super().__init__(message)
        self.path = str(path)


@contextmanager
def io_errors(action: str, path: str | Path) -> Iterator[None]:
    """Translate ``OSError`` raised inside the block into ``ConfectIOError``.

    ``ConfectError`` subclasses pass through untouched.

    Args:
        action: Short verb phrase for the message (e.g. ``"copy"``).
        path: The path the operation was working on.
    """
    try:
        yield
    except ConfectError:
        raise
    except OSError as exc:
        raise ConfectIOError(
            f"Failed to {action} {path}: {exc.strerror or exc}", path
        ) from exc
