"""
Input validation for paths and category names.

Checks run before anything is written to the repository so a bad argument
never leaves a half-tracked file behind.
"""

import logging
import re
from pathlib import Path

from confect.errors import ForbiddenPathError

logger = logging.getLogger(__name__)

FORBIDDEN_ROOTS = frozenset(
    Path(p) for p in ("/", "/root", "/home", "/boot", "/dev", "/proc", "/sys", "/run")
)
EXPECTED_PREFIXES = (Path("/etc"), Path("/var"))

_CATEGORY_NAME = re.compile(r"^[A-Za-z0-9][A-Za-z0-9_.-]*$")


def format_validation_error(field_name: str, reason: str) -> str:
    """
    Generate consistent error message for validation failures.

    Args:
        field_name: Human-readable field name (e.g., "Category name")
        reason: Description of validation failure (e.g., "cannot be empty")
    """
    return f"{field_name} {reason}"


def normalize_path(path: str | Path) -> Path:
    """Return *path* as an absolute path with ``.`` and ``..`` collapsed.

    Purely lexical: symlinks are not resolved, and ``..`` never climbs
    above ``/``.
    """
    raw = Path(path)
    # Path already drops "." and empty parts
    parts: list[str] = []
    for part in raw.parts[1:] if raw.is_absolute() else raw.parts:
        if part == "..":
            if parts:
                parts.pop()
        else:
            parts.append(part)
    return Path("/").joinpath(*parts)


def validate_tracked_path(path: str | Path) -> Path:
    """
    Check that *path* may be tracked and return it normalised.

    The path is made canonical without resolving symlinks so a tracked
    symlink stays a symlink.

    Raises:
        ValueError: *path* is relative.
        ForbiddenPathError: *path* is one of the system-critical roots.

    Paths outside /etc and /var are accepted with a warning.
    """
    raw = Path(path)
    if not raw.is_absolute():
        raise ValueError(
            format_validation_error("Tracked path", f"must be absolute: {path}")
        )

    normalised = normalize_path(raw)

    if normalised in FORBIDDEN_ROOTS:
        raise ForbiddenPathError(normalised)

    if not any(
        normalised == prefix or prefix in normalised.parents
        for prefix in EXPECTED_PREFIXES
    ):
        logger.warning("Adding file outside /etc or /var: %s", normalised)

    return normalised


def validate_category_name(name: str) -> tuple[bool, str]:
    """
    Validate a category name.

    Returns:
        Tuple of (is_valid, error_message).
        Returns (True, "") if valid, (False, reason) if invalid.

    Validation rules:
        - Cannot be empty or whitespace-only
        - Cannot start with '.' (reserved for repository state)
        - Cannot contain '/' (a category is one directory level)
        - Letters, digits, '_', '-' and '.' only
    """
    if not name or not name.strip():
        return (False, format_validation_error("Category name", "cannot be empty"))

    if name.startswith("."):
        return (
            False,
            format_validation_error("Category name", "cannot start with '.'"),
        )

    if "/" in name:
        return (
            False,
            format_validation_error("Category name", "cannot contain '/'"),
        )

    if not _CATEGORY_NAME.match(name):
        return (
            False,
            format_validation_error(
                "Category name",
                "may only contain letters, digits, '_', '-' and '.'",
            ),
        )

    return (True, "")
