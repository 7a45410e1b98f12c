"""File handler module: byte-level copy/compare and encoding-aware reads.

Provides the small file I/O layer the reconciler builds on.  All functions
are synchronous; ``OSError`` is translated to ``ConfectIOError``.
"""

from __future__ import annotations

import filecmp
import shutil
from pathlib import Path

from charset_normalizer import from_bytes

from confect.errors import io_errors

# =============================================================================
# Read / Write
# =============================================================================


def read_bytes(path: Path) -> bytes:
    with io_errors("read", path):
        return Path(path).read_bytes()


def write_bytes(path: Path, data: bytes) -> int:
    """Write *data* to *path*, creating parent directories as needed.

    Returns:
        Number of bytes written.
    """
    path = Path(path)
    with io_errors("write", path):
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_bytes(data)
    return len(data)


def copy_file(source: Path, destination: Path) -> None:
    """Copy file content (following symlinks), creating parents."""
    destination = Path(destination)
    with io_errors("copy", source):
        destination.parent.mkdir(parents=True, exist_ok=True)
        shutil.copyfile(source, destination)


def read_text_with_encoding(path: Path) -> tuple[str, str]:
    """Read a file with automatic encoding detection.

    Reads raw bytes first; anything that is not valid UTF-8 goes through
    charset-normalizer.  Defaults to UTF-8 for empty files or when
    detection fails.

    Returns:
        Tuple of (content_string, detected_encoding).
    """
    raw = read_bytes(path)
    return decode_text(raw)


def decode_text(raw: bytes) -> tuple[str, str]:
    """Decode *raw*, trying strict UTF-8 before detection."""
    if not raw:
        return ("", "utf-8")
    try:
        return (raw.decode("utf-8"), "utf-8")
    except UnicodeDecodeError:
        pass

    result = from_bytes(raw).best()
    if result is None:
        encoding = "utf-8"
        content = raw.decode(encoding, errors="replace")
    else:
        encoding = result.encoding
        # ascii is a strict subset of utf-8
        if encoding == "ascii":
            encoding = "utf-8"
        content = str(result)
    return (content, encoding)


# =============================================================================
# Comparison
# =============================================================================


def files_equal(first: Path, second: Path) -> bool:
    """Return ``True`` when both files hold identical bytes."""
    with io_errors("compare", first):
        # filecmp caches by size and mtime, which a quick rewrite can keep
        filecmp.clear_cache()
        return filecmp.cmp(first, second, shallow=False)
