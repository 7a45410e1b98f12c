"""POSIX metadata capture and restore.

File content lives in the category subtrees; everything git cannot carry
(permission bits, ownership, symlink targets) lives in
``.confect/metadata.yml`` as a flat mapping from absolute system path to a
``FileMetadata`` record.  Entries go stale as soon as the file changes
without a new capture.

Known limitation: ownership is never restored on symlinks.
"""

from __future__ import annotations

import grp
import logging
import os
import pwd
import stat
from datetime import datetime, timezone
from pathlib import Path
from typing import TYPE_CHECKING

import yaml
from pydantic import BaseModel, ValidationError

from confect.errors import (
    ConfectIOError,
    PermissionDeniedError,
    SerializationError,
    io_errors,
)

if TYPE_CHECKING:
    from confect.core.repository import Repository

logger = logging.getLogger(__name__)


def _owner_name(uid: int) -> str:
    try:
        return pwd.getpwuid(uid).pw_name
    except KeyError:
        return str(uid)


def _group_name(gid: int) -> str:
    try:
        return grp.getgrgid(gid).gr_name
    except KeyError:
        return str(gid)


class FileMetadata(BaseModel):
    """Out-of-band attributes of one system path.

    Attributes:
        mode: Permission and file-type bits as returned by ``lstat``.
        uid: Owner user id.
        gid: Owner group id.
        owner: Owner name at capture time (numeric id if unresolvable).
        group: Group name at capture time (numeric id if unresolvable).
        mtime: Modification time at capture.
        symlink_target: Link target; set only for symlinks.
    """

    mode: int
    uid: int
    gid: int
    owner: str
    group: str
    mtime: datetime | None = None
    symlink_target: str | None = None

    @property
    def is_symlink(self) -> bool:
        return self.symlink_target is not None

    @classmethod
    def from_path(cls, path: Path) -> FileMetadata:
        """Capture metadata from *path* without following symlinks."""
        with io_errors("stat", path):
            st = os.lstat(path)
            target = (
                os.readlink(path) if stat.S_ISLNK(st.st_mode) else None
            )

        return cls(
            mode=st.st_mode,
            uid=st.st_uid,
            gid=st.st_gid,
            owner=_owner_name(st.st_uid),
            group=_group_name(st.st_gid),
            mtime=datetime.fromtimestamp(int(st.st_mtime), tz=timezone.utc),
            symlink_target=target,
        )

    def apply_to(self, path: Path) -> None:
        """Apply this record to *path*.

        Symlink records recreate the link (replacing whatever is there).
        Regular records set permission bits, then ownership.

        Raises:
            PermissionDeniedError: Ownership change needs privileges the
                process does not hold.
            ConfectIOError: Any other filesystem failure.
        """
        if self.symlink_target is not None:
            with io_errors("recreate symlink", path):
                if os.path.lexists(path):
                    os.remove(path)
                os.symlink(self.symlink_target, path)
            return

        with io_errors("chmod", path):
            os.chmod(path, stat.S_IMODE(self.mode))
        try:
            os.chown(path, self.uid, self.gid)
        except PermissionError as exc:
            raise PermissionDeniedError(
                path, f"chown to {self.uid}:{self.gid}"
            ) from exc
        except OSError as exc:
            raise ConfectIOError(
                f"Failed to chown {path}: {exc.strerror or exc}", path
            ) from exc

    def mode_string(self) -> str:
        """Permission bits as a four digit octal string, e.g. ``"0644"``."""
        return f"{stat.S_IMODE(self.mode):04o}"


class MetadataStore:
    """Persistent mapping of system path to ``FileMetadata``.

    Args:
        path: Location of the metadata file used by ``save()``.
        entries: Initial entries keyed by absolute system path.
    """

    def __init__(
        self,
        path: Path | None = None,
        entries: dict[Path, FileMetadata] | None = None,
    ) -> None:
        self._path = path
        self._entries: dict[Path, FileMetadata] = dict(entries or {})

    # ------------------------------------------------------------------
    # Persistence
    # ------------------------------------------------------------------

    @classmethod
    def load(cls, repo: Repository) -> MetadataStore:
        return cls.load_file(repo.metadata_file)

    @classmethod
    def load_file(cls, path: Path) -> MetadataStore:
        """Load the store from *path*; a missing file yields an empty store.

        Raises:
            SerializationError: The file is unparsable or a record is invalid.
        """
        if not path.exists():
            return cls(path)

        with io_errors("read", path):
            text = path.read_text(encoding="utf-8")
        try:
            data = yaml.safe_load(text) or {}
        except yaml.YAMLError as exc:
            raise SerializationError(
                f"Cannot parse metadata file {path}: {exc}"
            ) from exc
        if not isinstance(data, dict) or not isinstance(
            data.get("files") or {}, dict
        ):
            raise SerializationError(
                f"Metadata file {path} must contain a 'files' mapping"
            )

        entries: dict[Path, FileMetadata] = {}
        for key, record in (data.get("files") or {}).items():
            try:
                entries[Path(key)] = FileMetadata(**(record or {}))
            except (TypeError, ValidationError) as exc:
                raise SerializationError(
                    f"Invalid metadata for {key} in {path}: {exc}"
                ) from exc
        return cls(path, entries)

    def save(self, path: Path | None = None) -> Path:
        target = path or self._path
        if target is None:
            raise SerializationError("Metadata store has no file to save to")

        payload = {
            "files": {
                str(p): meta.model_dump(mode="json", exclude_none=True)
                for p, meta in self._entries.items()
            }
        }
        try:
            text = yaml.safe_dump(payload, sort_keys=True)
        except yaml.YAMLError as exc:
            raise SerializationError(
                f"Cannot encode metadata: {exc}"
            ) from exc

        with io_errors("write", target):
            target.parent.mkdir(parents=True, exist_ok=True)
            target.write_text(text, encoding="utf-8")
        logger.debug("Saved %d metadata entries to %s", len(self), target)
        return target

    # ------------------------------------------------------------------
    # Entries
    # ------------------------------------------------------------------

    def update_from_system(self, path: Path) -> FileMetadata:
        """Capture *path* now, replacing any previous entry."""
        meta = FileMetadata.from_path(Path(path))
        self._entries[Path(path)] = meta
        return meta

    def get(self, path: Path) -> FileMetadata | None:
        return self._entries.get(Path(path))

    def remove(self, path: Path) -> None:
        self._entries.pop(Path(path), None)

    def apply_to(self, path: Path) -> None:
        """Apply the stored entry for *path*; no entry is a no-op."""
        meta = self._entries.get(Path(path))
        if meta is not None:
            meta.apply_to(Path(path))

    def apply_all(self) -> None:
        """Apply every entry whose path exists, plus every symlink entry.

        Symlink entries are applied even when nothing is at the path so
        missing links get recreated.
        """
        for path, meta in self._entries.items():
            if path.exists() or meta.is_symlink:
                meta.apply_to(path)

    def paths(self) -> list[Path]:
        return list(self._entries)

    def __contains__(self, path: object) -> bool:
        return isinstance(path, (str, Path)) and Path(path) in self._entries

    def __len__(self) -> int:
        return len(self._entries)
