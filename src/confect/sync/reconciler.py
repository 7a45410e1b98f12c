"""Reconciliation between the live system tree and the repository tree.

The ``FileReconciler`` is the orchestrator of confect.  It:

1. Classifies system paths through the ``CategoryRegistry``.
2. Translates them to repository paths (``<category>/<path without />``).
3. Copies content in either direction, sealing it through the
   ``SecretCodec`` when the path matches an encrypt pattern.
4. Captures metadata on add and applies it on restore through the
   ``MetadataStore``.

It keeps no state of its own: every status, listing and diff is recomputed
from the two trees on each call.  Batch restore is the only operation that
collects per-item failures instead of raising.
"""

from __future__ import annotations

import logging
import os
import shutil
from collections.abc import Iterable
from datetime import datetime, timezone
from pathlib import Path

from confect.core.category import Category, CategoryRegistry
from confect.core.repository import BACKUP_SUFFIX, Repository
from confect.crypto.codec import SecretCodec
from confect.errors import (
    ConfectError,
    DecryptionError,
    EncryptionError,
    MissingFileError,
    PathNotTrackedError,
    io_errors,
)
from confect.file_handler import (
    copy_file,
    decode_text,
    files_equal,
    read_bytes,
    read_text_with_encoding,
    write_bytes,
)
from confect.fs.metadata import MetadataStore
from confect.sync.diff import positional_diff
from confect.sync.mapper import (
    expand_category,
    pattern_for,
    walk_entries,
    walk_repo_category,
)
from confect.sync.models import FileStatus, RestoreReport, RestoreResult
from confect.validators import normalize_path

logger = logging.getLogger(__name__)


class FileReconciler:
    """Move tracked files between the system and the repository.

    Args:
        repo: The repository whose subtrees hold tracked content.
        registry: Categories used for classification and path mapping.
        codec: Codec used to seal files matching encrypt patterns.
            ``None`` means encryption is not configured.
        identity: Private identity string used to open sealed repository
            copies for comparison, diff and restore.
        metadata: Store that receives captured metadata on add and is
            applied on batch restore.  ``None`` disables both.
    """

    def __init__(
        self,
        repo: Repository,
        registry: CategoryRegistry,
        codec: SecretCodec | None = None,
        identity: str | None = None,
        metadata: MetadataStore | None = None,
    ) -> None:
        self.repo = repo
        self.registry = registry
        self.codec = codec
        self.identity = identity
        self.metadata = metadata

    # ------------------------------------------------------------------
    # Capture
    # ------------------------------------------------------------------

    def add(
        self, path: Path, category: str, encrypt: bool = False
    ) -> list[Path]:
        """Copy *path* (a file, symlink or directory) into *category*.

        Directories are walked without following symlinks.  Each file is
        sealed when *encrypt* is set or it matches an encrypt pattern of
        the category.  With *encrypt* the path (or ``<dir>/**``) is added
        to the category's encrypt patterns so later refreshes keep sealing
        it; saving the registry is left to the caller.

        Returns:
            The system paths processed, in walk order.

        Raises:
            CategoryNotFoundError: *category* does not exist.
            MissingFileError: *path* does not exist on the system.
            EncryptionError: Encryption was requested without a codec.
        """
        cat = self.registry.get(category)
        path = normalize_path(path)
        if not os.path.lexists(path):
            raise MissingFileError(path)

        if path.is_dir() and not path.is_symlink():
            entries = list(walk_entries(path))
        else:
            entries = [path]

        added: list[Path] = []
        for entry in entries:
            self._copy_to_repo(
                entry, cat, encrypt or cat.should_encrypt(entry)
            )
            if self.metadata is not None:
                self.metadata.update_from_system(entry)
            added.append(entry)

        if encrypt:
            pattern = pattern_for(path)
            if pattern not in cat.encrypt:
                cat.encrypt.append(pattern)

        logger.info(
            "Added %d file(s) from %s to category '%s'",
            len(added), path, category,
        )
        return added

    def _copy_to_repo(
        self, system_path: Path, category: Category, encrypt: bool
    ) -> bool:
        """Write the content of *system_path* into the category subtree.

        Symlinks are dereferenced; one whose target is not a regular file
        contributes no content.  A repository copy that is already sealed
        stays sealed, whatever *encrypt* says.

        Returns:
            ``True`` if content was written.
        """
        repo_file = self.repo.path / category.repo_path_for(system_path)

        if system_path.is_symlink() and not system_path.is_file():
            logger.warning(
                "Skipping content of %s: symlink target is not a regular file",
                system_path,
            )
            return False

        if encrypt or SecretCodec.is_encrypted(repo_file):
            if self.codec is None:
                raise EncryptionError(
                    f"Encryption requested for {system_path} but no "
                    "recipients are configured"
                )
            write_bytes(repo_file, self.codec.encrypt_bytes(read_bytes(system_path)))
        else:
            copy_file(system_path, repo_file)

        logger.debug("Copied %s -> %s", system_path, repo_file)
        return True

    def remove(
        self,
        path: Path,
        delete_from_repo: bool = False,
        category: str | None = None,
    ) -> list[Path]:
        """Resolve the repository copy of *path* and optionally delete it.

        Registry membership is left untouched.

        Args:
            path: System path (file or directory).
            delete_from_repo: Delete the repository copy.
            category: Category to resolve against; defaults to the first
                category that claims *path*.

        Returns:
            System paths whose repository copy existed.  A directory copy
            reports every file beneath it.
        """
        path = normalize_path(path)
        if category is not None:
            cat = self.registry.get(category)
        else:
            cat = self.registry.find_for_path(path)
        if cat is None:
            return []

        repo_file = self.repo.path / cat.repo_path_for(path)
        if not os.path.lexists(repo_file):
            return []

        if repo_file.is_dir() and not repo_file.is_symlink():
            removed = [
                Path("/") / f.relative_to(self.repo.path / cat.name)
                for f in walk_entries(repo_file)
            ]
            if delete_from_repo:
                with io_errors("delete", repo_file):
                    shutil.rmtree(repo_file)
        else:
            removed = [path]
            if delete_from_repo:
                with io_errors("delete", repo_file):
                    repo_file.unlink()

        if delete_from_repo:
            logger.info("Deleted repository copy of %s", path)
        return removed

    # ------------------------------------------------------------------
    # Comparison
    # ------------------------------------------------------------------

    def status(
        self, category_filter: str | None = None
    ) -> dict[Path, FileStatus]:
        """Classify every tracked pair that differs.

        Candidates are the union of the repository subtree and the live
        expansion of the category includes.  Identical pairs are omitted.

        Raises:
            CategoryNotFoundError: *category_filter* names no category.
        """
        if category_filter is not None:
            categories = [self.registry.get(category_filter)]
        else:
            categories = self.registry.list()

        result: dict[Path, FileStatus] = {}
        for cat in categories:
            candidates: dict[Path, Path] = {}
            for repo_file, system_path in walk_repo_category(
                self.repo.path, cat
            ):
                candidates[system_path] = repo_file
            for system_path in expand_category(cat):
                if system_path.is_dir():
                    continue
                candidates.setdefault(
                    system_path, self.repo.path / cat.repo_path_for(system_path)
                )

            for system_path, repo_file in candidates.items():
                state = self._classify(system_path, repo_file)
                if state is not None:
                    result[system_path] = state
        return result

    def _classify(
        self, system_path: Path, repo_file: Path
    ) -> FileStatus | None:
        system_exists = system_path.is_file()
        repo_exists = repo_file.is_file()

        if not system_exists and os.path.lexists(system_path) and not repo_exists:
            # symlink with no regular-file target: nothing to compare
            return None

        if system_exists and repo_exists:
            if self._content_equal(system_path, repo_file):
                return None
            return FileStatus.MODIFIED
        if system_exists:
            return FileStatus.ADDED
        if repo_exists:
            return FileStatus.DELETED
        return FileStatus.MISSING

    def _content_equal(self, system_path: Path, repo_file: Path) -> bool:
        """Compare content, opening a sealed repository copy in memory.

        A sealed copy with no identity configured never compares equal.
        """
        if SecretCodec.is_encrypted(repo_file):
            if self.identity is None:
                return False
            return read_bytes(system_path) == self._read_repo(repo_file)
        return files_equal(system_path, repo_file)

    def _read_repo(self, repo_file: Path) -> bytes:
        """Return the plaintext of a repository copy."""
        data = read_bytes(repo_file)
        if not SecretCodec.is_encrypted(repo_file):
            return data
        if self.identity is None:
            raise DecryptionError(
                f"{repo_file} is encrypted and no identity is configured"
            )
        codec = self.codec or SecretCodec()
        return codec.decrypt_bytes(data, self.identity)

    def diff_file(self, system_path: Path) -> str:
        """Positional line diff of *system_path* against its repository copy.

        Returns:
            ``""`` when the contents match, a one-line notice when only one
            side exists, the diff text otherwise.

        Raises:
            PathNotTrackedError: No category claims *system_path*.
        """
        system_path = normalize_path(system_path)
        cat = self.registry.find_for_path(system_path)
        if cat is None:
            raise PathNotTrackedError(system_path)

        repo_file = self.repo.path / cat.repo_path_for(system_path)
        if not repo_file.exists():
            return f"File only exists in system: {system_path}"
        if not system_path.exists():
            return f"File only exists in repo: {repo_file}"

        system_text, _ = read_text_with_encoding(system_path)
        repo_text, _ = decode_text(self._read_repo(repo_file))
        return positional_diff(
            system_text, repo_text, str(system_path), str(repo_file)
        )

    # ------------------------------------------------------------------
    # Sync
    # ------------------------------------------------------------------

    def refresh_all(self) -> list[Path]:
        """Copy every tracked system file whose repository copy is stale.

        Running it twice in a row updates nothing the second time.

        Returns:
            System paths whose repository copy was (re)written.
        """
        updated: list[Path] = []
        for cat in self.registry.list():
            for system_path in expand_category(cat):
                if not system_path.is_file():
                    continue
                repo_file = self.repo.path / cat.repo_path_for(system_path)
                if repo_file.is_file() and self._content_equal(
                    system_path, repo_file
                ):
                    continue
                seal = cat.should_encrypt(system_path)
                if self.codec is None and (
                    seal or SecretCodec.is_encrypted(repo_file)
                ):
                    logger.warning(
                        "Skipping %s: stored encrypted but no recipients "
                        "are configured",
                        system_path,
                    )
                    continue
                if self._copy_to_repo(system_path, cat, seal):
                    updated.append(system_path)

        logger.info("Refreshed %d file(s)", len(updated))
        return updated

    def _resolve(self, system_path: Path) -> tuple[Category, Path]:
        cat = self.registry.find_for_path(system_path)
        if cat is None:
            raise PathNotTrackedError(system_path)
        repo_file = self.repo.path / cat.repo_path_for(system_path)
        if not repo_file.is_file():
            raise MissingFileError(repo_file)
        return cat, repo_file

    def restore_file(self, system_path: Path) -> None:
        """Write the repository copy back onto *system_path*.

        Raises:
            PathNotTrackedError: No category claims *system_path*.
            MissingFileError: The repository holds no copy.
            DecryptionError: The copy is sealed and cannot be opened.
        """
        system_path = normalize_path(system_path)
        _, repo_file = self._resolve(system_path)
        write_bytes(system_path, self._read_repo(repo_file))
        logger.debug("Restored %s from %s", system_path, repo_file)

    def restore_many(
        self,
        paths: Iterable[Path],
        backup: bool = False,
        dry_run: bool = False,
    ) -> RestoreReport:
        """Restore several paths, collecting failures instead of raising.

        Each item is restored and then has its stored metadata applied.
        Metadata failures become warnings on an otherwise successful item.

        Args:
            paths: System paths to restore.
            backup: Copy an existing system file to
                ``<path>.confect-backup`` before overwriting it.
            dry_run: Only check that each path can be restored.

        Returns:
            A ``RestoreReport`` with one result per requested path.
        """
        started_at = datetime.now(timezone.utc).isoformat()
        results: list[RestoreResult] = []

        for raw in paths:
            system_path = normalize_path(raw)
            try:
                if dry_run:
                    self._resolve(system_path)
                    results.append(
                        RestoreResult(path=str(system_path), success=True)
                    )
                    continue
                results.append(self._restore_one(system_path, backup))
            except ConfectError as exc:
                logger.error("Failed to restore %s: %s", system_path, exc)
                results.append(
                    RestoreResult(
                        path=str(system_path), success=False, error=str(exc)
                    )
                )

        report = RestoreReport(
            dry_run=dry_run,
            results=results,
            started_at=started_at,
            completed_at=datetime.now(timezone.utc).isoformat(),
        )
        logger.info(
            "Restore finished: %d restored, %d failed",
            report.restored_count, len(report.failures),
        )
        return report

    def _restore_one(self, system_path: Path, backup: bool) -> RestoreResult:
        self._resolve(system_path)

        backup_path = None
        if backup and system_path.is_file():
            backup_path = Path(f"{system_path}{BACKUP_SUFFIX}")
            copy_file(system_path, backup_path)

        self.restore_file(system_path)

        metadata_error = None
        if self.metadata is not None:
            try:
                self.metadata.apply_to(system_path)
            except ConfectError as exc:
                logger.warning(
                    "Restored %s but could not apply metadata: %s",
                    system_path, exc,
                )
                metadata_error = str(exc)

        return RestoreResult(
            path=str(system_path),
            success=True,
            metadata_error=metadata_error,
            backup_path=str(backup_path) if backup_path else None,
        )

    def purge_category(self, name: str) -> list[Path]:
        """Delete the whole repository subtree of category *name*.

        Returns:
            The system paths whose copies were removed.
        """
        files = self.list_files_in_category(name)
        category_dir = self.repo.category_dir(name)
        if category_dir.exists():
            with io_errors("delete", category_dir):
                shutil.rmtree(category_dir)
            logger.info(
                "Removed %d file(s) of category '%s' from the repository",
                len(files), name,
            )
        return files

    # ------------------------------------------------------------------
    # Listings
    # ------------------------------------------------------------------

    def list_files_in_category(self, name: str) -> list[Path]:
        cat = self.registry.get(name)
        return [
            system_path
            for _, system_path in walk_repo_category(self.repo.path, cat)
        ]

    def list_all_tracked_files(self) -> list[Path]:
        files: list[Path] = []
        for cat in self.registry.list():
            files.extend(self.list_files_in_category(cat.name))
        return files

    def count_files_in_category(self, name: str) -> int:
        return len(self.list_files_in_category(name))

    def count_all_files(self) -> int:
        return len(self.list_all_tracked_files())

    def get_category(self, path: Path) -> str:
        """Return the name of the category that claims *path*.

        Raises:
            PathNotTrackedError: No category claims *path*.
        """
        cat = self.registry.find_for_path(path)
        if cat is None:
            raise PathNotTrackedError(path)
        return cat.name
