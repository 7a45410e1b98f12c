"""On-disk layout of a confect repository.

The repository root is a plain directory (normally a git working tree managed
by an external version-control collaborator)::

    <root>/
        .confect/config.yml       repository metadata (RepoConfig)
        .confect/categories.yml   category definitions
        .confect/metadata.yml     captured POSIX metadata
        .gitignore                ignores restore backups
        <category>/<system path>  tracked content

This module only knows about the layout.  It never runs version control.
"""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

import yaml
from pydantic import BaseModel, Field, ValidationError

from confect.errors import (
    NotInitializedError,
    RepositoryExistsError,
    SerializationError,
    io_errors,
)

logger = logging.getLogger(__name__)

STATE_DIR_NAME = ".confect"
CATEGORIES_FILE = "categories.yml"
METADATA_FILE = "metadata.yml"
CONFIG_FILE = "config.yml"
BACKUP_SUFFIX = ".confect-backup"


class HostEntry(BaseModel):
    branch: str


class RepoConfig(BaseModel):
    """Repository-local metadata stored in ``.confect/config.yml``.

    Attributes:
        version: Layout schema version.
        created: ISO 8601 creation timestamp.
        hosts: Known hosts and the branch each one commits to.
    """

    version: int = 1
    created: str | None = None
    hosts: dict[str, HostEntry] = Field(default_factory=dict)


class Repository:
    """A confect repository rooted at ``path``.

    Use ``Repository.init()`` to create one and ``Repository.open()`` to
    attach to an existing one.
    """

    def __init__(self, path: Path) -> None:
        self.path = Path(path)

    # ------------------------------------------------------------------
    # Layout
    # ------------------------------------------------------------------

    @property
    def state_dir(self) -> Path:
        return self.path / STATE_DIR_NAME

    @property
    def categories_file(self) -> Path:
        return self.state_dir / CATEGORIES_FILE

    @property
    def metadata_file(self) -> Path:
        return self.state_dir / METADATA_FILE

    @property
    def config_file(self) -> Path:
        return self.state_dir / CONFIG_FILE

    def category_dir(self, name: str) -> Path:
        return self.path / name

    def is_initialized(self) -> bool:
        return self.state_dir.is_dir()

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    @classmethod
    def init(cls, path: Path, hostname: str) -> Repository:
        """Create the repository layout at *path*.

        Args:
            path: Repository root; created if missing.
            hostname: Host registered in the repository config, committing
                to branch ``host/<hostname>``.

        Raises:
            RepositoryExistsError: *path* already holds a repository.
        """
        repo = cls(path)
        if repo.is_initialized():
            raise RepositoryExistsError(repo.path)

        with io_errors("initialize repository at", repo.path):
            repo.state_dir.mkdir(parents=True, exist_ok=True)

            config = RepoConfig(
                created=datetime.now(timezone.utc).isoformat(),
                hosts={hostname: HostEntry(branch=f"host/{hostname}")},
            )
            repo.save_config(config)

            repo.categories_file.write_text(
                "categories: {}\n", encoding="utf-8"
            )
            repo.metadata_file.write_text("files: {}\n", encoding="utf-8")
            (repo.path / ".gitignore").write_text(
                f"*{BACKUP_SUFFIX}\n", encoding="utf-8"
            )

        logger.info("Initialized confect repository at %s", repo.path)
        return repo

    @classmethod
    def open(cls, path: Path) -> Repository:
        """Attach to an existing repository.

        Raises:
            NotInitializedError: *path* has no ``.confect`` directory.
        """
        repo = cls(path)
        if not repo.is_initialized():
            raise NotInitializedError(repo.path)
        return repo

    # ------------------------------------------------------------------
    # Repository config
    # ------------------------------------------------------------------

    def load_config(self) -> RepoConfig:
        if not self.config_file.exists():
            return RepoConfig()
        with io_errors("read", self.config_file):
            text = self.config_file.read_text(encoding="utf-8")
        try:
            return RepoConfig(**(yaml.safe_load(text) or {}))
        except (yaml.YAMLError, TypeError, ValidationError) as exc:
            raise SerializationError(
                f"Invalid repository config {self.config_file}: {exc}"
            ) from exc

    def save_config(self, config: RepoConfig) -> None:
        with io_errors("write", self.config_file):
            self.state_dir.mkdir(parents=True, exist_ok=True)
            self.config_file.write_text(
                yaml.safe_dump(config.model_dump(), sort_keys=False),
                encoding="utf-8",
            )

    def __repr__(self) -> str:
        return f"Repository({str(self.path)!r})"
