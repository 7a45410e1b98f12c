"""Workspace: one loaded repository and the components that act on it.

Startup sequence for ``Workspace.open()`` / ``Workspace.init()``:

- Load .env (so values are available for env var lookups and YAML
  interpolation)
- Load the YAML config files, if any
- Merge all sources via ``load_config()``: args > env vars > .env > YAML >
  defaults
- Open (or create) the repository and load categories and metadata
- Build the codec when encryption is enabled, and read the identity when
  one is configured

Nothing here is process-global: every component receives the values it
needs from the ``RuntimeConfig`` it was built from.
"""

import logging
from pathlib import Path
from typing import Any

from dotenv import load_dotenv

from confect.config import RuntimeConfig, load_config
from confect.config_loader import discover_config_files, load_hierarchical_config
from confect.config_schema import build_config
from confect.core.category import CategoryRegistry
from confect.core.repository import Repository
from confect.crypto.codec import SecretCodec
from confect.fs.metadata import MetadataStore
from confect.sync.reconciler import FileReconciler

logger = logging.getLogger(__name__)


def resolve_config(overrides: dict[str, Any] | None = None) -> RuntimeConfig:
    """Build the runtime configuration from every source.

    Args:
        overrides: Explicit values (``repo_path``, ``encryption``,
            ``hostname``, ``debug``) that beat every other source.
    """
    # .env first so ${VAR} interpolation in YAML can see its values
    load_dotenv()

    sources = []
    config_files = discover_config_files()
    raw = load_hierarchical_config() if config_files else {}
    if config_files:
        sources.append(f"config file: {config_files[0]}")
    unified = build_config(raw)

    overrides = overrides or {}
    config = load_config(
        repo_path=overrides.get("repo_path"),
        encryption=overrides.get("encryption"),
        hostname=overrides.get("hostname"),
        debug=overrides.get("debug", False),
        unified=unified,
    )

    if overrides:
        sources.append("explicit arguments")
    sources.append("environment variables")
    logger.debug("Configuration loaded from: %s", ", ".join(sources))
    logger.debug("Repository: %s", config.repo_path)
    return config


def build_codec(config: RuntimeConfig) -> SecretCodec | None:
    """Return the codec for *config*, or ``None`` when encryption is off."""
    if not config.encryption_enabled:
        return None

    recipients = list(config.recipients)
    if config.recipients_file is not None:
        from_file = SecretCodec.from_recipients_file(config.recipients_file)
        for recipient in from_file.recipients:
            if recipient not in recipients:
                recipients.append(recipient)
    return SecretCodec(recipients)


def load_identity(config: RuntimeConfig) -> str | None:
    if config.identity_file is None:
        return None
    if not config.identity_file.exists():
        logger.warning("Identity file not found: %s", config.identity_file)
        return None
    return SecretCodec.load_identity(config.identity_file)


class Workspace:
    """A repository with its registry, metadata store and reconciler.

    Args:
        config: Resolved runtime configuration.
        repo: The repository to operate on; must be initialised.
    """

    def __init__(self, config: RuntimeConfig, repo: Repository) -> None:
        self.config = config
        self.repo = repo
        self.registry = CategoryRegistry.load(repo)
        self.metadata = MetadataStore.load(repo)
        self.codec = build_codec(config)
        self.identity = load_identity(config)
        self.reconciler = FileReconciler(
            repo,
            self.registry,
            codec=self.codec,
            identity=self.identity,
            metadata=self.metadata,
        )

    @classmethod
    def open(
        cls,
        repo_path: Path | None = None,
        config: RuntimeConfig | None = None,
    ) -> "Workspace":
        """Attach to an existing repository.

        Raises:
            NotInitializedError: The repository has not been created.
        """
        if config is None:
            config = resolve_config(
                {"repo_path": repo_path} if repo_path else None
            )
        return cls(config, Repository.open(repo_path or config.repo_path))

    @classmethod
    def init(
        cls,
        repo_path: Path | None = None,
        config: RuntimeConfig | None = None,
    ) -> "Workspace":
        """Create a repository and return a workspace on it.

        Raises:
            RepositoryExistsError: The repository already exists.
        """
        if config is None:
            config = resolve_config(
                {"repo_path": repo_path} if repo_path else None
            )
        repo = Repository.init(repo_path or config.repo_path, config.hostname)
        return cls(config, repo)

    def save(self) -> None:
        """Persist categories and metadata."""
        self.registry.save()
        self.metadata.save()

    def __repr__(self) -> str:
        return f"Workspace({str(self.repo.path)!r})"
