"""Shared pytest fixtures for confect tests.

"System" files live under ``tmp_path / "system"``; since tracked paths are
plain absolute paths, the reconciler treats them exactly like files under
``/etc``.
"""

from pathlib import Path

import pytest
from dotenv import load_dotenv

from confect.config import RuntimeConfig
from confect.core.category import CategoryRegistry
from confect.core.repository import Repository
from confect.crypto.codec import SecretCodec
from confect.fs.metadata import MetadataStore
from confect.sync.reconciler import FileReconciler
from confect.workspace import Workspace

load_dotenv()

_CONFECT_ENV = (
    "CONFECT_REPO",
    "CONFECT_ENCRYPTION",
    "CONFECT_HOST",
    "CONFECT_CONFIG",
    "CONFECT_LOG_LEVEL",
    "CONFECT_LOG_FILE",
)


@pytest.fixture(autouse=True)
def isolated_env(monkeypatch, tmp_path):
    """Keep the host's confect env vars and config files out of tests."""
    for name in _CONFECT_ENV:
        monkeypatch.delenv(name, raising=False)
    monkeypatch.setattr(
        "confect.config_loader.USER_CONFIG_PATH",
        tmp_path / "home" / ".config" / "confect" / "config.yml",
    )
    monkeypatch.setattr(
        "confect.config_loader.SYSTEM_CONFIG_PATH",
        tmp_path / "etc" / "confect" / "config.yml",
    )


@pytest.fixture
def system_root(tmp_path) -> Path:
    """Directory standing in for the live filesystem."""
    root = tmp_path / "system"
    root.mkdir()
    return root


@pytest.fixture
def repo(tmp_path) -> Repository:
    return Repository.init(tmp_path / "repo", "testhost")


@pytest.fixture
def registry(repo) -> CategoryRegistry:
    return CategoryRegistry.load(repo)


@pytest.fixture
def metadata(repo) -> MetadataStore:
    return MetadataStore.load(repo)


@pytest.fixture
def reconciler(repo, registry, metadata) -> FileReconciler:
    return FileReconciler(repo, registry, metadata=metadata)


@pytest.fixture
def keypair() -> tuple[str, str]:
    """A fresh ``(identity, recipient)`` pair."""
    return SecretCodec.generate_keypair()


@pytest.fixture
def runtime_config(tmp_path) -> RuntimeConfig:
    return RuntimeConfig(repo_path=tmp_path / "repo", hostname="testhost")


@pytest.fixture
def workspace(repo, runtime_config) -> Workspace:
    return Workspace(runtime_config, repo)


@pytest.fixture
def write_file():
    """Factory fixture: write text to a path, creating parents."""

    def _write(path: Path, content: str = "") -> Path:
        path.parent.mkdir(parents=True, exist_ok=True)
        path.write_text(content, encoding="utf-8")
        return path

    return _write
