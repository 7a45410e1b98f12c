"""Tests for the repository layout."""

import pytest

from confect.core.repository import (
    BACKUP_SUFFIX,
    HostEntry,
    RepoConfig,
    Repository,
)
from confect.errors import (
    NotInitializedError,
    RepositoryExistsError,
    SerializationError,
)


class TestRepositoryInit:
    def test_creates_layout(self, tmp_path):
        repo = Repository.init(tmp_path / "repo", "web1")

        assert repo.is_initialized()
        assert repo.categories_file.read_text() == "categories: {}\n"
        assert repo.metadata_file.read_text() == "files: {}\n"
        assert (repo.path / ".gitignore").read_text() == f"*{BACKUP_SUFFIX}\n"

    def test_registers_host_branch(self, tmp_path):
        repo = Repository.init(tmp_path / "repo", "web1")

        config = repo.load_config()

        assert config.version == 1
        assert config.created is not None
        assert config.hosts == {"web1": HostEntry(branch="host/web1")}

    def test_twice_raises(self, repo):
        with pytest.raises(RepositoryExistsError):
            Repository.init(repo.path, "other")


class TestRepositoryOpen:
    def test_open_existing(self, repo):
        opened = Repository.open(repo.path)
        assert opened.path == repo.path
        assert repr(opened) == f"Repository({str(repo.path)!r})"

    def test_open_missing_raises(self, tmp_path):
        with pytest.raises(NotInitializedError, match="not initialized"):
            Repository.open(tmp_path / "nowhere")

    def test_category_dir(self, repo):
        assert repo.category_dir("nginx") == repo.path / "nginx"


class TestRepoConfig:
    def test_save_and_reload(self, repo):
        config = RepoConfig(
            hosts={
                "a": HostEntry(branch="host/a"),
                "b": HostEntry(branch="shared"),
            }
        )
        repo.save_config(config)

        assert repo.load_config() == config

    def test_missing_config_gives_defaults(self, repo):
        repo.config_file.unlink()
        assert repo.load_config() == RepoConfig()

    def test_invalid_config_raises(self, repo):
        repo.config_file.write_text("hosts: [1, 2\n", encoding="utf-8")
        with pytest.raises(SerializationError):
            repo.load_config()
