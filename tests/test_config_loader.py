"""Tests for confect.config_loader: hierarchical config loading."""

import textwrap

import pytest

from confect import config_loader
from confect.config_loader import (
    _interpolate_recursive,
    _load_yaml_with_includes,
    discover_config_files,
    ensure_config,
    interpolate_env_vars,
    load_hierarchical_config,
    resolve_config_path,
)
from confect.errors import ConfigError

# -------------------------------------------------------------------------
# Env var interpolation
# -------------------------------------------------------------------------


class TestInterpolateEnvVars:
    """Tests for ${VAR} and ${VAR:-default} substitution."""

    def test_replaces_set_var(self, monkeypatch):
        monkeypatch.setenv("MY_REPO", "/srv/confect")
        assert interpolate_env_vars("${MY_REPO}") == "/srv/confect"

    def test_unset_var_replaced_with_empty(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert interpolate_env_vars("${UNSET_VAR_XYZ}") == ""

    def test_default_used_when_unset(self, monkeypatch):
        monkeypatch.delenv("UNSET_VAR_XYZ", raising=False)
        assert (
            interpolate_env_vars("${UNSET_VAR_XYZ:-fallback}")
            == "fallback"
        )

    def test_empty_env_var_uses_default(self, monkeypatch):
        monkeypatch.setenv("EMPTY_VAR", "")
        assert (
            interpolate_env_vars("${EMPTY_VAR:-fallback}") == "fallback"
        )

    def test_literal_dollar_brace_no_closing(self):
        assert interpolate_env_vars("${NO_CLOSE") == "${NO_CLOSE"

    def test_nested_structures(self, monkeypatch):
        monkeypatch.setenv("KEY_DIR", "/keys")
        data = {
            "encryption": {
                "identity_file": "${KEY_DIR}/identity.txt",
                "recipients": ["${KEY_DIR:-x}", 3],
                "enabled": True,
            }
        }
        assert _interpolate_recursive(data) == {
            "encryption": {
                "identity_file": "/keys/identity.txt",
                "recipients": ["/keys", 3],
                "enabled": True,
            }
        }


# -------------------------------------------------------------------------
# !include
# -------------------------------------------------------------------------


class TestIncludes:
    def test_relative_include(self, tmp_path):
        (tmp_path / "encryption.yml").write_text(
            "enabled: true\npublic_key: age1abc\n"
        )
        main = tmp_path / "config.yml"
        main.write_text("encryption: !include encryption.yml\n")

        data = _load_yaml_with_includes(main)

        assert data == {
            "encryption": {"enabled": True, "public_key": "age1abc"}
        }

    def test_missing_include_raises(self, tmp_path):
        main = tmp_path / "config.yml"
        main.write_text("global: !include nowhere.yml\n")

        with pytest.raises(ConfigError, match="Include file not found"):
            _load_yaml_with_includes(main)

    def test_circular_include_raises(self, tmp_path):
        (tmp_path / "a.yml").write_text("b: !include b.yml\n")
        (tmp_path / "b.yml").write_text("a: !include a.yml\n")

        with pytest.raises(ConfigError, match="Circular include"):
            _load_yaml_with_includes(tmp_path / "a.yml")


# -------------------------------------------------------------------------
# Discovery and merge
# -------------------------------------------------------------------------


class TestDiscovery:
    def test_nothing_found(self):
        assert discover_config_files() == []
        assert load_hierarchical_config() == {}

    def test_env_var_first(self, tmp_path, monkeypatch):
        explicit = tmp_path / "explicit.yml"
        explicit.write_text("global: {}\n")
        user = config_loader.USER_CONFIG_PATH
        user.parent.mkdir(parents=True)
        user.write_text("global: {}\n")
        monkeypatch.setenv("CONFECT_CONFIG", str(explicit))

        assert discover_config_files() == [explicit.resolve(), user]

    def test_missing_env_path_ignored(self, tmp_path, monkeypatch):
        monkeypatch.setenv("CONFECT_CONFIG", str(tmp_path / "missing.yml"))
        assert discover_config_files() == []

    def test_higher_precedence_replaces_sections(self, tmp_path, monkeypatch):
        system = config_loader.SYSTEM_CONFIG_PATH
        system.parent.mkdir(parents=True)
        system.write_text(
            textwrap.dedent("""\
                global:
                  repo_path: /srv/confect
                logging:
                  level: WARNING
            """)
        )
        user = config_loader.USER_CONFIG_PATH
        user.parent.mkdir(parents=True)
        user.write_text("global:\n  repo_path: ${HOME_REPO:-/home/repo}\n")

        merged = load_hierarchical_config()

        assert merged["global"] == {"repo_path": "/home/repo"}
        assert merged["logging"] == {"level": "WARNING"}

    def test_invalid_yaml_raises_config_error(self):
        user = config_loader.USER_CONFIG_PATH
        user.parent.mkdir(parents=True)
        user.write_text("global: [unclosed\n")

        with pytest.raises(ConfigError, match="Invalid YAML"):
            load_hierarchical_config()

    def test_non_dict_root_skipped(self, caplog):
        user = config_loader.USER_CONFIG_PATH
        user.parent.mkdir(parents=True)
        user.write_text("- just\n- a list\n")

        assert load_hierarchical_config() == {}
        assert "non-dict root" in caplog.text


class TestEnsureConfig:
    def test_creates_starter_at_user_path(self):
        created = ensure_config()

        assert created == config_loader.USER_CONFIG_PATH
        assert created.read_text().startswith("# confect configuration")
        assert resolve_config_path() == created

    def test_existing_file_untouched(self, tmp_path):
        user = config_loader.USER_CONFIG_PATH
        user.parent.mkdir(parents=True)
        user.write_text("global: {}\n")

        assert ensure_config(tmp_path / "other.yml") == user
        assert not (tmp_path / "other.yml").exists()
