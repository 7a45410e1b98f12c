"""
User configuration file loader for confect.

Finds the YAML config files that apply to this host, resolves ``!include``
directives and ``${VAR}`` references, and merges them so the most specific
file wins.

Usage:
    from confect.config_loader import load_hierarchical_config

    raw = load_hierarchical_config()
"""

import logging
import os
import re
from pathlib import Path
from typing import Any

import yaml

from confect.errors import ConfigError

logger = logging.getLogger(__name__)

CONFIG_ENV_VAR = "CONFECT_CONFIG"
USER_CONFIG_PATH = Path("~/.config/confect/config.yml")
SYSTEM_CONFIG_PATH = Path("/etc/confect/config.yml")

# ---------------------------------------------------------------------------
# Env var interpolation
# ---------------------------------------------------------------------------

# ${VAR} or ${VAR:-default}
_ENV_VAR_PATTERN = re.compile(r"\$\{([^}:]+?)(?::-(.*?))?\}")


def interpolate_env_vars(value: str) -> str:
    """Expand ``${VAR}`` and ``${VAR:-default}`` inside *value*.

    An unset or empty variable expands to its default, or to ``""`` when
    there is none.  An unterminated ``${`` is kept as written.
    """

    def _replace(match: re.Match) -> str:
        env_val = os.environ.get(match.group(1))
        if env_val:
            return env_val
        return match.group(2) or ""

    return _ENV_VAR_PATTERN.sub(_replace, value)


def _interpolate_recursive(obj: Any) -> Any:
    if isinstance(obj, str):
        return interpolate_env_vars(obj)
    if isinstance(obj, dict):
        return {k: _interpolate_recursive(v) for k, v in obj.items()}
    if isinstance(obj, list):
        return [_interpolate_recursive(item) for item in obj]
    return obj


# ---------------------------------------------------------------------------
# YAML !include support
# ---------------------------------------------------------------------------


class ConfigLoader(yaml.SafeLoader):
    """SafeLoader with an ``!include`` tag.

    A subclass keeps the tag out of the global ``yaml.SafeLoader``.  Each
    load carries the chain of files being read so cycles are reported.
    """


def _include_constructor(loader: ConfigLoader, node: yaml.ScalarNode) -> Any:
    """Load the file named by ``!include <path>``.

    Relative paths resolve against the directory of the including file.
    """
    target = Path(loader.construct_scalar(node)).expanduser()
    if not target.is_absolute():
        target = Path(loader.name).resolve().parent / target
    target = target.resolve()

    chain: list[Path] = getattr(loader, "_include_stack", [])
    if target in chain:
        cycle = " -> ".join(str(p) for p in [*chain, target])
        raise ConfigError(f"Circular include detected: {cycle}")
    if not target.exists():
        raise ConfigError(
            f"Include file not found: {target} "
            f"(referenced from {Path(loader.name).resolve()})"
        )

    return _load_yaml_with_includes(target, _include_stack=[*chain, target])


ConfigLoader.add_constructor("!include", _include_constructor)


def _load_yaml_with_includes(
    path: Path,
    *,
    _include_stack: list[Path] | None = None,
) -> Any:
    path = path.resolve()
    with open(path, "r", encoding="utf-8") as fh:
        loader = ConfigLoader(fh)
        loader._include_stack = _include_stack or [path]  # type: ignore[attr-defined]
        try:
            return loader.get_single_data()
        finally:
            loader.dispose()


# ---------------------------------------------------------------------------
# Discovery
# ---------------------------------------------------------------------------


def discover_config_files() -> list[Path]:
    """Return existing config files, highest precedence first.

    Search order:
        1. ``CONFECT_CONFIG`` env var (explicit single path)
        2. ``~/.config/confect/config.yml`` (per user)
        3. ``/etc/confect/config.yml`` (host-wide)
    """
    candidates: list[Path] = []

    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        candidates.append(Path(env_path).expanduser().resolve())

    candidates.append(USER_CONFIG_PATH.expanduser())
    candidates.append(SYSTEM_CONFIG_PATH)

    return [p for p in candidates if p.exists()]


_STARTER_CONFIG = """\
# confect configuration
#
# Values can also come from the environment:
#   CONFECT_REPO, CONFECT_ENCRYPTION, CONFECT_HOST
#
# global:
#   repo_path: ~/.local/share/confect/repo
#   default_remote: origin
#   auto_push: true
#
# encryption:
#   enabled: false
#   public_key: age1...
#   recipients: []
#   recipients_file: ~/.config/confect/recipients.txt
#   identity_file: ~/.config/confect/identity.txt
#
# hosts:
#   strategy: branch
#
# logging:
#   level: INFO
#   file: null
"""


def resolve_config_path() -> Path:
    """Return the active config file, or the per-user default location.

    Nothing is created; see ``ensure_config()``.
    """
    existing = discover_config_files()
    if existing:
        return existing[0]
    return USER_CONFIG_PATH.expanduser()


def ensure_config(target: Path | None = None) -> Path:
    """Return the active config file, writing a commented starter if none.

    Args:
        target: Where to create the starter file.  Defaults to
            ``resolve_config_path()``.
    """
    existing = discover_config_files()
    if existing:
        logger.debug("Config file already exists: %s", existing[0])
        return existing[0]

    config_path = target or resolve_config_path()
    config_path.parent.mkdir(parents=True, exist_ok=True)
    config_path.write_text(_STARTER_CONFIG, encoding="utf-8")
    logger.info("Created starter config: %s", config_path)
    return config_path


# ---------------------------------------------------------------------------
# Merge
# ---------------------------------------------------------------------------


def load_hierarchical_config() -> dict[str, Any]:
    """Load and merge every discovered config file.

    Files are applied from lowest precedence to highest and each one
    replaces whole top-level sections of the ones before it.  Env var
    references are expanded after the merge.

    Returns:
        The merged mapping; ``{}`` when no file exists.

    Raises:
        ConfigError: A file is not valid YAML or an include cannot be
            resolved.
    """
    paths = discover_config_files()
    if not paths:
        logger.debug("No config files found, using defaults")
        return {}

    merged: dict[str, Any] = {}
    for path in reversed(paths):
        logger.debug("Loading config: %s", path)
        try:
            data = _load_yaml_with_includes(path)
        except yaml.YAMLError as exc:
            raise ConfigError(f"Invalid YAML in {path}: {exc}") from exc

        if isinstance(data, dict):
            merged.update(data)
        elif data is not None:
            logger.warning(
                "Config file %s has non-dict root (%s), skipping",
                path,
                type(data).__name__,
            )

    return _interpolate_recursive(merged)
