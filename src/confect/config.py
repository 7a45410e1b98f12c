"""Runtime configuration for confect.

Resolves the handful of values every component needs (repository root,
encryption settings, host name) from explicit arguments, environment
variables, .env files and the YAML config.

Precedence (highest to lowest):
    Explicit args > Environment variables > .env file > YAML config > Built-in defaults

Environment variables:
    CONFECT_REPO: Repository root directory
    CONFECT_ENCRYPTION: Enable encryption at rest (true/false)
    CONFECT_HOST: Host name recorded in the repository
    CONFECT_CONFIG: Explicit YAML config file (see config_loader)
"""

import logging
import os
import socket
from dataclasses import dataclass
from pathlib import Path

from confect.config_schema import UnifiedConfig
from confect.errors import ConfigError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RuntimeConfig:
    repo_path: Path
    hostname: str
    encryption_enabled: bool = False
    recipients: tuple[str, ...] = ()
    recipients_file: Path | None = None
    identity_file: Path | None = None
    default_remote: str = "origin"
    auto_push: bool = True
    debug: bool = False
    log_level: str = "INFO"
    log_file: str | None = None


def default_repo_path() -> Path:
    """Return the XDG data location of the repository.

    ``$XDG_DATA_HOME/confect`` when set, ``~/.local/share/confect``
    otherwise.
    """
    data_home = os.getenv("XDG_DATA_HOME")
    if data_home:
        return Path(data_home) / "confect"
    return Path.home() / ".local" / "share" / "confect"


def _get_bool_env(key: str) -> bool | None:
    """Return True/False from env var, or None if unset."""
    val = os.getenv(key)
    if val is None:
        return None
    return val.strip().lower() in ("true", "1", "yes", "on")


def _optional_path(value: str | None) -> Path | None:
    if not value:
        return None
    return Path(value).expanduser()


def validate_config(config: RuntimeConfig) -> None:
    """Check a resolved configuration for inconsistencies.

    Raises:
        ConfigError: Relative repository path, empty host name, or
            encryption enabled without any recipient source.
    """
    if not config.repo_path.is_absolute():
        raise ConfigError(
            f"Repository path '{config.repo_path}' must be absolute"
        )

    if not config.hostname.strip():
        raise ConfigError(
            "Host name cannot be empty. Set CONFECT_HOST or hosts.current."
        )

    if config.encryption_enabled:
        if not config.recipients and config.recipients_file is None:
            raise ConfigError(
                "Encryption is enabled but no recipients are configured. "
                "Set encryption.public_key, encryption.recipients or "
                "encryption.recipients_file."
            )
        if config.recipients_file is not None and not config.recipients_file.exists():
            raise ConfigError(
                f"Recipients file not found: {config.recipients_file}"
            )
        if config.identity_file is None:
            logger.warning(
                "Encryption enabled without identity_file: encrypted "
                "copies cannot be compared or restored"
            )


def load_config(
    repo_path: str | Path | None = None,
    encryption: bool | None = None,
    hostname: str | None = None,
    debug: bool = False,
    unified: UnifiedConfig | None = None,
) -> RuntimeConfig:
    """Load configuration with unified precedence.

    Resolution order for each field (highest to lowest):
        explicit arg > env var / .env > YAML (``unified``) > built-in default

    The caller is responsible for calling ``load_dotenv()`` before this
    function so that .env values are available via ``os.getenv()``.

    Args:
        repo_path: Override repository root.
        encryption: Override the encryption switch (``None`` = not given).
        hostname: Override the host name.
        debug: Enable debug logging.
        unified: Parsed YAML config from ``build_config()``.

    Returns:
        Validated RuntimeConfig instance.

    Raises:
        ConfigError: The resolved values are inconsistent.
    """
    yaml_cfg = unified or UnifiedConfig()

    # --- Paths / strings: arg > env > YAML > default ---

    final_repo = (
        repo_path
        or os.getenv("CONFECT_REPO")
        or yaml_cfg.global_.repo_path
    )
    final_repo_path = (
        Path(final_repo).expanduser() if final_repo else default_repo_path()
    )

    final_host = (
        hostname
        or os.getenv("CONFECT_HOST")
        or yaml_cfg.hosts.current
        or socket.gethostname()
    ).strip()

    # --- Booleans: arg > env > YAML ---

    if encryption is not None:
        final_encryption = encryption
    else:
        env_encryption = _get_bool_env("CONFECT_ENCRYPTION")
        if env_encryption is not None:
            final_encryption = env_encryption
        else:
            final_encryption = yaml_cfg.encryption.enabled

    recipients: list[str] = []
    if yaml_cfg.encryption.public_key:
        recipients.append(yaml_cfg.encryption.public_key)
    recipients.extend(
        r for r in yaml_cfg.encryption.recipients if r not in recipients
    )

    config = RuntimeConfig(
        repo_path=final_repo_path,
        hostname=final_host,
        encryption_enabled=final_encryption,
        recipients=tuple(recipients),
        recipients_file=_optional_path(yaml_cfg.encryption.recipients_file),
        identity_file=_optional_path(yaml_cfg.encryption.identity_file),
        default_remote=yaml_cfg.global_.default_remote,
        auto_push=yaml_cfg.global_.auto_push,
        debug=debug,
        log_level="DEBUG" if debug else yaml_cfg.logging.level.upper(),
        log_file=yaml_cfg.logging.file,
    )

    validate_config(config)
    return config
