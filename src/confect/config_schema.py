"""Configuration schema for confect.

Pydantic models for the user config file, one per section:

- ``global``     -- where the repository lives and how it is pushed.
- ``encryption`` -- recipients and identity used for encrypted files.
- ``hosts``      -- how this host is identified in the repository.
- ``logging``    -- log level and optional log file.

Usage:
    from confect.config_loader import load_hierarchical_config
    from confect.config_schema import build_config

    unified = build_config(load_hierarchical_config())
    print(unified.encryption.enabled)
"""

from __future__ import annotations

import logging

from pydantic import BaseModel, Field, ValidationError, field_validator

from confect.errors import ConfigError

logger = logging.getLogger(__name__)


# ---------------------------------------------------------------------------
# Section models
# ---------------------------------------------------------------------------


class GlobalConfig(BaseModel):
    """Repository location and push behaviour."""

    repo_path: str | None = Field(
        default=None,
        description="Repository root; defaults to the XDG data directory",
    )
    default_remote: str = Field(
        default="origin", description="Remote used by sync"
    )
    auto_push: bool = Field(
        default=True, description="Push after every sync commit"
    )
    editor: str | None = Field(default=None, description="Preferred editor")

    model_config = {"frozen": True}


class EncryptionConfig(BaseModel):
    """Encryption at rest.

    Recipients are merged from ``public_key``, ``recipients`` and the lines
    of ``recipients_file``.  ``identity_file`` holds the private identity
    used to read encrypted repository copies back.
    """

    enabled: bool = False
    public_key: str | None = None
    recipients: list[str] = Field(default_factory=list)
    recipients_file: str | None = None
    identity_file: str | None = None

    model_config = {"frozen": True}


class HostsConfig(BaseModel):
    strategy: str = Field(
        default="branch", description="How hosts share the repository"
    )
    current: str | None = Field(
        default=None, description="Name of this host; defaults to hostname"
    )

    model_config = {"frozen": True}

    @field_validator("strategy")
    @classmethod
    def _known_strategy(cls, value: str) -> str:
        if value not in ("branch", "shared"):
            raise ValueError(
                f"Unknown host strategy '{value}' (expected branch or shared)"
            )
        return value


class LoggingConfig(BaseModel):
    """Logging configuration.

    Attributes:
        level: Log level name (DEBUG, INFO, WARNING, ERROR, CRITICAL).
        file: Optional log file path.
    """

    level: str = Field(default="INFO", description="Log level")
    file: str | None = Field(default=None, description="Log file path")

    model_config = {"frozen": True}


# ---------------------------------------------------------------------------
# Top-level config
# ---------------------------------------------------------------------------


class UnifiedConfig(BaseModel):
    """All config sections; ``UnifiedConfig()`` is a valid zero-config."""

    global_: GlobalConfig = Field(default_factory=GlobalConfig, alias="global")
    encryption: EncryptionConfig = Field(default_factory=EncryptionConfig)
    hosts: HostsConfig = Field(default_factory=HostsConfig)
    logging: LoggingConfig = Field(default_factory=LoggingConfig)

    model_config = {"frozen": True, "populate_by_name": True}


def build_config(raw_data: dict) -> UnifiedConfig:
    """Validate the merged mapping from ``load_hierarchical_config()``.

    Missing sections get defaults.

    Raises:
        ConfigError: A section has the wrong shape or an invalid value.
    """
    if not raw_data:
        return UnifiedConfig()

    try:
        return UnifiedConfig(**raw_data)
    except ValidationError as exc:
        raise ConfigError(f"Invalid configuration: {exc}") from exc
