"""
Configuration

Runtime settings for the signing pipeline, loaded from YAML with
``SSHCA_*`` environment variable overrides.
"""

from __future__ import annotations

import os
import tempfile
from pathlib import Path
from typing import Literal, Mapping, Optional

import yaml
from pydantic import BaseModel, Field, ValidationError

from sshca.constants import DEFAULT_STALE_WORKSPACE_SECONDS
from sshca.exceptions import ConfigurationError

ENV_OVERRIDES = {
    "SSHCA_BACKEND": "backend",
    "SSHCA_SSH_KEYGEN": "ssh_keygen_path",
    "SSHCA_WORK_DIR": "work_dir",
    "SSHCA_TOOL_TIMEOUT": "tool_timeout_seconds",
}


class SSHCAConfig(BaseModel):
    """Settings for the SSH certificate authority.

    Attributes:
        backend: Key toolchain, ``ssh-keygen`` or ``cryptography``.
        ssh_keygen_path: ssh-keygen executable name or path.
        work_dir: Parent directory of transient key workspaces.
        tool_timeout_seconds: Timeout for each toolchain call, None for no limit.
        stale_workspace_seconds: Age after which leftover workspaces are purged.
    """

    backend: Literal["ssh-keygen", "cryptography"] = Field(
        default="ssh-keygen", description="Key toolchain"
    )
    ssh_keygen_path: str = Field(default="ssh-keygen", description="ssh-keygen executable")
    work_dir: str = Field(
        default_factory=tempfile.gettempdir, description="Transient workspace directory"
    )
    tool_timeout_seconds: Optional[float] = Field(
        default=None, gt=0, description="Toolchain timeout in seconds"
    )
    stale_workspace_seconds: int = Field(
        default=DEFAULT_STALE_WORKSPACE_SECONDS, gt=0, description="Stale workspace age"
    )

    @classmethod
    def from_yaml(
        cls,
        path: str | Path,
        environ: Optional[Mapping[str, str]] = None,
    ) -> "SSHCAConfig":
        """Load configuration from a YAML file, then apply env overrides."""
        path = Path(path)
        try:
            with open(path, "r") as f:
                data = yaml.safe_load(f) or {}
        except (OSError, yaml.YAMLError) as exc:
            raise ConfigurationError(f"Cannot read config {path}: {exc}") from exc
        if not isinstance(data, dict):
            raise ConfigurationError(f"Config {path} must be a mapping")
        return cls.from_mapping(data, environ)

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "SSHCAConfig":
        """Build configuration from defaults and environment variables."""
        return cls.from_mapping({}, environ)

    @classmethod
    def from_mapping(
        cls,
        data: Mapping[str, object],
        environ: Optional[Mapping[str, str]] = None,
    ) -> "SSHCAConfig":
        environ = os.environ if environ is None else environ
        merged = dict(data)
        for env_name, field_name in ENV_OVERRIDES.items():
            if environ.get(env_name):
                merged[field_name] = environ[env_name]
        try:
            return cls(**merged)
        except ValidationError as exc:
            raise ConfigurationError(f"Invalid configuration: {exc}") from exc
