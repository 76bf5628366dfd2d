"""
Signing Backends

Pluggable key toolchains: ``ssh-keygen`` (default) and an in-process
``cryptography`` implementation with the same file contract.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from sshca.backends.base import (
    KeyGenInvocation,
    SigningBackend,
    SigningInvocation,
    certificate_path_for,
)
from sshca.backends.native import CryptographyBackend
from sshca.backends.ssh_keygen import SshKeygenBackend
from sshca.exceptions import ConfigurationError

if TYPE_CHECKING:
    from sshca.config import SSHCAConfig


def get_backend(config: "SSHCAConfig") -> SigningBackend:
    """Build the backend selected by *config*."""
    if config.backend == "ssh-keygen":
        return SshKeygenBackend(
            executable=config.ssh_keygen_path,
            timeout_seconds=config.tool_timeout_seconds,
        )
    if config.backend == "cryptography":
        return CryptographyBackend()
    raise ConfigurationError(f"Unknown signing backend: {config.backend!r}")


__all__ = [
    "KeyGenInvocation",
    "SigningBackend",
    "SigningInvocation",
    "certificate_path_for",
    "CryptographyBackend",
    "SshKeygenBackend",
    "get_backend",
]
