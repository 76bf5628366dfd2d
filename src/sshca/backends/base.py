"""
Signing Backend Interface

The key toolchain is an injected capability. The core builds
invocations (what to generate, what to sign) and exchanges key material
with the backend through files in a transient workspace, which is the
command-line contract of ``ssh-keygen``.
"""

from __future__ import annotations

import abc
import os
from dataclasses import dataclass
from pathlib import Path


@dataclass(frozen=True)
class KeyGenInvocation:
    """Parameters for generating a key pair at ``key_path``.

    The public key is written next to it at ``key_path + ".pub"``.
    """

    key_type: str
    bits: int
    key_path: Path
    comment: str = ""

    @property
    def public_key_path(self) -> Path:
        return self.key_path.with_name(self.key_path.name + ".pub")


@dataclass(frozen=True)
class SigningInvocation:
    """Parameters for signing the public key at ``public_key_path``."""

    ca_key_path: Path
    identity: str
    principals: list[str]
    validity: str
    serial_number: str
    public_key_path: Path
    host_certificate: bool = False

    @property
    def principal_list(self) -> str:
        return ",".join(self.principals)

    @property
    def certificate_path(self) -> Path:
        return certificate_path_for(self.public_key_path)


def certificate_path_for(public_key_path: Path) -> Path:
    """Return where ``ssh-keygen -s`` writes the certificate for a key.

    ``id_rsa.pub`` becomes ``id_rsa-cert.pub``; a name without the
    ``.pub`` suffix gets ``-cert.pub`` appended.
    """
    name = public_key_path.name
    if name.endswith(".pub"):
        name = name[: -len(".pub")]
    return public_key_path.with_name(f"{name}-cert.pub")


def write_key_file(path: Path, data: str, mode: int) -> None:
    """Create *path* with *mode* before writing anything into it."""
    fd = os.open(path, os.O_WRONLY | os.O_CREAT | os.O_TRUNC, mode)
    os.fchmod(fd, mode)
    with os.fdopen(fd, "w", encoding="utf-8") as f:
        f.write(data)


class SigningBackend(abc.ABC):
    """Abstract key generation, public key derivation and signing toolchain."""

    name: str = "abstract"

    @abc.abstractmethod
    def generate_key(self, invocation: KeyGenInvocation) -> None:
        """Generate a key pair, writing the private and public key files.

        Raises:
            ExternalToolError: If generation fails.
        """

    @abc.abstractmethod
    def derive_public_key(self, private_key_path: Path) -> str:
        """Return the OpenSSH public key for the private key file.

        Raises:
            ExternalToolError: If derivation fails or yields no output.
        """

    @abc.abstractmethod
    def sign(self, invocation: SigningInvocation) -> Path:
        """Sign a public key and return the certificate path.

        Raises:
            ExternalToolError: If signing fails.
        """
