"""
In-process Backend

Implements the ssh-keygen file contract with the ``cryptography``
library's OpenSSH serialization and ``SSHCertificateBuilder``. Useful
where ``ssh-keygen`` is not installed.
"""

from __future__ import annotations

import logging
import re
import time
from pathlib import Path

from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric import ec, rsa

from sshca.backends.base import (
    KeyGenInvocation,
    SigningBackend,
    SigningInvocation,
    write_key_file,
)
from sshca.constants import DEFAULT_USER_EXTENSIONS, SECRET_FILE_MODE
from sshca.exceptions import ExternalToolError

logger = logging.getLogger(__name__)

_CURVES = {
    256: ec.SECP256R1,
    384: ec.SECP384R1,
    521: ec.SECP521R1,
}

_VALIDITY_RE = re.compile(r"^\+(\d+)s$")


class CryptographyBackend(SigningBackend):
    """Signing backend implemented with ``cryptography``."""

    name = "cryptography"

    def generate_key(self, invocation: KeyGenInvocation) -> None:
        if invocation.key_type == "rsa":
            private_key = rsa.generate_private_key(
                public_exponent=65537, key_size=invocation.bits
            )
        elif invocation.key_type == "ecdsa":
            curve = _CURVES.get(invocation.bits)
            if curve is None:
                raise ExternalToolError(f"Unsupported ECDSA key size: {invocation.bits}")
            private_key = ec.generate_private_key(curve())
        else:
            raise ExternalToolError(f"Unsupported key type: {invocation.key_type}")

        private_pem = private_key.private_bytes(
            encoding=serialization.Encoding.PEM,
            format=serialization.PrivateFormat.OpenSSH,
            encryption_algorithm=serialization.NoEncryption(),
        ).decode()
        public_line = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.OpenSSH,
            format=serialization.PublicFormat.OpenSSH,
        ).decode()
        if invocation.comment:
            public_line = f"{public_line} {invocation.comment}"

        write_key_file(invocation.key_path, private_pem, SECRET_FILE_MODE)
        write_key_file(invocation.public_key_path, public_line + "\n", 0o644)

    def derive_public_key(self, private_key_path: Path) -> str:
        private_key = self._load_private_key(private_key_path)
        public_line = private_key.public_key().public_bytes(
            encoding=serialization.Encoding.OpenSSH,
            format=serialization.PublicFormat.OpenSSH,
        ).decode()
        return public_line + "\n"

    def sign(self, invocation: SigningInvocation) -> Path:
        match = _VALIDITY_RE.match(invocation.validity)
        if match is None:
            raise ExternalToolError(f"Unsupported validity window: {invocation.validity}")
        ttl_seconds = int(match.group(1))

        ca_key = self._load_private_key(invocation.ca_key_path)
        try:
            subject_key = serialization.load_ssh_public_key(
                invocation.public_key_path.read_bytes()
            )
        except (ValueError, UnsupportedAlgorithm) as exc:
            raise ExternalToolError(f"Invalid subject public key: {exc}") from exc

        if invocation.host_certificate:
            cert_type = serialization.SSHCertificateType.HOST
            extensions: tuple[str, ...] = ()
        else:
            cert_type = serialization.SSHCertificateType.USER
            extensions = DEFAULT_USER_EXTENSIONS

        now = int(time.time())
        try:
            builder = (
                serialization.SSHCertificateBuilder()
                .public_key(subject_key)
                .serial(int(invocation.serial_number))
                .type(cert_type)
                .key_id(invocation.identity.encode())
                .valid_principals([p.encode() for p in invocation.principals])
                .valid_after(now)
                .valid_before(now + ttl_seconds)
            )
            for extension in sorted(extensions):
                builder = builder.add_extension(extension.encode(), b"")
            certificate = builder.sign(ca_key)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            logger.error("Certificate signing failed: %s", exc)
            raise ExternalToolError(f"Certificate signing failed: {exc}") from exc

        cert_path = invocation.certificate_path
        write_key_file(cert_path, certificate.public_bytes().decode() + "\n", 0o644)
        return cert_path

    @staticmethod
    def _load_private_key(path: Path):
        try:
            return serialization.load_ssh_private_key(path.read_bytes(), password=None)
        except (ValueError, TypeError, UnsupportedAlgorithm) as exc:
            # Exception text never contains key bytes
            raise ExternalToolError(f"Unable to load private key: {exc}") from exc
