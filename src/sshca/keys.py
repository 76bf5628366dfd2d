"""
CA Key Provisioning

Key pair generation for a requested algorithm and public key derivation
from an existing private key. Both run the toolchain against files in a
transient workspace that is removed before returning.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from sshca.backends import KeyGenInvocation, SigningBackend, SshKeygenBackend
from sshca.constants import DERIVE_KEY_NAME, GENERATED_KEY_NAME
from sshca.exceptions import ExternalToolError
from sshca.metrics import SigningMetrics
from sshca.models import KeyAlgorithm, KeyPair, coerce_key_algorithm
from sshca.workspace import KeyWorkspace

logger = logging.getLogger(__name__)

ALGORITHM_PARAMETERS: dict[KeyAlgorithm, tuple[str, int]] = {
    KeyAlgorithm.RSA_2048: ("rsa", 2048),
    KeyAlgorithm.RSA_4096: ("rsa", 4096),
    KeyAlgorithm.ECDSA_P256: ("ecdsa", 256),
    KeyAlgorithm.ECDSA_P384: ("ecdsa", 384),
}


def key_parameters(algorithm: Any) -> tuple[str, int]:
    """Return ``(key_type, bits)`` for an algorithm.

    Raises:
        ConfigurationError: If the algorithm is not supported.
    """
    return ALGORITHM_PARAMETERS[coerce_key_algorithm(algorithm)]


class KeyPairGenerator:
    """Generate OpenSSH key pairs through a signing backend.

    Args:
        backend: Key toolchain, ssh-keygen by default.
        work_dir: Parent directory for the transient workspace.
        metrics: Optional metrics sink.
    """

    def __init__(
        self,
        backend: Optional[SigningBackend] = None,
        work_dir: Optional[str | Path] = None,
        metrics: Optional[SigningMetrics] = None,
    ) -> None:
        self.backend = backend or SshKeygenBackend()
        self.work_dir = work_dir
        self.metrics = metrics

    def generate(self, algorithm: Any, comment: str = "") -> KeyPair:
        """Generate a key pair.

        Args:
            algorithm: A KeyAlgorithm (or its value/name).
            comment: Comment embedded in the public key.

        Returns:
            The generated key pair.

        Raises:
            ConfigurationError: If the algorithm is not supported.
            ExternalToolError: If generation fails or leaves no key files.
        """
        key_type, bits = key_parameters(algorithm)

        with KeyWorkspace(self.work_dir) as ws:
            invocation = KeyGenInvocation(
                key_type=key_type,
                bits=bits,
                key_path=ws.artifact(GENERATED_KEY_NAME),
                comment=comment,
            )
            try:
                self.backend.generate_key(invocation)
                public_key = invocation.public_key_path.read_text(encoding="utf-8")
                private_key = invocation.key_path.read_text(encoding="utf-8")
            except FileNotFoundError as exc:
                self._record_failure()
                raise ExternalToolError("Key generation produced no key files") from exc
            except (OSError, UnicodeDecodeError) as exc:
                self._record_failure()
                raise ExternalToolError(f"Unable to read generated key files: {exc}") from exc
            except ExternalToolError:
                self._record_failure()
                raise

        logger.info("Generated %s-%d key pair", key_type, bits)
        return KeyPair(public_key=public_key, private_key=private_key)

    def _record_failure(self) -> None:
        if self.metrics is not None:
            self.metrics.record_backend_failure("generate")


class PublicKeyDeriver:
    """Recover the OpenSSH public key of a private key."""

    def __init__(
        self,
        backend: Optional[SigningBackend] = None,
        work_dir: Optional[str | Path] = None,
        metrics: Optional[SigningMetrics] = None,
    ) -> None:
        self.backend = backend or SshKeygenBackend()
        self.work_dir = work_dir
        self.metrics = metrics

    def derive(self, private_key: str) -> str:
        """Return the public key for *private_key*.

        Raises:
            ExternalToolError: If derivation fails or produces no output.
        """
        with KeyWorkspace(self.work_dir) as ws:
            key_path = ws.write_secret(DERIVE_KEY_NAME, private_key)
            try:
                public_key = self.backend.derive_public_key(key_path)
            except ExternalToolError:
                if self.metrics is not None:
                    self.metrics.record_backend_failure("derive")
                raise

        if not public_key or not public_key.strip():
            raise ExternalToolError("Public key derivation produced no output")
        return public_key
