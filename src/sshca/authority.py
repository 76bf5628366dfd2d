"""
SSH Certificate Authority

Ties a CA key pair to the signing pipeline. Provisioning creates the
key material (or rebuilds it from an existing private key); issuance
checks each request against a template before signing.
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any, Optional

from pydantic import SecretStr

from sshca.backends import SigningBackend, SshKeygenBackend
from sshca.keys import KeyPairGenerator, PublicKeyDeriver
from sshca.metrics import SigningMetrics
from sshca.models import (
    CaKeyMaterial,
    CertificateRequest,
    CertificateTemplate,
    IssuedCredentials,
    KeyAlgorithm,
    SignedCertificate,
    coerce_key_algorithm,
)
from sshca.signer import CertificateSigner

logger = logging.getLogger(__name__)


class SSHCertificateAuthority:
    """
    An SSH certificate authority.

    The CA holds its key material only for the lifetime of this object;
    persisting it is the caller's responsibility.
    """

    def __init__(
        self,
        ca_key: CaKeyMaterial,
        backend: Optional[SigningBackend] = None,
        work_dir: Optional[str | Path] = None,
        metrics: Optional[SigningMetrics] = None,
    ):
        """
        Initialize the Certificate Authority.

        Args:
            ca_key: CA key material
            backend: Key toolchain (ssh-keygen if None)
            work_dir: Parent directory for transient workspaces
            metrics: Optional metrics sink
        """
        self.ca_key = ca_key
        self.backend = backend or SshKeygenBackend()
        self.signer = CertificateSigner(
            backend=self.backend,
            work_dir=work_dir,
            metrics=metrics,
        )

    @property
    def algorithm(self) -> KeyAlgorithm:
        return self.ca_key.algorithm

    @property
    def public_key(self) -> str:
        """OpenSSH public key to install as TrustedUserCAKeys / @cert-authority."""
        return self.ca_key.public_key

    @classmethod
    def create(
        cls,
        algorithm: Any = KeyAlgorithm.RSA_2048,
        comment: str = "",
        backend: Optional[SigningBackend] = None,
        work_dir: Optional[str | Path] = None,
        metrics: Optional[SigningMetrics] = None,
    ) -> "SSHCertificateAuthority":
        """Provision a new CA with a freshly generated key pair."""
        algorithm = coerce_key_algorithm(algorithm)
        backend = backend or SshKeygenBackend()
        key_pair = KeyPairGenerator(backend, work_dir, metrics).generate(algorithm, comment)
        ca_key = CaKeyMaterial(
            algorithm=algorithm,
            public_key=key_pair.public_key,
            private_key=key_pair.private_key,
        )
        logger.info("Provisioned SSH CA with %s key", algorithm.value)
        return cls(ca_key, backend=backend, work_dir=work_dir, metrics=metrics)

    @classmethod
    def from_private_key(
        cls,
        private_key: str | SecretStr,
        algorithm: Any,
        backend: Optional[SigningBackend] = None,
        work_dir: Optional[str | Path] = None,
        metrics: Optional[SigningMetrics] = None,
    ) -> "SSHCertificateAuthority":
        """Rebuild a CA from an existing private key, deriving its public key."""
        if isinstance(private_key, SecretStr):
            private_key = private_key.get_secret_value()
        backend = backend or SshKeygenBackend()
        public_key = PublicKeyDeriver(backend, work_dir, metrics).derive(private_key)
        ca_key = CaKeyMaterial(
            algorithm=algorithm,
            public_key=public_key,
            private_key=private_key,
        )
        return cls(ca_key, backend=backend, work_dir=work_dir, metrics=metrics)

    def issue(
        self,
        template: CertificateTemplate,
        request: CertificateRequest,
    ) -> SignedCertificate:
        """
        Issue a certificate for a request.

        Args:
            template: Policy template of this CA
            request: Signing request

        Returns:
            Serial number and signed certificate

        Raises:
            PolicyViolationError: If the template forbids the request
            PrincipalRejectedError: If a principal is not allowed
            ExternalToolError: If signing fails
        """
        return self.signer.issue(template, self.ca_key.private_key, request)

    def issue_credentials(
        self,
        template: CertificateTemplate,
        cert_type: Any,
        principals: list[str],
        key_id: str,
        requested_ttl: Optional[str] = None,
        key_algorithm: Any = KeyAlgorithm.RSA_2048,
    ) -> IssuedCredentials:
        """Generate a requester key pair and issue a certificate for it."""
        return self.signer.issue_credentials(
            template,
            self.ca_key.private_key,
            cert_type,
            principals,
            key_id,
            requested_ttl=requested_ttl,
            key_algorithm=key_algorithm,
        )
