"""
Certificate Signing

Orchestrates issuance of an SSH certificate: policy checks against the
template, TTL resolution, serial allocation and the signing call. Key
material is handed to the toolchain through a transient workspace that
is deleted on every exit path, so a call either returns a complete
certificate or fails leaving nothing on disk.
"""

from __future__ import annotations

import logging
import time
from pathlib import Path
from typing import Any, Optional

from pydantic import SecretStr

from sshca.backends import SigningBackend, SigningInvocation, SshKeygenBackend
from sshca.constants import CA_PRIVATE_KEY_NAME, SUBJECT_PUBLIC_KEY_NAME
from sshca.exceptions import (
    ExternalToolError,
    PolicyViolationError,
    PrincipalRejectedError,
)
from sshca.keys import KeyPairGenerator
from sshca.metrics import SigningMetrics
from sshca.models import (
    CertificateRequest,
    CertificateTemplate,
    CertType,
    IssuedCredentials,
    KeyAlgorithm,
    SignedCertificate,
    coerce_cert_type,
    coerce_key_algorithm,
)
from sshca.policy import TemplatePolicyValidator
from sshca.serial import SerialNumberGenerator
from sshca.ttl import TTLResolver
from sshca.workspace import KeyWorkspace

logger = logging.getLogger(__name__)


def _reveal(secret: str | SecretStr) -> str:
    if isinstance(secret, SecretStr):
        return secret.get_secret_value()
    return secret


class CertificateSigner:
    """Produce signed SSH certificates from a CA private key.

    Args:
        backend: Key toolchain, ssh-keygen by default.
        serial_generator: Serial number source.
        validator: Template policy validator.
        ttl_resolver: TTL resolver.
        work_dir: Parent directory for transient workspaces.
        metrics: Optional metrics sink.

    Example:
        >>> signer = CertificateSigner()
        >>> cert = signer.sign(ca_key, user_pub, "alice", ["alice"], 3600, "user")  # doctest: +SKIP
    """

    def __init__(
        self,
        backend: Optional[SigningBackend] = None,
        serial_generator: Optional[SerialNumberGenerator] = None,
        validator: Optional[TemplatePolicyValidator] = None,
        ttl_resolver: Optional[TTLResolver] = None,
        work_dir: Optional[str | Path] = None,
        metrics: Optional[SigningMetrics] = None,
    ) -> None:
        self.backend = backend or SshKeygenBackend()
        self.serial_generator = serial_generator or SerialNumberGenerator()
        self.validator = validator or TemplatePolicyValidator()
        self.ttl_resolver = ttl_resolver or TTLResolver()
        self.work_dir = work_dir
        self.metrics = metrics

    # ------------------------------------------------------------------
    # Signing
    # ------------------------------------------------------------------

    def sign(
        self,
        ca_private_key: str | SecretStr,
        requester_public_key: str,
        key_id: str,
        principals: list[str],
        ttl_seconds: int,
        cert_type: Any,
    ) -> SignedCertificate:
        """Sign *requester_public_key* with the CA key.

        No policy is applied here; use :meth:`issue` to check a request
        against a template first.

        Returns:
            The serial number and the signed certificate.

        Raises:
            UnsupportedCertTypeError: If *cert_type* is not user or host.
            PolicyViolationError: If *ttl_seconds* is not positive.
            PrincipalRejectedError: If no principals are given.
            ExternalToolError: If signing fails or produces no certificate.
        """
        cert_type = coerce_cert_type(cert_type)
        if isinstance(ttl_seconds, bool) or not isinstance(ttl_seconds, int) or ttl_seconds <= 0:
            raise PolicyViolationError(
                f"Certificate TTL must be a positive number of seconds, got {ttl_seconds!r}",
                rule="ttl",
            )
        principals = list(principals)
        if not principals:
            raise PrincipalRejectedError("At least one principal is required")

        started = time.perf_counter()
        with KeyWorkspace(self.work_dir) as ws:
            public_key_path = ws.write(SUBJECT_PUBLIC_KEY_NAME, requester_public_key)
            ca_key_path = ws.write_secret(CA_PRIVATE_KEY_NAME, _reveal(ca_private_key))

            serial_number = self.serial_generator.next()
            invocation = SigningInvocation(
                ca_key_path=ca_key_path,
                identity=key_id,
                principals=principals,
                validity=f"+{ttl_seconds}s",
                serial_number=serial_number,
                public_key_path=public_key_path,
                host_certificate=cert_type == CertType.HOST,
            )

            try:
                cert_path = self.backend.sign(invocation)
                signed_public_key = cert_path.read_text(encoding="utf-8")
            except FileNotFoundError as exc:
                self._record_failure()
                raise ExternalToolError("Signing produced no certificate") from exc
            except (OSError, UnicodeDecodeError) as exc:
                self._record_failure()
                raise ExternalToolError(f"Unable to read signed certificate: {exc}") from exc
            except ExternalToolError:
                self._record_failure()
                raise

            if not signed_public_key.strip():
                self._record_failure()
                raise ExternalToolError("Signing produced an empty certificate")

        if self.metrics is not None:
            self.metrics.observe_signing(time.perf_counter() - started)
            self.metrics.record_issued(cert_type.value)
        logger.info(
            "Issued %s certificate serial=%s key_id=%s principals=%d ttl=%ds",
            cert_type.value,
            serial_number,
            key_id,
            len(principals),
            ttl_seconds,
        )
        return SignedCertificate(
            serial_number=serial_number,
            signed_public_key=signed_public_key,
        )

    # ------------------------------------------------------------------
    # Policy-checked issuance
    # ------------------------------------------------------------------

    def check_request(
        self,
        template: CertificateTemplate,
        cert_type: Any,
        principals: list[str],
        requested_ttl: Optional[str] = None,
    ) -> int:
        """Apply the template to a request and return the TTL in seconds.

        Raises:
            UnsupportedCertTypeError: If *cert_type* is not user or host.
            PolicyViolationError: If the template forbids the type.
            PrincipalRejectedError: If any principal is not allowed.
            TTLExceededError: If the requested TTL exceeds the template max.
        """
        try:
            self.validator.validate_cert_type(template, cert_type)
            rejected = self.validator.rejected_principals(cert_type, template, principals)
            if rejected:
                raise PrincipalRejectedError(
                    "Failed to validate SSH certificate principals due to "
                    f"template restriction: {', '.join(rejected)}",
                    principals=rejected,
                )
            return self.ttl_resolver.resolve(template, requested_ttl)
        except PolicyViolationError as exc:
            logger.warning("Certificate request rejected (%s): %s", exc.rule, exc)
            self._record_rejection(exc.rule)
            raise
        except PrincipalRejectedError as exc:
            logger.warning("Certificate request rejected: %s", exc)
            self._record_rejection("principals")
            raise

    def issue(
        self,
        template: CertificateTemplate,
        ca_private_key: str | SecretStr,
        request: CertificateRequest,
    ) -> SignedCertificate:
        """Check *request* against *template* and sign it."""
        ttl_seconds = self.check_request(
            template, request.cert_type, request.principals, request.requested_ttl
        )
        return self.sign(
            ca_private_key,
            request.public_key,
            request.key_id,
            request.principals,
            ttl_seconds,
            request.cert_type,
        )

    def issue_credentials(
        self,
        template: CertificateTemplate,
        ca_private_key: str | SecretStr,
        cert_type: Any,
        principals: list[str],
        key_id: str,
        requested_ttl: Optional[str] = None,
        key_algorithm: Any = KeyAlgorithm.RSA_2048,
    ) -> IssuedCredentials:
        """Generate a fresh key pair for the requester and sign it.

        The template is checked before any key is generated.
        """
        key_algorithm = coerce_key_algorithm(key_algorithm)
        ttl_seconds = self.check_request(template, cert_type, principals, requested_ttl)

        generator = KeyPairGenerator(self.backend, self.work_dir, self.metrics)
        key_pair = generator.generate(key_algorithm, comment=key_id)
        signed = self.sign(
            ca_private_key,
            key_pair.public_key,
            key_id,
            principals,
            ttl_seconds,
            cert_type,
        )
        return IssuedCredentials(
            serial_number=signed.serial_number,
            signed_public_key=signed.signed_public_key,
            key_algorithm=key_algorithm,
            public_key=key_pair.public_key,
            private_key=key_pair.private_key,
        )

    def _record_rejection(self, reason: str) -> None:
        if self.metrics is not None:
            self.metrics.record_rejection(reason)

    def _record_failure(self) -> None:
        if self.metrics is not None:
            self.metrics.record_backend_failure("sign")
