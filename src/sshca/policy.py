"""
Template Policy Validation

Pure checks of a certificate request against its template: whether the
certificate type is allowed and whether every requested principal is
legal. Deterministic and side-effect free apart from debug logging.
"""

from __future__ import annotations

import logging
from typing import Any, Iterable

from sshca.constants import WILDCARD, WILDCARD_DOMAIN_PREFIX
from sshca.exceptions import PolicyViolationError
from sshca.models import CertificateTemplate, CertType, coerce_cert_type
from sshca.validators import is_valid_hostname, is_valid_username

logger = logging.getLogger(__name__)


class TemplatePolicyValidator:
    """Validate certificate type and principals against a template.

    Example:
        >>> template = CertificateTemplate(
        ...     allow_host_certificates=True, allowed_hosts=["*.example.com"]
        ... )
        >>> validator = TemplatePolicyValidator()
        >>> validator.validate_principals(CertType.HOST, template, ["a.example.com"])
        True
        >>> validator.validate_principals(CertType.HOST, template, ["example.com"])
        False
    """

    def validate_cert_type(self, template: CertificateTemplate, cert_type: Any) -> None:
        """Check that the template permits *cert_type*.

        Raises:
            PolicyViolationError: If the template forbids the type.
            UnsupportedCertTypeError: If *cert_type* is not user or host.
        """
        cert_type = coerce_cert_type(cert_type)

        if cert_type == CertType.USER and not template.allow_user_certificates:
            raise PolicyViolationError(
                "Failed to validate user certificate type due to template restriction",
                rule="allow_user_certificates",
            )

        if cert_type == CertType.HOST and not template.allow_host_certificates:
            raise PolicyViolationError(
                "Failed to validate host certificate type due to template restriction",
                rule="allow_host_certificates",
            )

    def validate_principals(
        self,
        cert_type: Any,
        template: CertificateTemplate,
        principals: Iterable[str],
    ) -> bool:
        """Return True iff every principal is individually valid.

        Raises:
            UnsupportedCertTypeError: If *cert_type* is not user or host.
        """
        return not self.rejected_principals(cert_type, template, principals)

    def rejected_principals(
        self,
        cert_type: Any,
        template: CertificateTemplate,
        principals: Iterable[str],
    ) -> list[str]:
        """Return the principals that fail the template, in request order."""
        cert_type = coerce_cert_type(cert_type)
        if cert_type == CertType.USER:
            check = self._is_allowed_user
        else:
            check = self._is_allowed_host

        rejected = [p for p in principals if not check(template, p)]
        if rejected:
            logger.debug("Rejected %d %s principal(s)", len(rejected), cert_type.value)
        return rejected

    @staticmethod
    def _is_allowed_user(template: CertificateTemplate, principal: str) -> bool:
        if principal == WILDCARD:
            return False
        if WILDCARD in template.allowed_users:
            return is_valid_username(principal)
        return principal in template.allowed_users

    @staticmethod
    def _is_allowed_host(template: CertificateTemplate, principal: str) -> bool:
        if WILDCARD in principal:
            return False
        if WILDCARD in template.allowed_hosts:
            return is_valid_hostname(principal)
        if not is_valid_hostname(principal):
            return False

        for allowed in template.allowed_hosts:
            if allowed.startswith(WILDCARD_DOMAIN_PREFIX):
                # Subdomains only; the base domain itself does not match
                base_domain = allowed[len(WILDCARD_DOMAIN_PREFIX):]
                if principal.endswith(f".{base_domain}"):
                    return True
            elif principal == allowed:
                return True
        return False
