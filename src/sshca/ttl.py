"""
TTL Resolution

Resolves the validity duration of a certificate from the request and the
template: the template default when nothing is requested, otherwise the
requested TTL as long as it does not exceed the template maximum.
"""

from __future__ import annotations

import logging
from typing import Optional

from sshca.duration import parse_duration
from sshca.exceptions import PolicyViolationError, TTLExceededError
from sshca.models import CertificateTemplate

logger = logging.getLogger(__name__)


class TTLResolver:
    """Resolve a requested TTL against template bounds."""

    def resolve(self, template: CertificateTemplate, requested_ttl: Optional[str] = None) -> int:
        """Return the certificate TTL in seconds.

        Args:
            template: Template supplying the default and maximum TTL.
            requested_ttl: Requested duration string, or None for the default.

        Returns:
            TTL in whole seconds, always > 0 and <= the template max TTL.

        Raises:
            TTLExceededError: If the requested TTL exceeds the max TTL.
            PolicyViolationError: If the TTL resolves to zero seconds.
            InvalidDurationError: If a duration string cannot be parsed.
        """
        if not requested_ttl:
            ttl_ms = parse_duration(template.ttl)
        else:
            ttl_ms = parse_duration(requested_ttl)
            max_ttl_ms = parse_duration(template.max_ttl)
            if ttl_ms > max_ttl_ms:
                logger.warning(
                    "Requested TTL %s exceeds template max TTL %s",
                    requested_ttl,
                    template.max_ttl,
                )
                raise TTLExceededError(
                    "Failed TTL validation due to TTL being greater than "
                    "configured max TTL on template",
                    requested_ms=ttl_ms,
                    max_ms=max_ttl_ms,
                )

        seconds = ttl_ms // 1000
        if seconds <= 0:
            raise PolicyViolationError(
                f"Certificate TTL must be at least one second, got {ttl_ms}ms",
                rule="ttl",
            )
        return seconds
