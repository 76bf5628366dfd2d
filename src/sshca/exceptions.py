"""Centralized exception hierarchy for sshca.

All sshca exceptions inherit from SSHCAError, so callers can catch a
single base class at an API boundary and still inspect the concrete
policy clause that failed.
"""


class SSHCAError(Exception):
    """Base exception for all sshca errors."""


class ConfigurationError(SSHCAError):
    """Invalid configuration, such as an unsupported key algorithm."""


class InvalidDurationError(ConfigurationError):
    """A duration string could not be parsed."""


class UnsupportedCertTypeError(SSHCAError):
    """The requested certificate type is not ``user`` or ``host``."""


class PolicyViolationError(SSHCAError):
    """The certificate template forbids the request."""

    def __init__(self, message: str, rule: str = "policy") -> None:
        super().__init__(message)
        self.rule = rule


class TTLExceededError(PolicyViolationError):
    """Requested TTL is greater than the template's maximum TTL."""

    def __init__(self, message: str, requested_ms: int, max_ms: int) -> None:
        super().__init__(message, rule="max_ttl")
        self.requested_ms = requested_ms
        self.max_ms = max_ms


class PrincipalRejectedError(SSHCAError):
    """One or more principals fail the template's pattern or membership rules."""

    def __init__(self, message: str, principals: list[str] | None = None) -> None:
        super().__init__(message)
        self.principals = list(principals or [])


class ExternalToolError(SSHCAError):
    """The key/signing toolchain failed or produced no output."""

    def __init__(
        self,
        message: str,
        returncode: int | None = None,
        stderr: str = "",
    ) -> None:
        super().__init__(message)
        self.returncode = returncode
        self.stderr = stderr


__all__ = [
    "SSHCAError",
    "ConfigurationError",
    "InvalidDurationError",
    "UnsupportedCertTypeError",
    "PolicyViolationError",
    "TTLExceededError",
    "PrincipalRejectedError",
    "ExternalToolError",
]
