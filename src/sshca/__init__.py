"""
sshca - SSH Certificate Authority

Issues SSH user and host certificates signed by a managed CA, enforcing
per-CA templates that restrict certificate type, principals and TTL.

Version: 1.0.0
"""

__version__ = "1.0.0"

from .authority import SSHCertificateAuthority
from .backends import (
    CryptographyBackend,
    KeyGenInvocation,
    SigningBackend,
    SigningInvocation,
    SshKeygenBackend,
    get_backend,
)
from .config import SSHCAConfig
from .duration import parse_duration
from .exceptions import (
    SSHCAError,
    ConfigurationError,
    InvalidDurationError,
    UnsupportedCertTypeError,
    PolicyViolationError,
    TTLExceededError,
    PrincipalRejectedError,
    ExternalToolError,
)
from .keys import KeyPairGenerator, PublicKeyDeriver
from .metrics import SigningMetrics
from .models import (
    CaKeyMaterial,
    CertificateRequest,
    CertificateTemplate,
    CertType,
    IssuedCredentials,
    KeyAlgorithm,
    KeyPair,
    SignedCertificate,
    load_templates,
)
from .policy import TemplatePolicyValidator
from .serial import SerialNumberGenerator, create_serial_number
from .signer import CertificateSigner
from .ttl import TTLResolver
from .workspace import KeyWorkspace, purge_stale_workspaces

__all__ = [
    "__version__",
    "SSHCertificateAuthority",
    "CryptographyBackend",
    "KeyGenInvocation",
    "SigningBackend",
    "SigningInvocation",
    "SshKeygenBackend",
    "get_backend",
    "SSHCAConfig",
    "parse_duration",
    "SSHCAError",
    "ConfigurationError",
    "InvalidDurationError",
    "UnsupportedCertTypeError",
    "PolicyViolationError",
    "TTLExceededError",
    "PrincipalRejectedError",
    "ExternalToolError",
    "KeyPairGenerator",
    "PublicKeyDeriver",
    "SigningMetrics",
    "CaKeyMaterial",
    "CertificateRequest",
    "CertificateTemplate",
    "CertType",
    "IssuedCredentials",
    "KeyAlgorithm",
    "KeyPair",
    "SignedCertificate",
    "load_templates",
    "TemplatePolicyValidator",
    "SerialNumberGenerator",
    "create_serial_number",
    "CertificateSigner",
    "TTLResolver",
    "KeyWorkspace",
    "purge_stale_workspaces",
]
