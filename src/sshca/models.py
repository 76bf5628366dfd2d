"""
SSH Certificate Authority Models

Pydantic models for certificate templates, signing requests, CA key
material and issued certificates. Private key material is held in
``SecretStr`` so it never shows up in reprs, logs or ``model_dump()``.
"""

from __future__ import annotations

import enum
from pathlib import Path
from typing import Any, Optional

import yaml
from pydantic import BaseModel, Field, SecretStr, field_validator, model_validator

from sshca.duration import parse_duration
from sshca.exceptions import ConfigurationError, UnsupportedCertTypeError
from sshca.validators import is_valid_host_pattern, is_valid_user_pattern


class CertType(str, enum.Enum):
    """SSH certificate types."""

    USER = "user"
    HOST = "host"


class KeyAlgorithm(str, enum.Enum):
    """Supported CA / requester key algorithms."""

    RSA_2048 = "RSA_2048"
    RSA_4096 = "RSA_4096"
    ECDSA_P256 = "EC_prime256v1"
    ECDSA_P384 = "EC_secp384r1"


def coerce_cert_type(value: Any) -> CertType:
    """Return *value* as a CertType.

    Raises:
        UnsupportedCertTypeError: If *value* is not ``user`` or ``host``.
    """
    if isinstance(value, CertType):
        return value
    try:
        return CertType(value)
    except ValueError as exc:
        raise UnsupportedCertTypeError(
            f"Unrecognized SSH certificate type: {value!r}"
        ) from exc


def coerce_key_algorithm(value: Any) -> KeyAlgorithm:
    """Return *value* as a KeyAlgorithm.

    Accepts enum values (``"RSA_2048"``) and member names (``"ECDSA_P256"``).

    Raises:
        ConfigurationError: If the algorithm is not supported.
    """
    if isinstance(value, KeyAlgorithm):
        return value
    try:
        return KeyAlgorithm(value)
    except ValueError:
        pass
    if isinstance(value, str) and value in KeyAlgorithm.__members__:
        return KeyAlgorithm[value]
    raise ConfigurationError(f"Unsupported SSH key algorithm: {value!r}")


class CertificateTemplate(BaseModel):
    """Policy record constraining what a CA may issue.

    ``allowed_users`` may contain ``*`` (any valid username).
    ``allowed_hosts`` may contain ``*`` (any valid hostname) or ``*.domain``
    (any subdomain of ``domain``, but not ``domain`` itself).
    """

    name: Optional[str] = Field(None, description="Template name")
    allow_user_certificates: bool = Field(default=False, description="Allow user certificates")
    allow_host_certificates: bool = Field(default=False, description="Allow host certificates")
    allowed_users: list[str] = Field(default_factory=list, description="Allowed user principals")
    allowed_hosts: list[str] = Field(default_factory=list, description="Allowed host principals")
    ttl: str = Field(default="1h", description="Default certificate TTL")
    max_ttl: str = Field(default="30d", description="Maximum certificate TTL")

    @field_validator("allowed_users")
    @classmethod
    def validate_allowed_users(cls, v: list[str]) -> list[str]:
        for entry in v:
            if not is_valid_user_pattern(entry):
                raise ConfigurationError(f"Invalid allowed user pattern: {entry!r}")
        return v

    @field_validator("allowed_hosts")
    @classmethod
    def validate_allowed_hosts(cls, v: list[str]) -> list[str]:
        for entry in v:
            if not is_valid_host_pattern(entry):
                raise ConfigurationError(f"Invalid allowed host pattern: {entry!r}")
        return v

    @model_validator(mode="after")
    def validate_ttls(self) -> "CertificateTemplate":
        ttl_ms = parse_duration(self.ttl)
        max_ttl_ms = parse_duration(self.max_ttl)
        if ttl_ms <= 0 or max_ttl_ms <= 0:
            raise ConfigurationError("Template TTLs must be positive")
        if ttl_ms > max_ttl_ms:
            raise ConfigurationError(
                f"Template TTL {self.ttl!r} exceeds max TTL {self.max_ttl!r}"
            )
        return self

    @classmethod
    def from_yaml(cls, path: str | Path) -> "CertificateTemplate":
        """Load a template from a YAML file."""
        path = Path(path)
        with open(path, "r") as f:
            data = yaml.safe_load(f) or {}
        data.setdefault("name", path.stem)
        return cls(**data)

    def to_yaml(self, path: str | Path) -> None:
        """Save this template to a YAML file."""
        path = Path(path)
        data = self.model_dump(mode="json")
        with open(path, "w") as f:
            yaml.dump(data, f, default_flow_style=False, sort_keys=False)


def load_templates(directory: str | Path) -> dict[str, CertificateTemplate]:
    """Load all YAML templates from a directory, keyed by template name."""
    directory = Path(directory)
    templates: dict[str, CertificateTemplate] = {}
    for pattern in ("*.yaml", "*.yml"):
        for yaml_file in sorted(directory.glob(pattern)):
            template = CertificateTemplate.from_yaml(yaml_file)
            templates[template.name or yaml_file.stem] = template
    return templates


class CertificateRequest(BaseModel):
    """A request to sign a requester's public key."""

    cert_type: CertType = Field(..., description="user or host")
    principals: list[str] = Field(..., min_length=1, description="Certificate principals")
    requested_ttl: Optional[str] = Field(None, description="Requested TTL, template default if unset")
    key_id: str = Field(..., description="Free-form certificate identity")
    public_key: str = Field(..., description="Requester OpenSSH public key")

    @field_validator("cert_type", mode="before")
    @classmethod
    def validate_cert_type(cls, v: Any) -> CertType:
        return coerce_cert_type(v)


class KeyPair(BaseModel):
    """An OpenSSH key pair."""

    public_key: str
    private_key: SecretStr


class CaKeyMaterial(BaseModel):
    """CA key pair. The private key is sensitive and never persisted here."""

    algorithm: KeyAlgorithm
    public_key: str
    private_key: SecretStr

    @field_validator("algorithm", mode="before")
    @classmethod
    def validate_algorithm(cls, v: Any) -> KeyAlgorithm:
        return coerce_key_algorithm(v)


class SignedCertificate(BaseModel):
    """A signed SSH certificate."""

    serial_number: str = Field(..., description="Decimal 63-bit serial")
    signed_public_key: str = Field(..., description="OpenSSH certificate")


class IssuedCredentials(SignedCertificate):
    """A freshly generated key pair together with its signed certificate."""

    key_algorithm: KeyAlgorithm
    public_key: str
    private_key: SecretStr
