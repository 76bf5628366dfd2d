"""
Prometheus Metrics

Counters for issued certificates, policy rejections and toolchain
failures, plus a signing latency histogram.
"""

from typing import Optional

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest


class SigningMetrics:
    """
    Prometheus metrics for the signing pipeline.

    Exposes:
    - sshca_certificates_issued_total{cert_type="user|host"}
    - sshca_policy_rejections_total{reason="..."}
    - sshca_backend_failures_total{operation="generate|derive|sign"}
    - sshca_signing_duration_seconds
    """

    def __init__(self, registry: Optional[CollectorRegistry] = None):
        self.registry = registry if registry is not None else CollectorRegistry()

        self.certificates_issued = Counter(
            "sshca_certificates_issued_total",
            "Total number of SSH certificates issued",
            ["cert_type"],
            registry=self.registry,
        )
        self.policy_rejections = Counter(
            "sshca_policy_rejections_total",
            "Certificate requests rejected by template policy",
            ["reason"],
            registry=self.registry,
        )
        self.backend_failures = Counter(
            "sshca_backend_failures_total",
            "Key toolchain failures",
            ["operation"],
            registry=self.registry,
        )
        self.signing_duration = Histogram(
            "sshca_signing_duration_seconds",
            "Time spent signing a certificate",
            registry=self.registry,
        )

    def record_issued(self, cert_type: str) -> None:
        self.certificates_issued.labels(cert_type=cert_type).inc()

    def record_rejection(self, reason: str) -> None:
        self.policy_rejections.labels(reason=reason).inc()

    def record_backend_failure(self, operation: str) -> None:
        self.backend_failures.labels(operation=operation).inc()

    def observe_signing(self, seconds: float) -> None:
        self.signing_duration.observe(seconds)

    def export(self) -> bytes:
        """Return metrics in Prometheus text exposition format."""
        return generate_latest(self.registry)
