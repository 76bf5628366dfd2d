"""Tests for TTL resolution against template bounds."""

import pytest

from sshca.exceptions import InvalidDurationError, PolicyViolationError, TTLExceededError
from sshca.models import CertificateTemplate
from sshca.ttl import TTLResolver


@pytest.fixture()
def template() -> CertificateTemplate:
    return CertificateTemplate(allow_user_certificates=True, allowed_users=["*"], ttl="1h", max_ttl="2h")


@pytest.fixture()
def resolver() -> TTLResolver:
    return TTLResolver()


class TestTTLResolver:
    """Tests for TTLResolver.resolve."""

    def test_default_ttl_in_seconds(self, resolver, template):
        assert resolver.resolve(template) == 3600

    def test_empty_string_uses_default(self, resolver, template):
        assert resolver.resolve(template, "") == 3600

    def test_requested_within_max(self, resolver, template):
        assert resolver.resolve(template, "90m") == 5400

    def test_requested_equal_to_max(self, resolver, template):
        assert resolver.resolve(template, "2h") == 7200

    def test_requested_exceeds_max(self, resolver, template):
        with pytest.raises(TTLExceededError) as exc_info:
            resolver.resolve(template, "3h")
        assert exc_info.value.requested_ms == 3 * 3_600_000
        assert exc_info.value.max_ms == 2 * 3_600_000
        assert exc_info.value.rule == "max_ttl"

    def test_ttl_exceeded_is_policy_violation(self, resolver, template):
        with pytest.raises(PolicyViolationError):
            resolver.resolve(template, "1d")

    def test_compound_duration(self, resolver, template):
        assert resolver.resolve(template, "1h30m") == 5400

    def test_sub_second_ttl_rejected(self, resolver, template):
        with pytest.raises(PolicyViolationError, match="at least one second"):
            resolver.resolve(template, "500ms")

    def test_zero_ttl_rejected(self, resolver, template):
        with pytest.raises(PolicyViolationError):
            resolver.resolve(template, "0s")

    def test_fractional_seconds_truncated(self, resolver, template):
        assert resolver.resolve(template, "1500ms") == 1

    def test_invalid_requested_ttl(self, resolver, template):
        with pytest.raises(InvalidDurationError):
            resolver.resolve(template, "whenever")

    def test_oversized_requested_ttl(self, resolver, template):
        with pytest.raises(InvalidDurationError):
            resolver.resolve(template, "9" * 400 + "s")
