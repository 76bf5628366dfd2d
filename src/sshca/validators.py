"""
Principal Syntax Validators

Syntax checks for the two kinds of SSH principal: usernames (user
certificates) and hostnames (host certificates), plus the template-side
patterns that may contain policy wildcards.
"""

import re

from sshca.constants import WILDCARD, WILDCARD_DOMAIN_PREFIX

# POSIX-portable login names, plus "@" for directory-style accounts
USERNAME_RE = re.compile(r"[A-Za-z0-9_][A-Za-z0-9._@-]{0,63}")

_LABEL = r"(?!-)[A-Za-z0-9-]{1,63}(?<!-)"
HOSTNAME_RE = re.compile(rf"(?=.{{1,253}}\Z){_LABEL}(?:\.{_LABEL})*")


def is_valid_username(value: str) -> bool:
    """Return True if *value* is a syntactically valid username."""
    return bool(USERNAME_RE.fullmatch(value))


def is_valid_hostname(value: str) -> bool:
    """Return True if *value* is a syntactically valid hostname.

    Labels are RFC 1123 style: 1-63 alphanumerics or hyphens, not starting
    or ending with a hyphen; the whole name is at most 253 characters.
    """
    return bool(HOSTNAME_RE.fullmatch(value))


def is_valid_user_pattern(value: str) -> bool:
    """Validate an ``allowed_users`` template entry (``*`` or a username)."""
    return value == WILDCARD or is_valid_username(value)


def is_valid_host_pattern(value: str) -> bool:
    """Validate an ``allowed_hosts`` template entry.

    Accepts ``*``, ``*.<hostname>`` or a plain hostname.
    """
    if value == WILDCARD:
        return True
    if value.startswith(WILDCARD_DOMAIN_PREFIX):
        return is_valid_hostname(value[len(WILDCARD_DOMAIN_PREFIX):])
    return is_valid_hostname(value)
