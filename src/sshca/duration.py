"""
Duration Parsing

Converts human-readable durations ("1h", "30d", "1h30m", "90 minutes")
into integer milliseconds. Units follow the familiar ``ms`` vocabulary:
ms, s, m, h, d, w, y (365.25 days), with long forms accepted and case
ignored. A bare number with no unit is milliseconds.
"""

from __future__ import annotations

import re
from fractions import Fraction

from sshca.exceptions import InvalidDurationError

_SECOND = 1000
_MINUTE = _SECOND * 60
_HOUR = _MINUTE * 60
_DAY = _HOUR * 24
_WEEK = _DAY * 7
_YEAR = _DAY * Fraction(36525, 100)

# Largest duration accepted, in milliseconds
MAX_DURATION_MS = 2**63 - 1

_UNITS: dict[str, Fraction] = {}
for _aliases, _factor in (
    (("ms", "msec", "msecs", "millisecond", "milliseconds"), 1),
    (("s", "sec", "secs", "second", "seconds"), _SECOND),
    (("m", "min", "mins", "minute", "minutes"), _MINUTE),
    (("h", "hr", "hrs", "hour", "hours"), _HOUR),
    (("d", "day", "days"), _DAY),
    (("w", "week", "weeks"), _WEEK),
    (("y", "yr", "yrs", "year", "years"), _YEAR),
):
    for _alias in _aliases:
        _UNITS[_alias] = Fraction(_factor)

_TERM_RE = re.compile(r"\s*(?P<value>[0-9]+(?:\.[0-9]+)?|\.[0-9]+)\s*(?P<unit>[a-zA-Z]*)\s*")


def parse_duration(text: str) -> int:
    """Parse a duration string into milliseconds.

    Args:
        text: Duration such as ``"1h"``, ``"90m"``, ``"1h30m"`` or ``"2 days"``.

    Returns:
        The duration in whole milliseconds.

    Raises:
        InvalidDurationError: If the string is empty, negative, malformed or
            larger than ``MAX_DURATION_MS``.
    """
    if not isinstance(text, str) or not text.strip():
        raise InvalidDurationError(f"Invalid duration: {text!r}")

    terms: list[tuple[Fraction, str]] = []
    pos = 0
    while pos < len(text):
        match = _TERM_RE.match(text, pos)
        if match is None or match.end() == pos:
            raise InvalidDurationError(f"Invalid duration: {text!r}")
        try:
            value = Fraction(match.group("value"))
        except ValueError as exc:
            raise InvalidDurationError(f"Invalid duration: {text!r}") from exc
        terms.append((value, match.group("unit").lower()))
        pos = match.end()

    total = Fraction(0)
    for value, unit in terms:
        if not unit:
            # A unitless number only makes sense on its own
            if len(terms) > 1:
                raise InvalidDurationError(f"Missing unit in duration: {text!r}")
            total += value
            continue
        factor = _UNITS.get(unit)
        if factor is None:
            raise InvalidDurationError(f"Unknown duration unit {unit!r} in {text!r}")
        total += value * factor

    if total > MAX_DURATION_MS:
        raise InvalidDurationError(f"Duration too large: {text!r}")
    return round(total)


def duration_to_seconds(text: str) -> int:
    """Parse a duration string and return whole seconds (truncated)."""
    return parse_duration(text) // _SECOND


def is_valid_duration(text: str) -> bool:
    """Return True if *text* parses as a duration."""
    try:
        parse_duration(text)
    except InvalidDurationError:
        return False
    return True
