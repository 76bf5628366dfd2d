"""
Certificate Serial Numbers

Random 63-bit serial numbers for SSH certificates. Uniqueness is
probabilistic (2^63 values); no registry of issued serials is kept.
"""

import secrets
from typing import Callable

from sshca.constants import SERIAL_NUMBER_BYTES


class SerialNumberGenerator:
    """Generate certificate serial numbers from a CSPRNG.

    Args:
        random_bytes: Source of random bytes, ``secrets.token_bytes`` by
            default. Must return exactly the number of bytes requested.

    Example:
        >>> serial = SerialNumberGenerator().next()
        >>> serial.isdigit()
        True
    """

    def __init__(self, random_bytes: Callable[[int], bytes] = secrets.token_bytes) -> None:
        self._random_bytes = random_bytes

    def next_bytes(self) -> bytes:
        """Return 8 random bytes with the most significant bit cleared."""
        raw = bytearray(self._random_bytes(SERIAL_NUMBER_BYTES))
        if len(raw) != SERIAL_NUMBER_BYTES:
            raise ValueError(
                f"Random source returned {len(raw)} bytes, expected {SERIAL_NUMBER_BYTES}"
            )
        raw[0] &= 0x7F
        return bytes(raw)

    def next(self) -> str:
        """Return a new serial number as a base-10 string."""
        return str(int.from_bytes(self.next_bytes(), "big"))


def create_serial_number() -> str:
    """Return a new random certificate serial number."""
    return SerialNumberGenerator().next()
