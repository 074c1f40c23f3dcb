"""
Identifier and timestamp helpers shared by folders and notes.
"""

import time
import uuid

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def now_ms() -> int:
    """Current wall-clock time in milliseconds since the epoch."""
    return time.time_ns() // 1_000_000


def _to_base36(value: int) -> str:
    if value == 0:
        return "0"
    digits = []
    while value:
        value, rem = divmod(value, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


def generate_id() -> str:
    """Generate a unique record ID.

    A base-36 millisecond timestamp followed by 12 random hex characters,
    so IDs sort roughly by creation time and never collide in practice.
    """
    return _to_base36(now_ms()) + uuid.uuid4().hex[:12]
