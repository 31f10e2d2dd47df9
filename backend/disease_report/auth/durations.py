"""
Human-readable TTL strings ("15m", "7d") as used by JWT_EXPIRES_IN settings.
"""

import re

_DURATION_RE = re.compile(r"^\s*(\d+(?:\.\d+)?)\s*(ms|s|m|h|d|w)?\s*$", re.IGNORECASE)

_UNIT_SECONDS = {
    "ms": 0.001,
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def parse_duration(value: str) -> int:
    """Convert a duration string to whole seconds. A bare number means seconds."""
    match = _DURATION_RE.match(str(value))
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    seconds = int(float(amount) * _UNIT_SECONDS[(unit or "s").lower()])
    if seconds <= 0:
        raise ValueError(f"Duration must be at least one second: {value!r}")
    return seconds
