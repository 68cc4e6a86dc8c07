"""Duration parsing utilities."""

import re
from datetime import timedelta

from flightcache.types import Duration

_DURATION_PATTERN = re.compile(r"^(-?\d+)(ms|s|m|h|d)$")
_UNITS: dict[str, int] = {
    "ms": 1,
    "s": 1000,
    "m": 60_000,
    "h": 3_600_000,
    "d": 86_400_000,
}


def parse_duration(duration: Duration) -> int:
    """Parse duration string or timedelta to milliseconds. Passthrough if int."""
    if isinstance(duration, bool):
        raise ValueError(f"Invalid duration: {duration!r}")
    if isinstance(duration, int):
        return duration
    if isinstance(duration, timedelta):
        return int(duration.total_seconds() * 1000)

    match = (
        _DURATION_PATTERN.match(duration.strip())
        if isinstance(duration, str)
        else None
    )
    if not match:
        raise ValueError(f"Invalid duration: {duration!r}")

    value, unit = match.groups()
    return int(value) * _UNITS[unit]
