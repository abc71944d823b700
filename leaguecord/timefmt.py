"""Human readable durations and relative times."""

from __future__ import annotations

import math
from datetime import datetime, timedelta

_NANOS_IN_MICROSECOND = 1_000
_NANOS_IN_MILLISECOND = 1_000_000
_NANOS_IN_SECOND = 1_000_000_000
_NANOS_IN_MINUTE = _NANOS_IN_SECOND * 60
_NANOS_IN_HOUR = _NANOS_IN_MINUTE * 60
_NANOS_IN_DAY = _NANOS_IN_HOUR * 24
_NANOS_IN_WEEK = _NANOS_IN_DAY * 7
_NANOS_IN_YEAR = _NANOS_IN_DAY * 365

_DURATION_UNITS = (
    ("y", _NANOS_IN_YEAR),
    ("w", _NANOS_IN_WEEK),
    ("d", _NANOS_IN_DAY),
    ("h", _NANOS_IN_HOUR),
    ("m", _NANOS_IN_MINUTE),
    ("s", _NANOS_IN_SECOND),
    ("ms", _NANOS_IN_MILLISECOND),
    ("µs", _NANOS_IN_MICROSECOND),
)

_RELATIVE_UNITS = (
    ("year", 31_536_000),
    ("month", 2_592_000),
    ("day", 86_400),
    ("hour", 3_600),
    ("minute", 60),
)

_I32_MIN = -(2**31)
_I32_MAX = 2**31 - 1


def _to_nanos(duration: timedelta | int) -> int:
    if isinstance(duration, timedelta):
        whole_seconds = duration.days * 86_400 + duration.seconds
        nanos = whole_seconds * _NANOS_IN_SECOND + duration.microseconds * 1_000
    elif isinstance(duration, int) and not isinstance(duration, bool):
        nanos = duration
    else:
        raise TypeError(f"expected a timedelta or a number of nanoseconds, got {duration!r}")
    if nanos < 0:
        raise ValueError("a duration cannot be negative")
    return nanos


def format_duration(duration: timedelta | int, prec: int) -> str:
    """Format a duration (a timedelta or integer nanoseconds) as e.g. ``"1h 2m 3s"``.

    ``prec`` is the maximum number of units shown; a negative value shows all of them.
    """
    total = float(_to_nanos(duration))
    if total < 1.0:
        return f"{math.floor(total)}ns"

    remaining = total
    parts: list[str] = []
    for suffix, size in _DURATION_UNITS:
        if remaining >= size and prec != 0:
            prec -= 1
            parts.append(f"{math.floor(remaining / size)}{suffix}")
            remaining %= size

    if remaining > 0.0 and prec != 0:
        parts.append(f"{math.floor(remaining)}ns")

    return " ".join(parts)


def _truncating_div(value: int, divisor: int) -> int:
    quotient = abs(value) // divisor
    return quotient if value >= 0 else -quotient


def _plural(count: int, unit: str) -> str:
    return f"{count} {unit}{'s' if count > 1 else ''}"


def time_since(date: datetime, now: datetime | None = None) -> str:
    """Describe how long ago ``date`` was, e.g. ``"3 days"``."""
    if now is None:
        now = datetime.now(date.tzinfo)
    seconds = int((now - date).total_seconds())
    seconds = max(_I32_MIN, min(_I32_MAX, seconds))

    for unit, size in _RELATIVE_UNITS:
        interval = _truncating_div(seconds, size)
        if interval > 1:
            return _plural(interval, unit)

    return _plural(seconds, "second")