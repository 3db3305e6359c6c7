"""xsd:duration text encoding for durations held as integer nanoseconds."""

from __future__ import annotations

import re

__all__ = [
    "InvalidDurationError",
    "format_duration",
    "parse_duration",
    "NANOSECOND",
    "MICROSECOND",
    "MILLISECOND",
    "SECOND",
    "MINUTE",
    "HOUR",
    "DAY",
    "MONTH",
    "YEAR",
]

NANOSECOND = 1
MICROSECOND = 1_000 * NANOSECOND
MILLISECOND = 1_000 * MICROSECOND
SECOND = 1_000 * MILLISECOND
MINUTE = 60 * SECOND
HOUR = 60 * MINUTE
DAY = 24 * HOUR
MONTH = 30 * DAY  # assumed to be 30 days
YEAR = 365 * DAY  # assumed to be a non-leap year

_INT64_MAX = 2**63 - 1

_DURATION_RE = re.compile(
    r"(-?)P(?:(\d+)Y)?(?:(\d+)M)?(?:(\d+)D)?(?:T(.+))?", re.ASCII
)
_DURATION_TIME_RE = re.compile(
    r"(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?", re.ASCII
)


class InvalidDurationError(ValueError):
    """Raised when a string is not a valid xsd:duration."""


def format_duration(nanoseconds: int) -> str | None:
    """Render a duration in nanoseconds as xsd:duration text.

    A zero duration has no textual form and yields ``None``.
    """
    if nanoseconds == 0:
        return None

    prefix = "PT"
    if nanoseconds < 0:
        nanoseconds = -nanoseconds
        prefix = "-PT"

    hours, rest = divmod(nanoseconds, HOUR)
    minutes, rest = divmod(rest, MINUTE)
    seconds, nanos = divmod(rest, SECOND)

    parts = [prefix]
    if hours:
        parts.append(f"{hours}H")
    if minutes:
        parts.append(f"{minutes}M")
    if seconds or nanos:
        parts.append(str(seconds))
        if nanos:
            parts.append(f".{nanos:09d}".rstrip("0"))
        parts.append("S")
    return "".join(parts)


def _to_int(value: str, what: str, text: str) -> int:
    number = int(value)
    if number > _INT64_MAX:
        raise InvalidDurationError(
            f"invalid duration {what} ({text}): value out of range"
        )
    return number


def parse_duration(text: str | bytes | None) -> int:
    """Parse xsd:duration text into integer nanoseconds.

    ``None`` parses as a zero duration; anything malformed raises
    :class:`InvalidDurationError`.
    """
    if text is None:
        return 0
    if isinstance(text, (bytes, bytearray)):
        text = bytes(text).decode("utf-8", errors="replace")

    match = _DURATION_RE.fullmatch(text)
    if match is None or not any(match.group(i) for i in range(2, 6)):
        raise InvalidDurationError(f"invalid duration ({text})")

    sign_text, years, months, days, time_part = match.groups()
    total = 0
    if years:
        total += _to_int(years, "years", text) * YEAR
    if months:
        total += _to_int(months, "months", text) * MONTH
    if days:
        total += _to_int(days, "days", text) * DAY

    if time_part:
        time_match = _DURATION_TIME_RE.fullmatch(time_part)
        if time_match is None:
            raise InvalidDurationError(f"invalid duration ({text})")
        hours, minutes, seconds = time_match.groups()
        if hours:
            total += _to_int(hours, "hours", text) * HOUR
        if minutes:
            total += _to_int(minutes, "minutes", text) * MINUTE
        if seconds:
            total += int(float(seconds) * SECOND)

    return -total if sign_text == "-" else total