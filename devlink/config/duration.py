"""Duration parsing for cohort windows and resend windows."""

import re


class DurationParseError(ValueError):
    """Raised when a duration string cannot be parsed."""

    pass


_UNIT_SECONDS = {
    "s": 1,
    "m": 60,
    "h": 3600,
    "d": 86400,
    "w": 604800,
}


def parse_duration(duration_str: str) -> int:
    """
    Parse a duration string to seconds.

    Supports both human-readable formats and ISO-8601 durations:
    - Human-readable: "30s", "15m", "1h", "7d", "2w", combinations like "1d12h"
    - ISO-8601: "PT15M", "PT1H", "P7D", "P1DT12H"

    Args:
        duration_str: Duration string to parse

    Returns:
        Duration in seconds

    Raises:
        DurationParseError: If the duration string is invalid or zero

    Examples:
        >>> parse_duration("7d")
        604800
        >>> parse_duration("P3D")
        259200
        >>> parse_duration("1d12h")
        129600
    """
    if not isinstance(duration_str, str):
        raise DurationParseError(f"Duration must be a string, got {type(duration_str).__name__}")

    duration_str = duration_str.strip()

    if not duration_str:
        raise DurationParseError("Duration string cannot be empty")

    if duration_str.upper().startswith("P"):
        return _parse_iso8601_duration(duration_str)

    return _parse_human_readable_duration(duration_str)


def _parse_iso8601_duration(duration_str: str) -> int:
    duration_str = duration_str.upper()

    pattern = r"^P(?:(\d+)W)?(?:(\d+)D)?(?:T(?:(\d+)H)?(?:(\d+)M)?(?:(\d+(?:\.\d+)?)S)?)?$"
    match = re.match(pattern, duration_str)

    if not match or duration_str in ("P", "PT") or duration_str.endswith("T"):
        raise DurationParseError(
            f"Invalid ISO-8601 duration format: '{duration_str}'. "
            "Expected format like 'P7D', 'PT1H30M' or 'PT15M'"
        )

    weeks, days, hours, minutes, seconds = match.groups()

    total_seconds = 0
    if weeks:
        total_seconds += int(weeks) * _UNIT_SECONDS["w"]
    if days:
        total_seconds += int(days) * _UNIT_SECONDS["d"]
    if hours:
        total_seconds += int(hours) * _UNIT_SECONDS["h"]
    if minutes:
        total_seconds += int(minutes) * _UNIT_SECONDS["m"]
    if seconds:
        total_seconds += int(float(seconds))

    if total_seconds == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")

    return total_seconds


def _parse_human_readable_duration(duration_str: str) -> int:
    matches = re.findall(r"(\d+)\s*([smhdw])", duration_str.lower())

    if not matches:
        raise DurationParseError(
            f"Invalid duration format: '{duration_str}'. "
            "Expected format like '30s', '15m', '1h', '7d' or combinations like '1d12h'"
        )

    # Reject anything the pattern skipped over, e.g. "7 days" or "3x"
    parsed_str = "".join(f"{num}{unit}" for num, unit in matches)
    if parsed_str != re.sub(r"\s+", "", duration_str.lower()):
        raise DurationParseError(
            f"Invalid characters in duration: '{duration_str}'. "
            "Use only digits and units: s, m, h, d, w"
        )

    total_seconds = sum(int(num) * _UNIT_SECONDS[unit] for num, unit in matches)

    if total_seconds == 0:
        raise DurationParseError(f"Duration cannot be zero: '{duration_str}'")

    return total_seconds


def format_duration(seconds: int) -> str:
    """
    Render seconds in the largest whole unit for log and error messages.

    Examples:
        >>> format_duration(604800)
        '7 days'
        >>> format_duration(5400)
        '90 minutes'
    """
    for unit, size in (("day", 86400), ("hour", 3600), ("minute", 60)):
        if seconds >= size and seconds % size == 0:
            count = seconds // size
            return f"{count} {unit}{'s' if count != 1 else ''}"
    return f"{seconds} second{'s' if seconds != 1 else ''}"
