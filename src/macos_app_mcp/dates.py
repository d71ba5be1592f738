"""
Date handling for AppleScript.

``date "..."`` literals are parsed with the system locale, so dates are built
from their components instead whenever the input can be parsed here.
"""

from datetime import datetime
from typing import Optional

_FORMATS = (
    "%Y-%m-%d %H:%M:%S",
    "%Y-%m-%d %H:%M",
    "%Y-%m-%dT%H:%M:%S",
    "%Y-%m-%dT%H:%M",
    "%Y-%m-%d",
    "%Y/%m/%d %H:%M",
    "%Y/%m/%d",
    "%B %d, %Y %H:%M:%S",
    "%B %d, %Y %H:%M",
    "%B %d, %Y",
)


def parse_date(value: str) -> Optional[datetime]:
    """Parse a user-supplied date string, returning None if unrecognised."""
    text = (value or "").strip()
    if not text:
        return None
    try:
        parsed = datetime.fromisoformat(text.replace("Z", "+00:00"))
    except ValueError:
        parsed = None
    if parsed is None:
        for fmt in _FORMATS:
            try:
                parsed = datetime.strptime(text, fmt)
                break
            except ValueError:
                continue
    if parsed is not None and parsed.tzinfo is not None:
        # AppleScript dates are local wall-clock times
        parsed = parsed.astimezone().replace(tzinfo=None)
    return parsed


def applescript_date(value: str, var_name: str = "theDate") -> str:
    """
    Generate AppleScript that assigns a date to ``var_name``.

    Args:
        value: "today", an ISO-like date ("2024-01-15", "2024-01-15 10:30"),
            or any literal AppleScript understands
        var_name: Variable to assign

    Returns:
        AppleScript statements to place before the variable is used
    """
    if (value or "").strip().lower() == "today":
        return f"set {var_name} to (current date)"

    parsed = parse_date(value)
    if parsed is None:
        escaped = str(value).replace("\\", "\\\\").replace('"', '\\"')
        return f'set {var_name} to date "{escaped}"'

    # Day is set to 1 first so month changes never overflow (e.g. Jan 31 -> Feb)
    return "\n".join([
        f"set {var_name} to (current date)",
        f"set day of {var_name} to 1",
        f"set year of {var_name} to {parsed.year}",
        f"set month of {var_name} to {parsed.month}",
        f"set day of {var_name} to {parsed.day}",
        f"set hours of {var_name} to {parsed.hour}",
        f"set minutes of {var_name} to {parsed.minute}",
        f"set seconds of {var_name} to {parsed.second}",
    ])
