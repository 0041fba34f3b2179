"""
Helper functions for formatting and parsing data from the platforms.
"""

import re
from datetime import datetime
from typing import Iterable, Optional

from modsync.models.filters import ModLoader

FRACTION = re.compile(r"\.(\d+)(?=[+-]\d{2}:\d{2}$|$)")


def format_size(bytes_size: int) -> str:
    """Formats bytes into a human-readable size string (e.g., '145.3 MB')."""
    if bytes_size <= 0:
        return "0 B"
    units = ["B", "KB", "MB", "GB", "TB"]
    i = 0
    while bytes_size >= 1024 and i < len(units) - 1:
        bytes_size /= 1024
        i += 1
    return f"{bytes_size:.1f} {units[i]}"


def format_duration(seconds: float) -> str:
    """
    Formats a duration in seconds into a human-readable string (e.g., '2m 12s').
    """
    s = int(seconds)
    hours, remainder = divmod(s, 3600)
    minutes, secs = divmod(remainder, 60)
    parts = []
    if hours > 0:
        parts.append(f"{hours}h")
    if minutes > 0:
        parts.append(f"{minutes}m")
    if secs > 0 or not parts:
        parts.append(f"{secs}s")
    return " ".join(parts)


def pad_width(names: Iterable[str], minimum: int = 20, maximum: int = 50) -> int:
    """Column width for mod names: the longest name, clamped to a sane range."""
    longest = max((len(name) for name in names), default=minimum)
    return max(minimum, min(maximum, longest))


def parse_timestamp(value: Optional[str]) -> Optional[datetime]:
    """Parses the ISO 8601 timestamps used by the platforms."""
    if not value:
        return None
    value = value.replace("Z", "+00:00")
    # fromisoformat only takes 3 or 6 fractional digits before Python 3.11
    value = FRACTION.sub(lambda m: "." + m.group(1)[:6].ljust(6, "0"), value)
    try:
        return datetime.fromisoformat(value)
    except ValueError:
        return None


def parse_loaders(names: Iterable[str]) -> list[ModLoader]:
    """Maps platform loader names onto known mod loaders, ignoring the rest."""
    loaders = []
    for name in names:
        try:
            loader = ModLoader(name.strip().lower())
        except ValueError:
            continue
        if loader not in loaders:
            loaders.append(loader)
    return loaders
