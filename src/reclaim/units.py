"""Binary size formatting and parsing."""

import re

_SIZE_PATTERN = re.compile(r"^([\d.]+)([KMGT]?)i?B?$", re.IGNORECASE)

_MULTIPLIERS = {
    "": 1,
    "K": 1024,
    "M": 1024**2,
    "G": 1024**3,
    "T": 1024**4,
}


def format_bytes(size_bytes: int | float) -> str:
    """
    Format bytes as a compact human-readable string (binary units).

    Examples: ``512B``, ``300KB``, ``12.5MB``, ``1.5GB``.
    """
    if isinstance(size_bytes, bool) or not isinstance(size_bytes, (int, float)):
        return "0B"
    if size_bytes < 0:
        return "0B"
    if size_bytes < 1024:
        return f"{int(size_bytes)}B"
    if size_bytes < 1024**2:
        return f"{size_bytes / 1024:.0f}KB"
    if size_bytes < 1024**3:
        return f"{size_bytes / 1024**2:.1f}MB"
    return f"{size_bytes / 1024**3:.1f}GB"


def parse_size(size: str) -> int:
    """
    Parse a size string such as ``1.5G``, ``500M`` or ``200KB`` to bytes.

    Accepts the output of ``du -h`` as well as strings produced by
    :func:`format_bytes`. Anything unparseable yields 0.
    """
    if not size or not isinstance(size, str):
        return 0
    match = _SIZE_PATTERN.match(size.strip())
    if not match:
        return 0
    try:
        number = float(match.group(1))
    except ValueError:
        return 0
    unit = match.group(2).upper()
    return int(round(number * _MULTIPLIERS.get(unit, 1)))
