"""Human-readable byte sizes."""

from __future__ import annotations

SIZE_UNITS = ("B", "KB", "MB", "GB")
_BASE = 1024


def format_size(num_bytes: int) -> str:
    """Format a byte count with the largest fitting unit and two decimals.

    ``0`` formats as ``"0 B"``; ``1536`` as ``"1.50 KB"``.  Sizes beyond
    the GB range stay in GB.

    Raises:
        ValueError: If *num_bytes* is negative.
    """
    if num_bytes < 0:
        raise ValueError(f"Size must be non-negative, got {num_bytes}")
    if num_bytes == 0:
        return "0 B"
    unit = 0
    value = float(num_bytes)
    # pick the unit from the rounded value: 1048575 is "1.00 MB"
    while unit < len(SIZE_UNITS) - 1 and round(value, 2) >= _BASE:
        value /= _BASE
        unit += 1
    return f"{value:.2f} {SIZE_UNITS[unit]}"
