"""
Core utility functions
"""
from typing import Optional, Tuple, Union


# ============================================================
# Size Parsing
# ============================================================

_UNIT_MULTIPLIERS = {
    "B": 1,
    "K": 1024,
    "KB": 1024,
    "KIB": 1024,
    "M": 1024 * 1024,
    "MB": 1024 * 1024,
    "MIB": 1024 * 1024,
    "G": 1024 * 1024 * 1024,
    "GB": 1024 * 1024 * 1024,
    "GIB": 1024 * 1024 * 1024,
}


def parse_size(size: Union[str, int]) -> Optional[int]:
    """
    Parse size string (e.g., "4M", "100K", "1GB") to bytes.

    Args:
        size: Size string, or an int that is returned unchanged

    Returns:
        Size in bytes or None if invalid
    """
    if isinstance(size, bool):
        return None
    if isinstance(size, int):
        return size

    size_str = size.strip().upper()

    if not size_str:
        return None

    # Find unit
    unit = None
    for u in sorted(_UNIT_MULTIPLIERS.keys(), key=len, reverse=True):
        if size_str.endswith(u):
            unit = u
            break

    if unit:
        number_str = size_str[:-len(unit)]
    else:
        # No unit, assume bytes
        number_str = size_str
        unit = "B"

    try:
        number = float(number_str)
    except ValueError:
        return None
    if number < 0:
        return None
    return int(number * _UNIT_MULTIPLIERS[unit])


# ============================================================
# Human-readable Formatting
# ============================================================

def scale_bytes(value: float, units: Tuple[str, ...] = ("bytes", "KB", "MB", "GB")) -> Tuple[float, str]:
    """
    Scale a byte count down by 1024 until it fits the largest unit.

    Returns:
        (scaled_value, unit) tuple
    """
    unit_index = 0
    while value > 1024.0 and unit_index < len(units) - 1:
        value /= 1024.0
        unit_index += 1
    return value, units[unit_index]


def format_size(num_bytes: int) -> str:
    """Format a byte count, e.g. 1536 -> '1.50 KB'"""
    value, unit = scale_bytes(float(num_bytes))
    return f"{value:.2f} {unit}"


def format_rate(num_bytes: int, elapsed_ms: int) -> str:
    """Format a transfer rate, e.g. '12.30 MB/s'"""
    seconds = max(elapsed_ms, 1) / 1000.0
    value, unit = scale_bytes(num_bytes / seconds, ("B/s", "KB/s", "MB/s", "GB/s"))
    return f"{value:.2f} {unit}"


def format_percent(done: int, total: int) -> str:
    """Format a completion percentage with two decimals"""
    return f"{done / total * 100.0:.2f}%"
