import os
import math
import numpy as np
from typing import Any, List, Optional, Tuple

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"

# (name, bit width) of the packed SPC collection date, most significant first
SPC_DATE_FIELDS = (("year", 12), ("month", 4), ("day", 5), ("hour", 5), ("minute", 6))


def linear_ramp(first: float, last: float, count: int) -> np.ndarray:
    """
    Evenly spaced ascending axis: ``first + i * (last - first) / (count - 1)``.
    A single point sits at ``first``.
    """
    if count <= 0:
        return np.zeros(0, dtype=np.float64)
    if count == 1:
        return np.array([first], dtype=np.float64)
    step = (last - first) / (count - 1)
    return first + np.arange(count, dtype=np.float64) * step


def descending_ramp(maximum: float, minimum: float, count: int) -> np.ndarray:
    """Axis running from ``maximum`` towards ``minimum``: ``max - (max - min) * i / count``."""
    if count <= 0:
        return np.zeros(0, dtype=np.float64)
    return maximum - (maximum - minimum) * np.arange(count, dtype=np.float64) / count


def index_ramp(count: int) -> np.ndarray:
    """0, 1, 2, ... used when a file carries no usable wave number axis."""
    return np.arange(max(count, 0), dtype=np.float64)


def split_quoted(text: str, separator: str = ",", quote: str = "'") -> List[str]:
    """
    Split ``text`` on ``separator`` while keeping separators that appear inside
    ``quote`` pairs. Quote characters are kept in the parts.
    """
    parts = []
    current = []
    quoted = False
    for char in text:
        if char == quote:
            quoted = not quoted
            current.append(char)
        elif char == separator and not quoted:
            parts.append("".join(current))
            current = []
        else:
            current.append(char)
    parts.append("".join(current))
    return parts


def unquote(value: str, quote: str = "'") -> Optional[str]:
    """Return the content of a quoted value, or None if ``value`` is not quoted."""
    value = value.strip()
    if len(value) >= 2 and value.startswith(quote) and value.endswith(quote):
        return value[1:-1]
    return None


def unpack_spc_date(raw: int) -> Tuple[int, int, int, int, int]:
    """
    Split a packed SPC date into (year, month, day, hour, minute).

    The 32-bit value is rendered as a zero-padded binary string and sliced into
    fixed bit ranges, most significant field first.
    """
    bits = format(raw & 0xFFFFFFFF, "032b")
    values = []
    start = 0
    for _, width in SPC_DATE_FIELDS:
        values.append(int(bits[start:start + width], 2))
        start += width
    return tuple(values)


def pack_spc_date(year: int, month: int, day: int, hour: int, minute: int) -> int:
    """Inverse of ``unpack_spc_date``."""
    packed = 0
    for (name, width), value in zip(SPC_DATE_FIELDS, (year, month, day, hour, minute)):
        if value < 0 or value >= (1 << width):
            raise ValueError(f"{name} {value} does not fit in {width} bits")
        packed = (packed << width) | value
    return packed


def file_stem(name: Optional[str]) -> str:
    """File name without directory and extension, used as a fallback spectrum ID."""
    if not name:
        return ""
    return os.path.splitext(os.path.basename(name))[0]


def file_extension(name: Optional[str]) -> str:
    if not name:
        return ""
    return os.path.splitext(name)[1].lower()


def sanitize_for_json(obj: Any) -> Any:
    """Sanitizes for JSON format (deals with nan/inf values, numpy types, etc.)"""
    if isinstance(obj, float):
        if math.isnan(obj) or math.isinf(obj):
            return None
        return obj
    elif isinstance(obj, np.floating):
        if np.isnan(obj) or np.isinf(obj):
            return None
        return float(obj)
    elif isinstance(obj, np.integer):
        return int(obj)
    elif isinstance(obj, (np.bool_, bool)):
        return bool(obj)
    elif isinstance(obj, np.ndarray):
        return [sanitize_for_json(v) for v in obj.tolist()]
    elif isinstance(obj, dict):
        return {k: sanitize_for_json(v) for k, v in obj.items()}
    elif isinstance(obj, (list, tuple)):
        return [sanitize_for_json(v) for v in obj]
    else:
        return obj
