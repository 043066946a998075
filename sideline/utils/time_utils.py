"""
Time utilities for the sideline rotation engine.

All engine timestamps are integer epoch milliseconds; counters are whole
seconds.
"""
import time
from typing import Optional


def fmt_mmss(seconds: int) -> str:
    """
    Format seconds as MM:SS string.

    Args:
        seconds: Number of seconds to format

    Returns:
        Formatted time string in MM:SS format

    Example:
        >>> fmt_mmss(90)
        '01:30'
        >>> fmt_mmss(3661)
        '61:01'
    """
    seconds = max(0, int(seconds))
    m = seconds // 60
    s = seconds % 60
    return f"{m:02d}:{s:02d}"


def now_ms() -> int:
    """Get current timestamp in integer epoch milliseconds."""
    return int(time.time() * 1000)


def is_valid_time_range(start_ms: Optional[int], end_ms: Optional[int]) -> bool:
    """Return True when both marks are positive and ``end_ms >= start_ms``."""
    if start_ms is None or end_ms is None:
        return False
    if start_ms <= 0 or end_ms <= 0:
        return False
    return end_ms >= start_ms


def round_ms_to_seconds(milliseconds: int) -> int:
    """Round a non-negative millisecond span to whole seconds, halves up."""
    return (int(milliseconds) + 500) // 1000


def duration_seconds(start_ms: Optional[int], end_ms: Optional[int]) -> int:
    """
    Whole seconds between two epoch-millisecond marks.

    Returns 0 for invalid ranges (missing or non-positive marks, or an end
    before the start).

    Example:
        >>> duration_seconds(1000, 4000)
        3
        >>> duration_seconds(1000, 2500)
        2
    """
    if not is_valid_time_range(start_ms, end_ms):
        return 0
    return round_ms_to_seconds(end_ms - start_ms)
