"""Pause-aware clock for the sideline rotation engine."""

import logging
from typing import Callable, Iterable, List, Optional, Sequence, Tuple

from ..models import TimerState
from ..utils import now_ms, round_ms_to_seconds

logger = logging.getLogger(__name__)

Interval = Tuple[int, Optional[int]]


def paused_ms_between(start: int, end: int, intervals: Iterable[Interval]) -> int:
    """
    Milliseconds of pause overlapping the window ``[start, end]``.

    Args:
        start: Window start (epoch ms)
        end: Window end (epoch ms)
        intervals: Pause intervals; an interval with a None end is still open
            and is treated as ending at ``end``

    Returns:
        Overlap in milliseconds
    """
    if end <= start:
        return 0
    total = 0
    for pause_start, pause_end in intervals:
        if pause_end is None:
            pause_end = end
        overlap = min(end, pause_end) - max(start, pause_start)
        if overlap > 0:
            total += overlap
    return total


def calculate_undo_timer_target(
    sub_timer_seconds: int,
    substitution_timestamp: Optional[int],
    now_epoch: Optional[int] = None,
    pause_ledger: Sequence[Interval] = (),
) -> int:
    """
    Sub timer value to restore when a substitution is undone.

    The value is the sub timer reading at the substitution plus the running
    time that has passed since, so pauses after the substitution do not count.

    Args:
        sub_timer_seconds: Sub timer reading when the substitution happened
        substitution_timestamp: When the substitution happened (epoch ms)
        now_epoch: Current time (epoch ms); defaults to the wall clock
        pause_ledger: Pause intervals of the period, open interval allowed

    Returns:
        Target sub timer value in whole seconds
    """
    if substitution_timestamp is None or substitution_timestamp <= 0:
        return sub_timer_seconds
    if now_epoch is None:
        now_epoch = now_ms()
    elapsed = (now_epoch - substitution_timestamp) - paused_ms_between(
        substitution_timestamp, now_epoch, pause_ledger)
    return sub_timer_seconds + round_ms_to_seconds(max(0, elapsed))


class Clock:
    """
    Wall clock with pause bookkeeping for one period.

    All reads accept an explicit ``now``; when omitted the injected time
    source is used.
    """

    def __init__(self, timer: Optional[TimerState] = None,
                 time_source: Optional[Callable[[], int]] = None):
        self.timer = timer if timer is not None else TimerState()
        self._time_source = time_source or now_ms

    def now(self) -> int:
        """Current time in epoch milliseconds."""
        return int(self._time_source())

    def _resolve(self, now: Optional[int]) -> int:
        return self.now() if now is None else now

    @property
    def is_paused(self) -> bool:
        return self.timer.is_paused

    @property
    def total_paused_duration(self) -> int:
        return self.timer.total_paused_duration

    # ------------------------------------------------------------------
    # Period lifecycle
    # ------------------------------------------------------------------
    def start_period(self, now: Optional[int] = None) -> int:
        """Reset all marks for a new period starting at ``now``."""
        now = self._resolve(now)
        self.timer.period_start_time = now
        self.timer.period_end_time = None
        self.timer.pause_start_time = None
        self.timer.total_paused_duration = 0
        self.timer.pause_ledger = []
        self.timer.last_substitution_time = now
        self.timer.second_last_substitution_time = None
        return now

    def end_period(self, now: Optional[int] = None) -> int:
        """Close any open pause and stamp the period end."""
        now = self._resolve(now)
        self.resume(now)
        self.timer.period_end_time = now
        return now

    def pause(self, now: Optional[int] = None) -> bool:
        """
        Mark the start of a pause.

        Returns:
            False if the clock was already paused (no-op)
        """
        if self.timer.is_paused:
            return False
        self.timer.pause_start_time = self._resolve(now)
        logger.debug("Clock paused at %s", self.timer.pause_start_time)
        return True

    def resume(self, now: Optional[int] = None) -> bool:
        """
        Fold the open pause into the ledger.

        Returns:
            False if the clock was not paused (no-op)
        """
        if not self.timer.is_paused:
            return False
        now = self._resolve(now)
        start = self.timer.pause_start_time
        end = max(now, start)
        self.timer.pause_ledger.append((start, end))
        self.timer.total_paused_duration += end - start
        self.timer.pause_start_time = None
        logger.debug("Clock resumed at %s after %d ms", end, end - start)
        return True

    def record_substitution(self, now: Optional[int] = None) -> int:
        """Re-anchor the sub timer at ``now``."""
        now = self._resolve(now)
        self.timer.second_last_substitution_time = self.timer.last_substitution_time
        self.timer.last_substitution_time = now
        return now

    # ------------------------------------------------------------------
    # Elapsed time queries
    # ------------------------------------------------------------------
    def pause_intervals(self, now: Optional[int] = None) -> List[Tuple[int, int]]:
        """Closed pause intervals plus the open one (ending at ``now``)."""
        intervals = list(self.timer.pause_ledger)
        if self.timer.pause_start_time is not None:
            now = self._resolve(now)
            intervals.append((self.timer.pause_start_time, max(now, self.timer.pause_start_time)))
        return intervals

    def elapsed_since(self, mark: Optional[int], now: Optional[int] = None) -> int:
        """Running milliseconds between ``mark`` and ``now``, pauses excluded."""
        if mark is None:
            return 0
        now = self._resolve(now)
        if now <= mark:
            return 0
        paused = paused_ms_between(mark, now, self.pause_intervals(now))
        return max(0, (now - mark) - paused)

    def elapsed_seconds_since(self, mark: Optional[int], now: Optional[int] = None) -> int:
        """Whole running seconds since ``mark`` (floored)."""
        return self.elapsed_since(mark, now) // 1000

    def mark_for_elapsed(self, elapsed_ms: int, now: Optional[int] = None) -> int:
        """
        Find the mark from which ``elapsed_since`` would report ``elapsed_ms``.

        Walks backward from ``now`` skipping pause intervals.
        """
        now = self._resolve(now)
        remaining = max(0, int(elapsed_ms))
        cursor = now
        for pause_start, pause_end in sorted(self.pause_intervals(now), reverse=True):
            pause_end = min(pause_end, cursor)
            if pause_end <= pause_start:
                continue
            running = cursor - pause_end
            if remaining <= running:
                return cursor - remaining
            remaining -= running
            cursor = pause_start
        return cursor - remaining
