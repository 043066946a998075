"""
Timer marks for the current period.

Plain data only: the Clock service reads and writes these marks, and they are
persisted with the rest of the match state.
"""
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

PauseInterval = Tuple[int, int]


@dataclass
class TimerState:
    """
    Serializable clock state (epoch milliseconds).

    Attributes:
        period_start_time: When the current period started
        period_end_time: When the current period ended
        pause_start_time: Start of the open pause, None while running
        total_paused_duration: Milliseconds spent paused this period
        pause_ledger: Closed pause intervals of this period, oldest first
        last_substitution_time: Sub timer anchor
        second_last_substitution_time: Previous sub timer anchor
    """
    period_start_time: Optional[int] = None
    period_end_time: Optional[int] = None
    pause_start_time: Optional[int] = None
    total_paused_duration: int = 0
    pause_ledger: List[PauseInterval] = field(default_factory=list)
    last_substitution_time: Optional[int] = None
    second_last_substitution_time: Optional[int] = None

    @property
    def is_paused(self) -> bool:
        return self.pause_start_time is not None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "period_start_time": self.period_start_time,
            "period_end_time": self.period_end_time,
            "pause_start_time": self.pause_start_time,
            "total_paused_duration": self.total_paused_duration,
            "pause_ledger": [[start, end] for start, end in self.pause_ledger],
            "last_substitution_time": self.last_substitution_time,
            "second_last_substitution_time": self.second_last_substitution_time,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "TimerState":
        if not data:
            return cls()
        ledger = []
        for interval in data.get("pause_ledger") or []:
            if len(interval) == 2 and interval[0] is not None and interval[1] is not None:
                ledger.append((int(interval[0]), int(interval[1])))
        return cls(
            period_start_time=data.get("period_start_time"),
            period_end_time=data.get("period_end_time"),
            pause_start_time=data.get("pause_start_time"),
            total_paused_duration=int(data.get("total_paused_duration", 0) or 0),
            pause_ledger=ledger,
            last_substitution_time=data.get("last_substitution_time"),
            second_last_substitution_time=data.get("second_last_substitution_time"),
        )
