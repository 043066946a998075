"""Match event records for the audit log."""

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Optional


class EventType(str, Enum):
    """Kinds of state transitions recorded in the event log."""
    MATCH_START = "match_start"
    MATCH_END = "match_end"
    PERIOD_START = "period_start"
    PERIOD_END = "period_end"
    TIMER_PAUSED = "timer_paused"
    TIMER_RESUMED = "timer_resumed"
    SUBSTITUTION = "substitution"
    SUBSTITUTION_UNDONE = "substitution_undone"
    GOALIE_SWITCH = "goalie_switch"
    POSITION_CHANGE = "position_change"
    PLAYER_INACTIVATED = "player_inactivated"
    PLAYER_ACTIVATED = "player_activated"
    GOAL_SCORED = "goal_scored"
    GOAL_CONCEDED = "goal_conceded"
    GOAL_UNDONE = "goal_undone"
    FAIR_PLAY_AWARD = "fair_play_award"


@dataclass
class GameEvent:
    """A single logged event; undone events are flagged, never deleted."""
    id: str
    type: EventType
    timestamp: int
    match_time: str
    sequence: int
    period_number: int = 0
    data: Dict[str, Any] = field(default_factory=dict)
    undone: bool = False
    undo_timestamp: Optional[int] = None
    undo_reason: Optional[str] = None
    related_event_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "id": self.id,
            "type": self.type.value,
            "timestamp": self.timestamp,
            "match_time": self.match_time,
            "sequence": self.sequence,
            "period_number": self.period_number,
            "data": dict(self.data),
            "undone": self.undone,
            "undo_timestamp": self.undo_timestamp,
            "undo_reason": self.undo_reason,
            "related_event_id": self.related_event_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "GameEvent":
        """Create from dictionary."""
        return cls(
            id=str(data["id"]),
            type=EventType(data["type"]),
            timestamp=int(data["timestamp"]),
            match_time=data.get("match_time", "00:00"),
            sequence=int(data.get("sequence", 0)),
            period_number=int(data.get("period_number", 0) or 0),
            data=dict(data.get("data") or {}),
            undone=bool(data.get("undone", False)),
            undo_timestamp=data.get("undo_timestamp"),
            undo_reason=data.get("undo_reason"),
            related_event_id=data.get("related_event_id"),
        )
