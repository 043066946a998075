"""
MatchState model for the sideline rotation engine.

This module contains the MatchState dataclass which represents the complete
state of a match: squad, formation, rotation queue, period lifecycle, timer
marks and the pending substitution undo record, along with persistence
methods that tolerate missing or partial snapshots.
"""
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, List, Optional

from .formation import Formation, TeamConfig
from .player import Player
from .rotation_queue import RotationQueue
from .timer_state import TimerState
from ..utils import DEFAULT_PERIOD_DURATION_MIN, DEFAULT_PERIOD_COUNT, DEFAULT_ALERT_MINUTES


class PeriodState(str, Enum):
    """Lifecycle of the active period."""
    NOT_STARTED = "not_started"
    RUNNING = "running"
    PAUSED = "paused"
    ENDED = "ended"


@dataclass
class LastSubstitution:
    """
    Snapshot taken immediately before a substitution, used to undo it.

    Attributes:
        timestamp: When the substitution happened (epoch ms)
        sub_timer_seconds: Sub timer value at that moment
        before_formation: Formation before the swap
        before_rotation_queue: Rotation queue before the swap
        before_players: Pre-swap records of every touched player
        before_last_substitution_time: Sub timer anchor before the swap
        before_second_last_substitution_time: Previous anchor before the swap
        players_going_off: Ids that left the field
        players_coming_on: Ids that entered the field
        event_id: Id of the logged substitution event
    """
    timestamp: int
    sub_timer_seconds: int
    before_formation: Formation
    before_rotation_queue: RotationQueue
    before_players: Dict[str, Player] = field(default_factory=dict)
    before_last_substitution_time: Optional[int] = None
    before_second_last_substitution_time: Optional[int] = None
    players_going_off: List[str] = field(default_factory=list)
    players_coming_on: List[str] = field(default_factory=list)
    event_id: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            "timestamp": self.timestamp,
            "sub_timer_seconds": self.sub_timer_seconds,
            "before_formation": self.before_formation.to_dict(),
            "before_rotation_queue": self.before_rotation_queue.to_dict(),
            "before_players": {pid: p.to_dict() for pid, p in self.before_players.items()},
            "before_last_substitution_time": self.before_last_substitution_time,
            "before_second_last_substitution_time": self.before_second_last_substitution_time,
            "players_going_off": list(self.players_going_off),
            "players_coming_on": list(self.players_coming_on),
            "event_id": self.event_id,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LastSubstitution":
        return cls(
            timestamp=int(data["timestamp"]),
            sub_timer_seconds=int(data.get("sub_timer_seconds", 0) or 0),
            before_formation=Formation.from_dict(data["before_formation"]),
            before_rotation_queue=RotationQueue.from_dict(data.get("before_rotation_queue")),
            before_players={pid: Player.from_dict(p) for pid, p in (data.get("before_players") or {}).items()},
            before_last_substitution_time=data.get("before_last_substitution_time"),
            before_second_last_substitution_time=data.get("before_second_last_substitution_time"),
            players_going_off=list(data.get("players_going_off") or []),
            players_coming_on=list(data.get("players_coming_on") or []),
            event_id=data.get("event_id"),
        )


@dataclass
class MatchState:
    """
    Represents the complete state of a match.

    Attributes:
        match_id: Identifier assigned by the surrounding persistence flow
        team_config: Format, squad size, formation and substitution style
        players: Selected squad keyed by player id, in roster order
        formation: Current slot assignments (None until configured)
        rotation_queue: Substitution priority
        period_state: Lifecycle of the current period
        current_period: 1-based number of the current period
        period_count: Number of periods in the match
        period_duration_minutes: Length of each period
        alert_minutes: Substitution reminder interval (0 disables it)
        timer: Clock marks for the current period
        last_substitution: Undo record of the most recent substitution
        own_score: Goals scored by the team
        opponent_score: Goals conceded
        match_start_time: When the first period started (epoch ms)
        match_end_time: When the last period ended (epoch ms)
        period_durations_seconds: Pause-aware length of each ended period
        goal_event_ids: Logged goal events, oldest first, for undo
    """
    match_id: Optional[str] = None
    team_config: TeamConfig = field(default_factory=TeamConfig)
    players: Dict[str, Player] = field(default_factory=dict)
    formation: Optional[Formation] = None
    rotation_queue: RotationQueue = field(default_factory=RotationQueue)
    period_state: PeriodState = PeriodState.NOT_STARTED
    current_period: int = 1
    period_count: int = DEFAULT_PERIOD_COUNT
    period_duration_minutes: int = DEFAULT_PERIOD_DURATION_MIN
    alert_minutes: int = DEFAULT_ALERT_MINUTES
    timer: TimerState = field(default_factory=TimerState)
    last_substitution: Optional[LastSubstitution] = None
    own_score: int = 0
    opponent_score: int = 0
    match_start_time: Optional[int] = None
    match_end_time: Optional[int] = None
    period_durations_seconds: List[int] = field(default_factory=list)
    goal_event_ids: List[str] = field(default_factory=list)

    @property
    def is_period_active(self) -> bool:
        return self.period_state in (PeriodState.RUNNING, PeriodState.PAUSED)

    @property
    def is_match_over(self) -> bool:
        return self.period_state == PeriodState.ENDED and self.current_period >= self.period_count

    def to_json(self) -> dict:
        """
        Convert MatchState to JSON-serializable dictionary.

        Returns:
            Dictionary representation suitable for JSON serialization
        """
        return {
            "match_id": self.match_id,
            "team_config": self.team_config.to_dict(),
            "players": [p.to_dict() for p in self.players.values()],
            "formation": self.formation.to_dict() if self.formation else None,
            "rotation_queue": self.rotation_queue.to_dict(),
            "period_state": self.period_state.value,
            "current_period": self.current_period,
            "period_count": self.period_count,
            "period_duration_minutes": self.period_duration_minutes,
            "alert_minutes": self.alert_minutes,
            "timer": self.timer.to_dict(),
            "last_substitution": self.last_substitution.to_dict() if self.last_substitution else None,
            "own_score": self.own_score,
            "opponent_score": self.opponent_score,
            "match_start_time": self.match_start_time,
            "match_end_time": self.match_end_time,
            "period_durations_seconds": list(self.period_durations_seconds),
            "goal_event_ids": list(self.goal_event_ids),
        }

    @staticmethod
    def from_json(data: Optional[dict]) -> "MatchState":
        """
        Create MatchState from JSON dictionary.

        Missing keys fall back to the defaults of a fresh match.

        Args:
            data: Dictionary with match state data

        Returns:
            New MatchState instance
        """
        ms = MatchState()
        if not data:
            return ms

        ms.match_id = data.get("match_id")
        ms.team_config = TeamConfig.from_dict(data.get("team_config"))
        for pdata in data.get("players") or []:
            player = Player.from_dict(pdata)
            ms.players[player.id] = player
        if data.get("formation"):
            ms.formation = Formation.from_dict(data["formation"])
        ms.rotation_queue = RotationQueue.from_dict(data.get("rotation_queue"))
        try:
            ms.period_state = PeriodState(data.get("period_state", PeriodState.NOT_STARTED.value))
        except ValueError:
            ms.period_state = PeriodState.NOT_STARTED
        ms.current_period = max(1, int(data.get("current_period", 1) or 1))
        ms.period_count = max(1, int(data.get("period_count", DEFAULT_PERIOD_COUNT) or DEFAULT_PERIOD_COUNT))
        ms.period_duration_minutes = int(data.get("period_duration_minutes", DEFAULT_PERIOD_DURATION_MIN)
                                         or DEFAULT_PERIOD_DURATION_MIN)
        ms.alert_minutes = int(data.get("alert_minutes", DEFAULT_ALERT_MINUTES) or 0)
        ms.timer = TimerState.from_dict(data.get("timer"))
        if data.get("last_substitution"):
            ms.last_substitution = LastSubstitution.from_dict(data["last_substitution"])
        ms.own_score = int(data.get("own_score", 0) or 0)
        ms.opponent_score = int(data.get("opponent_score", 0) or 0)
        ms.match_start_time = data.get("match_start_time")
        ms.match_end_time = data.get("match_end_time")
        ms.period_durations_seconds = [int(v) for v in data.get("period_durations_seconds") or []]
        ms.goal_event_ids = [str(v) for v in data.get("goal_event_ids") or []]
        return ms
