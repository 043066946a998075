"""
Models package for the sideline rotation engine.

This package contains the core data models used throughout the application.
"""
from .player import (
    Player, PlayerStats, PlayerRole, PlayerStatus, OUTFIELD_ROLES, ROLE_PRIORITY,
    status_for_role, role_priority,
)
from .formation import (
    TeamConfig, SubstitutionType, PairRoleRotation, SlotDefinition, Formation,
    GOALIE_SLOT, SUB_PAIR, FIELD_PAIRS,
)
from .rotation_queue import RotationQueue
from .timer_state import TimerState
from .match_state import MatchState, PeriodState, LastSubstitution
from .game_event import GameEvent, EventType
from .game_report import FinalStats, PlayerTimeSummary

__all__ = [
    "Player", "PlayerStats", "PlayerRole", "PlayerStatus", "OUTFIELD_ROLES",
    "ROLE_PRIORITY", "status_for_role", "role_priority",
    "TeamConfig", "SubstitutionType", "PairRoleRotation", "SlotDefinition",
    "Formation", "GOALIE_SLOT", "SUB_PAIR", "FIELD_PAIRS",
    "RotationQueue", "TimerState", "MatchState", "PeriodState",
    "LastSubstitution", "GameEvent", "EventType", "FinalStats",
    "PlayerTimeSummary",
]
