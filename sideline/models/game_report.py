"""Dataclasses representing final match statistics and fairness reports."""

from dataclasses import asdict, dataclass, field
from typing import Any, Dict, List, Optional


@dataclass
class PlayerTimeSummary:
    """Playing time breakdown for a single player."""

    player_id: str
    name: str
    jersey_number: Optional[str]
    started_match_as: Optional[str]
    started_at_role: Optional[str]
    started_at_position: Optional[str]
    current_role: str
    time_on_field_seconds: int
    time_as_goalie_seconds: int
    time_as_defender_seconds: int
    time_as_attacker_seconds: int
    time_as_midfielder_seconds: int
    time_as_sub_seconds: int
    floor_seconds: int
    goals: int
    is_captain: bool
    is_inactive: bool
    has_fair_play_award: bool
    target_seconds: int = 0
    delta_seconds: int = 0
    fairness: str = "ok"


@dataclass
class FinalStats:
    """Formatted final statistics handed to the match sync collaborator."""

    match_id: str
    match_duration_seconds: int
    goals_scored: int
    goals_conceded: int
    outcome: str
    periods_played: int
    fair_play_award_id: Optional[str]
    players: List[PlayerTimeSummary] = field(default_factory=list)
    fairness_counts: Dict[str, int] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return asdict(self)
