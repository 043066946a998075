"""
Player model for the sideline rotation engine.

This module contains the Player dataclass which represents a squad member and
their match state: the role and status they hold right now, the role they
started the match in, and the per-role playing time counters that the stint
accounting keeps up to date.
"""
from dataclasses import dataclass, field, replace
from enum import Enum
from typing import Any, Dict, Optional, Type, TypeVar

E = TypeVar("E", bound=Enum)


class PlayerRole(str, Enum):
    """Role a player holds at a given instant."""
    GOALIE = "goalie"
    DEFENDER = "defender"
    ATTACKER = "attacker"
    MIDFIELDER = "midfielder"
    SUBSTITUTE = "substitute"

    @classmethod
    def normalize(cls, value: Any, default: Optional["PlayerRole"] = None) -> Optional["PlayerRole"]:
        """Accept enum members, lowercase, title case or uppercase role names."""
        return _parse_enum(cls, value, default)


class PlayerStatus(str, Enum):
    """Coarse status: on the field, in goal, or on the bench."""
    ON_FIELD = "on_field"
    GOALIE = "goalie"
    SUBSTITUTE = "substitute"

    @classmethod
    def normalize(cls, value: Any, default: Optional["PlayerStatus"] = None) -> Optional["PlayerStatus"]:
        """Accept enum members or any-case status names."""
        return _parse_enum(cls, value, default)


OUTFIELD_ROLES = frozenset({PlayerRole.DEFENDER, PlayerRole.ATTACKER, PlayerRole.MIDFIELDER})

# Lower numbers = higher priority (more likely to score)
ROLE_PRIORITY: Dict[PlayerRole, int] = {
    PlayerRole.ATTACKER: 1,
    PlayerRole.MIDFIELDER: 2,
    PlayerRole.DEFENDER: 3,
    PlayerRole.GOALIE: 4,
    PlayerRole.SUBSTITUTE: 5,
}


def _parse_enum(enum_cls: Type[E], value: Any, default: Optional[E]) -> Optional[E]:
    if value is None:
        return default
    if isinstance(value, enum_cls):
        return value
    text = str(value).strip().lower()
    for member in enum_cls:
        if member.value == text or member.name.lower() == text:
            return member
    return default


def status_for_role(role: PlayerRole) -> PlayerStatus:
    """Map a role to its coarse status."""
    if role == PlayerRole.GOALIE:
        return PlayerStatus.GOALIE
    if role == PlayerRole.SUBSTITUTE:
        return PlayerStatus.SUBSTITUTE
    return PlayerStatus.ON_FIELD


def role_priority(role: Optional[PlayerRole]) -> int:
    """Get the goal scoring priority for a role (unknown roles sort last)."""
    if role is None:
        return ROLE_PRIORITY[PlayerRole.SUBSTITUTE]
    return ROLE_PRIORITY[role]


@dataclass
class PlayerStats:
    """
    Mutable match state of a player.

    Attributes:
        current_role: Role held right now
        current_status: Coarse status derived from the role
        current_position: Formation slot key currently occupied
        started_match_as: Status captured when the first period started
        started_at_role: Role captured when the first period started
        started_at_position: Slot captured when the first period started
        start_locked: True once the started_* fields are frozen
        time_on_field_seconds: Outfield seconds (defender + attacker + midfielder)
        time_as_goalie_seconds: Seconds in goal
        time_as_defender_seconds: Seconds as defender
        time_as_attacker_seconds: Seconds as attacker
        time_as_midfielder_seconds: Seconds as midfielder
        time_as_sub_seconds: Seconds on the bench while active
        last_stint_start_time_epoch: Start of the current stint (epoch ms),
            None while the player is not accruing time
        stint_carry_ms: Sub-second remainder of the current stint not yet
            credited to a counter
        is_inactive: Player is unavailable for rotation
        is_captain: Team captain flag
        goals: Goals scored in this match
        has_fair_play_award: Fair play award winner flag
    """
    current_role: PlayerRole = PlayerRole.SUBSTITUTE
    current_status: PlayerStatus = PlayerStatus.SUBSTITUTE
    current_position: Optional[str] = None
    started_match_as: Optional[PlayerStatus] = None
    started_at_role: Optional[PlayerRole] = None
    started_at_position: Optional[str] = None
    start_locked: bool = False
    time_on_field_seconds: int = 0
    time_as_goalie_seconds: int = 0
    time_as_defender_seconds: int = 0
    time_as_attacker_seconds: int = 0
    time_as_midfielder_seconds: int = 0
    time_as_sub_seconds: int = 0
    last_stint_start_time_epoch: Optional[int] = None
    stint_carry_ms: int = 0
    is_inactive: bool = False
    is_captain: bool = False
    goals: int = 0
    has_fair_play_award: bool = False

    @property
    def floor_seconds(self) -> int:
        """Outfield plus goalie seconds."""
        return self.time_on_field_seconds + self.time_as_goalie_seconds

    @property
    def is_accruing(self) -> bool:
        """Whether a stint is currently open."""
        return self.last_stint_start_time_epoch is not None

    def copy(self) -> "PlayerStats":
        """Return an independent copy."""
        return replace(self)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for JSON serialization."""
        return {
            "current_role": self.current_role.value,
            "current_status": self.current_status.value,
            "current_position": self.current_position,
            "started_match_as": self.started_match_as.value if self.started_match_as else None,
            "started_at_role": self.started_at_role.value if self.started_at_role else None,
            "started_at_position": self.started_at_position,
            "start_locked": self.start_locked,
            "time_on_field_seconds": self.time_on_field_seconds,
            "time_as_goalie_seconds": self.time_as_goalie_seconds,
            "time_as_defender_seconds": self.time_as_defender_seconds,
            "time_as_attacker_seconds": self.time_as_attacker_seconds,
            "time_as_midfielder_seconds": self.time_as_midfielder_seconds,
            "time_as_sub_seconds": self.time_as_sub_seconds,
            "last_stint_start_time_epoch": self.last_stint_start_time_epoch,
            "stint_carry_ms": self.stint_carry_ms,
            "is_inactive": self.is_inactive,
            "is_captain": self.is_captain,
            "goals": self.goals,
            "has_fair_play_award": self.has_fair_play_award,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> "PlayerStats":
        """Create from dictionary for JSON deserialization."""
        if not data:
            return cls()
        role = PlayerRole.normalize(data.get("current_role"), PlayerRole.SUBSTITUTE)
        return cls(
            current_role=role,
            current_status=PlayerStatus.normalize(data.get("current_status"), status_for_role(role)),
            current_position=data.get("current_position"),
            started_match_as=PlayerStatus.normalize(data.get("started_match_as")),
            started_at_role=PlayerRole.normalize(data.get("started_at_role")),
            started_at_position=data.get("started_at_position"),
            start_locked=bool(data.get("start_locked", False)),
            time_on_field_seconds=int(data.get("time_on_field_seconds", 0) or 0),
            time_as_goalie_seconds=int(data.get("time_as_goalie_seconds", 0) or 0),
            time_as_defender_seconds=int(data.get("time_as_defender_seconds", 0) or 0),
            time_as_attacker_seconds=int(data.get("time_as_attacker_seconds", 0) or 0),
            time_as_midfielder_seconds=int(data.get("time_as_midfielder_seconds", 0) or 0),
            time_as_sub_seconds=int(data.get("time_as_sub_seconds", 0) or 0),
            last_stint_start_time_epoch=data.get("last_stint_start_time_epoch"),
            stint_carry_ms=int(data.get("stint_carry_ms", 0) or 0),
            is_inactive=bool(data.get("is_inactive", False)),
            is_captain=bool(data.get("is_captain", False)),
            goals=int(data.get("goals", 0) or 0),
            has_fair_play_award=bool(data.get("has_fair_play_award", False)),
        )


@dataclass
class Player:
    """
    A squad member selected for the match.

    Attributes:
        id: Stable identifier, unique within a match
        name: Display name
        jersey_number: Shirt number (optional)
        stats: Match state and playing time counters
    """
    id: str
    name: str = ""
    jersey_number: Optional[str] = None
    stats: PlayerStats = field(default_factory=PlayerStats)

    @property
    def display_name(self) -> str:
        return self.name or self.id

    def copy(self) -> "Player":
        """Return an independent copy (stats included)."""
        return replace(self, stats=self.stats.copy())

    def with_stats(self, stats: PlayerStats) -> "Player":
        """Return a copy of this player carrying ``stats``."""
        return replace(self, stats=stats)

    def to_dict(self) -> Dict[str, Any]:
        """
        Convert player to dictionary for JSON serialization.

        Returns:
            Dictionary representation of the player
        """
        return {
            "id": self.id,
            "name": self.name,
            "jersey_number": self.jersey_number,
            "stats": self.stats.to_dict(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Player":
        """
        Create player from dictionary for JSON deserialization.

        Args:
            data: Dictionary representation of player

        Returns:
            Player instance
        """
        return cls(
            id=str(data["id"]),
            name=data.get("name", "") or "",
            jersey_number=data.get("jersey_number"),
            stats=PlayerStats.from_dict(data.get("stats")),
        )
