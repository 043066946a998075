"""Team configuration and formation models for the sideline rotation engine."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Dict, Iterator, List, Optional, Tuple

from .player import PlayerRole, PlayerStatus, status_for_role
from ..utils.constants import (
    FORMAT_5V5, FIELD_PLAYERS_BY_FORMAT, FORMATIONS_BY_FORMAT,
    DEFAULT_FORMATION_BY_FORMAT, MIN_SQUAD_SIZE, MAX_SQUAD_SIZE_BY_FORMAT,
    DEFAULT_MAX_SQUAD_SIZE, PAIRS_FORMAT, PAIRS_FORMATION, PAIRS_SQUAD_SIZE,
)

GOALIE_SLOT = "goalie"
SUB_PAIR = "sub_pair"
FIELD_PAIRS = ("left_pair", "right_pair")


class SubstitutionType(str, Enum):
    """Unit of substitution."""
    INDIVIDUAL = "individual"
    PAIRS = "pairs"


class PairRoleRotation(str, Enum):
    """Whether a pair's defender/attacker labels flip when it comes back on."""
    KEEP_THROUGHOUT_PERIOD = "keep_throughout_period"
    SWAP_EVERY_ROTATION = "swap_every_rotation"


# Field slots per tactical formation, left-to-right and defence first
INDIVIDUAL_LAYOUTS: Dict[str, List[Tuple[str, PlayerRole]]] = {
    "2-2": [
        ("left_defender", PlayerRole.DEFENDER),
        ("right_defender", PlayerRole.DEFENDER),
        ("left_attacker", PlayerRole.ATTACKER),
        ("right_attacker", PlayerRole.ATTACKER),
    ],
    "1-2-1": [
        ("defender", PlayerRole.DEFENDER),
        ("left_midfielder", PlayerRole.MIDFIELDER),
        ("right_midfielder", PlayerRole.MIDFIELDER),
        ("attacker", PlayerRole.ATTACKER),
    ],
    "2-2-2": [
        ("left_defender", PlayerRole.DEFENDER),
        ("right_defender", PlayerRole.DEFENDER),
        ("left_midfielder", PlayerRole.MIDFIELDER),
        ("right_midfielder", PlayerRole.MIDFIELDER),
        ("left_attacker", PlayerRole.ATTACKER),
        ("right_attacker", PlayerRole.ATTACKER),
    ],
    "2-3-1": [
        ("left_defender", PlayerRole.DEFENDER),
        ("right_defender", PlayerRole.DEFENDER),
        ("left_midfielder", PlayerRole.MIDFIELDER),
        ("center_midfielder", PlayerRole.MIDFIELDER),
        ("right_midfielder", PlayerRole.MIDFIELDER),
        ("attacker", PlayerRole.ATTACKER),
    ],
}


def pair_slot(pair_key: str, role: PlayerRole) -> str:
    """Slot key for one half of a pair, e.g. ``left_pair.defender``."""
    return f"{pair_key}.{role.value}"


@dataclass(frozen=True)
class SlotDefinition:
    """
    Static description of one formation slot.

    Attributes:
        key: Slot key, unique within the formation
        role: Role of whoever occupies the slot
        is_substitute: True for bench slots
        pair_key: Owning pair in pairs mode
        pair_role: Defender/attacker label inside the pair
    """
    key: str
    role: PlayerRole
    is_substitute: bool = False
    pair_key: Optional[str] = None
    pair_role: Optional[PlayerRole] = None

    @property
    def status(self) -> PlayerStatus:
        return status_for_role(self.role)


@dataclass
class TeamConfig:
    """Team format, squad size, tactical formation and substitution style."""
    format: str = FORMAT_5V5
    squad_size: int = 6
    formation: str = ""
    substitution_type: SubstitutionType = SubstitutionType.INDIVIDUAL
    pair_role_rotation: Optional[PairRoleRotation] = None

    def __post_init__(self):
        """Normalize enum fields and fill format defaults."""
        self.substitution_type = SubstitutionType(self.substitution_type)
        if self.pair_role_rotation is not None:
            self.pair_role_rotation = PairRoleRotation(self.pair_role_rotation)
        if self.substitution_type == SubstitutionType.PAIRS and self.pair_role_rotation is None:
            self.pair_role_rotation = PairRoleRotation.KEEP_THROUGHOUT_PERIOD
        if not self.formation:
            self.formation = DEFAULT_FORMATION_BY_FORMAT.get(self.format, "")

    @property
    def is_pairs(self) -> bool:
        return self.substitution_type == SubstitutionType.PAIRS

    @property
    def field_players(self) -> int:
        """Number of outfield players (goalie excluded)."""
        return FIELD_PLAYERS_BY_FORMAT.get(self.format, 0)

    @property
    def substitute_count(self) -> int:
        """Number of bench slots for this squad size."""
        return max(0, self.squad_size - 1 - self.field_players)

    def validate(self) -> List[str]:
        """
        Check the configuration against the format rules.

        Returns:
            List of error messages, empty when the configuration is valid
        """
        errors = []
        if self.format not in FIELD_PLAYERS_BY_FORMAT:
            errors.append(f"Unknown format '{self.format}'")
            return errors

        max_squad = MAX_SQUAD_SIZE_BY_FORMAT.get(self.format, DEFAULT_MAX_SQUAD_SIZE)
        min_squad = max(MIN_SQUAD_SIZE, self.field_players + 1)
        if self.squad_size < min_squad:
            errors.append(f"Squad size {self.squad_size} is below the minimum of {min_squad} for {self.format}")
        elif self.squad_size > max_squad:
            errors.append(f"Squad size {self.squad_size} exceeds the maximum of {max_squad} for {self.format}")

        if self.formation not in FORMATIONS_BY_FORMAT.get(self.format, []):
            errors.append(f"Formation '{self.formation}' is not available for {self.format}")

        if self.is_pairs:
            if (self.format, self.formation, self.squad_size) != (PAIRS_FORMAT, PAIRS_FORMATION, PAIRS_SQUAD_SIZE):
                errors.append(
                    f"Pairs mode requires {PAIRS_FORMAT}, formation {PAIRS_FORMATION} "
                    f"and a squad of {PAIRS_SQUAD_SIZE}"
                )
        return errors

    def slot_definitions(self) -> List[SlotDefinition]:
        """Ordered slot layout: goalie, field slots, then bench slots."""
        slots = [SlotDefinition(GOALIE_SLOT, PlayerRole.GOALIE)]
        if self.is_pairs:
            for pair_key in FIELD_PAIRS:
                for role in (PlayerRole.DEFENDER, PlayerRole.ATTACKER):
                    slots.append(SlotDefinition(pair_slot(pair_key, role), role,
                                                pair_key=pair_key, pair_role=role))
            for role in (PlayerRole.DEFENDER, PlayerRole.ATTACKER):
                slots.append(SlotDefinition(pair_slot(SUB_PAIR, role), PlayerRole.SUBSTITUTE,
                                            is_substitute=True, pair_key=SUB_PAIR, pair_role=role))
            return slots

        for key, role in INDIVIDUAL_LAYOUTS.get(self.formation, []):
            slots.append(SlotDefinition(key, role))
        for index in range(1, self.substitute_count + 1):
            slots.append(SlotDefinition(f"substitute_{index}", PlayerRole.SUBSTITUTE, is_substitute=True))
        return slots

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary for serialization."""
        return {
            "format": self.format,
            "squad_size": self.squad_size,
            "formation": self.formation,
            "substitution_type": self.substitution_type.value,
            "pair_role_rotation": self.pair_role_rotation.value if self.pair_role_rotation else None,
        }

    @classmethod
    def from_dict(cls, data: Optional[Dict[str, Any]]) -> TeamConfig:
        """Create from dictionary."""
        if not data:
            return cls()
        return cls(
            format=data.get("format", FORMAT_5V5),
            squad_size=int(data.get("squad_size", 6)),
            formation=data.get("formation", ""),
            substitution_type=data.get("substitution_type", SubstitutionType.INDIVIDUAL.value),
            pair_role_rotation=data.get("pair_role_rotation"),
        )


@dataclass
class Formation:
    """
    Snapshot mapping of slot key to player id.

    Slots are kept in layout order (goalie, field slots, bench slots); an
    unassigned slot holds ``None``, which is only legal while configuring.
    """
    team_config: TeamConfig
    slots: Dict[str, Optional[str]] = field(default_factory=dict)

    def __post_init__(self):
        self._definitions = {d.key: d for d in self.team_config.slot_definitions()}
        ordered = {key: self.slots.get(key) for key in self._definitions}
        unknown = [key for key in self.slots if key not in self._definitions]
        if unknown:
            raise ValueError(f"Unknown slots for formation {self.team_config.formation}: {unknown}")
        self.slots = ordered

    @classmethod
    def for_team_config(cls, team_config: TeamConfig,
                        assignments: Optional[Dict[str, Optional[str]]] = None) -> Formation:
        """Build the slot layout for ``team_config``, optionally pre-filled."""
        return cls(team_config=team_config, slots=dict(assignments or {}))

    @property
    def substitution_type(self) -> SubstitutionType:
        return self.team_config.substitution_type

    @property
    def is_pairs(self) -> bool:
        return self.team_config.is_pairs

    @property
    def goalie(self) -> Optional[str]:
        return self.slots.get(GOALIE_SLOT)

    def copy(self) -> Formation:
        return Formation(team_config=self.team_config, slots=dict(self.slots))

    def definitions(self) -> List[SlotDefinition]:
        return list(self._definitions.values())

    def definition(self, slot_key: str) -> SlotDefinition:
        try:
            return self._definitions[slot_key]
        except KeyError:
            raise KeyError(f"Unknown slot '{slot_key}'") from None

    def role_for_slot(self, slot_key: str) -> PlayerRole:
        """Role held by whoever sits in ``slot_key``."""
        return self.definition(slot_key).role

    def field_slots(self) -> List[str]:
        """Outfield slot keys in layout order."""
        return [d.key for d in self._definitions.values()
                if not d.is_substitute and d.role != PlayerRole.GOALIE]

    def substitute_slots(self) -> List[str]:
        """Bench slot keys in layout order."""
        return [d.key for d in self._definitions.values() if d.is_substitute]

    def pair_keys(self, include_substitutes: bool = False) -> List[str]:
        """Pair keys in layout order (pairs mode only)."""
        keys = []
        for definition in self._definitions.values():
            if definition.pair_key and definition.pair_key not in keys:
                if include_substitutes or not definition.is_substitute:
                    keys.append(definition.pair_key)
        return keys

    def pair_slots(self, pair_key: str) -> Tuple[str, str]:
        """(defender slot, attacker slot) of a pair."""
        return pair_slot(pair_key, PlayerRole.DEFENDER), pair_slot(pair_key, PlayerRole.ATTACKER)

    def pair_members(self, pair_key: str) -> List[str]:
        """Assigned player ids of a pair, defender first."""
        return [self.slots[key] for key in self.pair_slots(pair_key) if self.slots.get(key)]

    def pair_of(self, player_id: str) -> Optional[str]:
        slot_key = self.slot_of(player_id)
        if slot_key is None:
            return None
        return self.definition(slot_key).pair_key

    def slot_of(self, player_id: str) -> Optional[str]:
        """Slot key occupied by ``player_id``, or None."""
        for key, occupant in self.slots.items():
            if occupant == player_id:
                return key
        return None

    def assign(self, slot_key: str, player_id: Optional[str]) -> None:
        """Place ``player_id`` in ``slot_key`` (mutates this snapshot)."""
        self.definition(slot_key)
        self.slots[slot_key] = player_id

    def is_on_field(self, player_id: str) -> bool:
        slot_key = self.slot_of(player_id)
        return slot_key is not None and slot_key in self.field_slots()

    def is_substitute(self, player_id: str) -> bool:
        slot_key = self.slot_of(player_id)
        return slot_key is not None and self.definition(slot_key).is_substitute

    def field_player_ids(self) -> List[str]:
        return [self.slots[key] for key in self.field_slots() if self.slots.get(key)]

    def substitute_player_ids(self) -> List[str]:
        return [self.slots[key] for key in self.substitute_slots() if self.slots.get(key)]

    def assigned_player_ids(self) -> List[str]:
        """All assigned player ids in layout order (duplicates preserved)."""
        return [occupant for occupant in self.slots.values() if occupant]

    def missing_slots(self) -> List[str]:
        return [key for key, occupant in self.slots.items() if not occupant]

    def items(self) -> Iterator[Tuple[str, Optional[str]]]:
        return iter(self.slots.items())

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, Formation):
            return NotImplemented
        return self.team_config == other.team_config and list(self.slots.items()) == list(other.slots.items())

    def to_dict(self) -> Dict[str, Any]:
        """Convert formation to dictionary for serialization."""
        return {
            "team_config": self.team_config.to_dict(),
            "slots": dict(self.slots),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> Formation:
        """Create formation from dictionary."""
        team_config = TeamConfig.from_dict(data.get("team_config"))
        return cls(team_config=team_config, slots=dict(data.get("slots") or {}))
