"""
Formation validation for lineups and live rotation state.

Lineup rules run before a period may start; consistency rules check that the
formation, rotation queue and player statuses still agree after every change.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections import Counter
from typing import Dict, List, Optional

from ..models import Formation, Player, PlayerStatus, RotationQueue, TeamConfig


class ValidationResult:
    """Result of a validation operation with success status and error messages."""

    def __init__(self, is_valid: bool = True, errors: Optional[List[str]] = None):
        self.is_valid = is_valid
        self.errors = errors or []

    def add_error(self, error: str) -> None:
        """Add an error message and mark as invalid."""
        self.errors.append(error)
        self.is_valid = False

    def combine(self, other: 'ValidationResult') -> 'ValidationResult':
        """Combine with another validation result."""
        return ValidationResult(
            is_valid=self.is_valid and other.is_valid,
            errors=self.errors + other.errors
        )


class ValidationRule(ABC):
    """Abstract base class for validation rules."""

    @abstractmethod
    def validate(self, *args, **kwargs) -> ValidationResult:
        """Perform validation and return result."""


class TeamConfigValidator(ValidationRule):
    """Validates format, squad size and substitution style."""

    def validate(self, team_config: TeamConfig) -> ValidationResult:
        result = ValidationResult()
        for error in team_config.validate():
            result.add_error(error)
        return result


class FormationStructureValidator(ValidationRule):
    """Validates that the formation matches its team config and is fully assigned."""

    def validate(self, formation: Formation, team_config: TeamConfig) -> ValidationResult:
        result = ValidationResult()

        if formation.team_config != team_config:
            result.add_error("Formation layout does not match the team configuration")

        if not formation.goalie:
            result.add_error("Goalie slot must be filled")

        missing = [key for key in formation.missing_slots() if key != "goalie"]
        if missing:
            result.add_error(f"Unassigned slots: {', '.join(missing)}")

        duplicates = sorted(pid for pid, count in Counter(formation.assigned_player_ids()).items() if count > 1)
        for player_id in duplicates:
            result.add_error(f"Player '{player_id}' is assigned to multiple slots")

        return result


class PlayerAssignmentValidator(ValidationRule):
    """Validates the selected squad against the formation assignments."""

    def __init__(self, players: Dict[str, Player]):
        self.players = players

    def validate(self, formation: Formation, team_config: TeamConfig) -> ValidationResult:
        result = ValidationResult()

        if len(self.players) != team_config.squad_size:
            result.add_error(
                f"Selected squad has {len(self.players)} players, expected {team_config.squad_size}"
            )

        assigned = set(formation.assigned_player_ids())
        for player_id in sorted(assigned):
            if player_id not in self.players:
                result.add_error(f"Player '{player_id}' is not in the selected squad")

        for player_id in self.players:
            if player_id not in assigned:
                result.add_error(f"Player '{player_id}' has no slot in the formation")

        for slot_key, player_id in formation.items():
            player = self.players.get(player_id) if player_id else None
            if player is not None and player.stats.is_inactive and not formation.definition(slot_key).is_substitute:
                result.add_error(f"Inactive player '{player_id}' cannot start in slot '{slot_key}'")

        return result


class RotationConsistencyValidator(ValidationRule):
    """Checks that formation, rotation queue and player statuses agree."""

    def validate(self, formation: Formation, rotation_queue: RotationQueue,
                 players: Dict[str, Player]) -> ValidationResult:
        result = ValidationResult()
        entries = rotation_queue.to_array()

        if len(set(entries)) != len(entries):
            result.add_error(f"Rotation queue contains duplicates: {entries}")

        duplicates = sorted(pid for pid, count in Counter(formation.assigned_player_ids()).items() if count > 1)
        for player_id in duplicates:
            result.add_error(f"Player '{player_id}' occupies multiple slots")

        goalie = formation.goalie
        if goalie and goalie in entries:
            result.add_error(f"Goalie '{goalie}' is in the rotation queue")

        if formation.is_pairs:
            expected = set(formation.pair_keys())
        else:
            expected = {
                pid for pid in formation.field_player_ids() + formation.substitute_player_ids()
                if pid in players and not players[pid].stats.is_inactive
            }
        if set(entries) != expected:
            result.add_error(
                f"Rotation queue {entries} does not match the rotating players {sorted(expected)}"
            )

        for slot_key, player_id in formation.items():
            if not player_id or player_id not in players:
                continue
            stats = players[player_id].stats
            expected_status = formation.definition(slot_key).status
            if stats.current_status != expected_status:
                result.add_error(
                    f"Player '{player_id}' in slot '{slot_key}' has status "
                    f"{stats.current_status.value}, expected {expected_status.value}"
                )
            if stats.current_status == PlayerStatus.GOALIE and slot_key != "goalie":
                result.add_error(f"Player '{player_id}' is marked goalie outside the goalie slot")

        return result


class FormationValidationService:
    """
    Orchestrates the lineup and consistency rules.
    """

    def __init__(self):
        self.team_config_validator = TeamConfigValidator()
        self.structure_validator = FormationStructureValidator()
        self.consistency_validator = RotationConsistencyValidator()

    def validate_lineup(self, team_config: TeamConfig, formation: Formation,
                        players: Dict[str, Player]) -> ValidationResult:
        """
        Validate a lineup before a period starts.

        Args:
            team_config: Format, squad size and substitution style
            formation: Proposed slot assignments
            players: Selected squad keyed by id

        Returns:
            ValidationResult with success status and any error messages
        """
        result = self.team_config_validator.validate(team_config)
        if not result.is_valid:
            return result
        result = result.combine(self.structure_validator.validate(formation, team_config))
        result = result.combine(PlayerAssignmentValidator(players).validate(formation, team_config))
        return result

    def check_consistency(self, formation: Formation, rotation_queue: RotationQueue,
                          players: Dict[str, Player]) -> ValidationResult:
        """Validate a live formation/queue/player triple."""
        return self.consistency_validator.validate(formation, rotation_queue, players)
