"""
Substitution state machine.

Every command takes a Formation, RotationQueue and player snapshot and returns
a new snapshot as a single SubstitutionResult. Inputs are never mutated, so a
caller either applies the whole result or nothing.
"""
import logging
from dataclasses import dataclass, field
from typing import Dict, List, Mapping, Optional

from ..errors import (
    InvalidActionError, InvalidFormationError, NoEligibleSubstituteError,
    NotInQueueError, StateDesyncError,
)
from ..models import (
    Formation, PairRoleRotation, Player, PlayerRole, RotationQueue, TeamConfig,
    GOALIE_SLOT, SUB_PAIR, status_for_role,
)
from ..utils import now_ms
from .clock import Clock
from .formation_validator import FormationValidationService
from .stint_manager import close_stint, start_new_stint, update_player_time_stats

logger = logging.getLogger(__name__)


@dataclass
class SubstitutionResult:
    """
    New snapshot produced by a SubstitutionManager command.

    Attributes:
        formation: Formation after the command
        rotation_queue: Rotation queue after the command
        updated_players: Players whose records changed, keyed by id
        players_going_off: Ids that left the field
        players_coming_on: Ids that entered the field
        timestamp: When the command was applied (epoch ms)
        applied: False when the command was a re-entrant no-op
    """
    formation: Formation
    rotation_queue: RotationQueue
    updated_players: Dict[str, Player] = field(default_factory=dict)
    players_going_off: List[str] = field(default_factory=list)
    players_coming_on: List[str] = field(default_factory=list)
    timestamp: Optional[int] = None
    applied: bool = True

    def merge_players(self, players: Mapping[str, Player]) -> Dict[str, Player]:
        """Return ``players`` with the updated records swapped in."""
        merged = dict(players)
        merged.update(self.updated_players)
        return merged


class SubstitutionManager:
    """Applies substitutions, position switches, goalie switches and inactivation."""

    def __init__(self, team_config: TeamConfig, clock: Optional[Clock] = None,
                 validation_service: Optional[FormationValidationService] = None):
        self.team_config = team_config
        self.clock = clock
        self.validation_service = validation_service or FormationValidationService()

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------
    def _now(self, now_epoch: Optional[int]) -> int:
        if now_epoch is not None:
            return now_epoch
        if self.clock is not None:
            return self.clock.now()
        return now_ms()

    @staticmethod
    def _get_player(players: Mapping[str, Player], player_id: str) -> Player:
        try:
            return players[player_id]
        except KeyError:
            raise InvalidActionError(f"Unknown player '{player_id}'", {"player_id": player_id}) from None

    @staticmethod
    def _unchanged(formation: Formation, rotation_queue: RotationQueue, now: int) -> SubstitutionResult:
        return SubstitutionResult(
            formation=formation.copy(),
            rotation_queue=rotation_queue.clone(),
            timestamp=now,
            applied=False,
        )

    def _move(self, player: Player, slot_key: str, formation: Formation, now: int) -> Player:
        return self.handle_role_change(player, formation.role_for_slot(slot_key), now, position=slot_key)

    def _rearrange_bench(self, formation: Formation, rotation_queue: RotationQueue,
                         players: Mapping[str, Player]) -> Dict[str, Player]:
        """
        Order bench slots by queue order with inactive players last.

        Mutates ``formation``; returns players whose slot changed.
        """
        bench_slots = formation.substitute_slots()
        occupants = formation.substitute_player_ids()
        active = [pid for pid in rotation_queue if pid in occupants]
        inactive = [pid for pid in occupants if pid not in active]
        ordered = active + inactive

        moved = {}
        for slot_key in bench_slots:
            formation.assign(slot_key, None)
        for slot_key, player_id in zip(bench_slots, ordered):
            formation.assign(slot_key, player_id)
            player = players[player_id]
            if player.stats.current_position != slot_key:
                stats = player.stats.copy()
                stats.current_position = slot_key
                moved[player_id] = player.with_stats(stats)
        return moved

    def verify_consistency(self, formation: Formation, rotation_queue: RotationQueue,
                           players: Mapping[str, Player]) -> None:
        """Raise StateDesyncError if formation, queue and statuses disagree."""
        result = self.validation_service.check_consistency(formation, rotation_queue, dict(players))
        if not result.is_valid:
            logger.error("Rotation state desync: %s", "; ".join(result.errors))
            raise StateDesyncError("Rotation state is out of sync", {"errors": result.errors})

    # ------------------------------------------------------------------
    # Commands
    # ------------------------------------------------------------------
    def initialize(self, formation: Formation, selected_players: Mapping[str, Player],
                   team_config: Optional[TeamConfig] = None) -> RotationQueue:
        """
        Validate a lineup and seed the rotation queue.

        Args:
            formation: Fully assigned formation
            selected_players: Squad keyed by player id
            team_config: Overrides the manager's team config

        Returns:
            The initial RotationQueue

        Raises:
            InvalidFormationError: If the lineup fails validation
        """
        team_config = team_config or self.team_config
        result = self.validation_service.validate_lineup(team_config, formation, dict(selected_players))
        if not result.is_valid:
            logger.warning("Lineup rejected: %s", "; ".join(result.errors))
            raise InvalidFormationError(result.errors)
        self.team_config = team_config
        queue = RotationQueue.initialize(selected_players, formation)
        logger.info("Rotation queue initialized: %s", queue.to_array())
        return queue

    def handle_role_change(self, player: Player, new_role: PlayerRole, now_epoch: Optional[int] = None,
                           *, position: Optional[str] = None) -> Player:
        """
        Close the current stint and switch ``player`` to ``new_role``.

        Time up to ``now_epoch`` is credited to the old role; a player who was
        accruing keeps accruing in the new role from ``now_epoch``.

        Returns:
            Updated player copy
        """
        now = self._now(now_epoch)
        stats = update_player_time_stats(player, now, self.clock, settle=True)
        old_role = stats.current_role
        stats.current_role = new_role
        stats.current_status = status_for_role(new_role)
        if position is not None:
            stats.current_position = position
        if old_role != new_role:
            logger.debug("Player %s role %s -> %s", player.id, old_role.value, new_role.value)
        return player.with_stats(stats)

    def perform_substitution(self, formation: Formation, rotation_queue: RotationQueue,
                             players: Mapping[str, Player],
                             outgoing_player_id: Optional[str] = None,
                             incoming_player_id: Optional[str] = None,
                             now_epoch: Optional[int] = None) -> SubstitutionResult:
        """
        Substitute the next player (or pair) out for the next active substitute.

        Args:
            formation: Current formation
            rotation_queue: Current rotation queue
            players: Squad keyed by player id
            outgoing_player_id: Player (or pair key) to take off; defaults to
                the front of the queue
            incoming_player_id: Substitute to bring on; defaults to the first
                active substitute
            now_epoch: Swap instant (epoch ms)

        Returns:
            SubstitutionResult; ``applied`` is False when the outgoing player
            is already on the bench

        Raises:
            NoEligibleSubstituteError: No active substitute is available
            InvalidActionError: Unknown ids or a goalie as outgoing player
            NotInQueueError: The outgoing entry is missing from the queue
        """
        now = self._now(now_epoch)
        if formation.is_pairs:
            return self._perform_pair_substitution(formation, rotation_queue, players,
                                                   outgoing_player_id, incoming_player_id, now)

        outgoing = outgoing_player_id or rotation_queue.next()
        if outgoing is None:
            raise NoEligibleSubstituteError("Nobody is queued to come off")
        self._get_player(players, outgoing)

        out_slot = formation.slot_of(outgoing)
        if out_slot is None:
            raise StateDesyncError(f"Player '{outgoing}' has no slot in the formation",
                                   {"player_id": outgoing})
        out_definition = formation.definition(out_slot)
        if out_definition.is_substitute:
            logger.info("Substitution skipped: %s is already on the bench", outgoing)
            return self._unchanged(formation, rotation_queue, now)
        if out_definition.role == PlayerRole.GOALIE:
            raise InvalidActionError("The goalie is changed with switch_goalie", {"player_id": outgoing})

        if incoming_player_id is not None:
            incoming = incoming_player_id
            if not formation.is_substitute(incoming):
                raise InvalidActionError(f"Player '{incoming}' is not on the bench", {"player_id": incoming})
            if self._get_player(players, incoming).stats.is_inactive:
                raise NoEligibleSubstituteError(f"Player '{incoming}' is inactive", {"player_id": incoming})
        else:
            incoming = next(
                (pid for pid in formation.substitute_player_ids() if not players[pid].stats.is_inactive),
                None,
            )
            if incoming is None:
                raise NoEligibleSubstituteError("All substitutes are inactive")

        queue = rotation_queue.clone()
        queue.rotate(outgoing)

        in_slot = formation.slot_of(incoming)
        new_formation = formation.copy()
        new_formation.assign(out_slot, incoming)
        new_formation.assign(in_slot, outgoing)

        updated = {
            outgoing: self._move(players[outgoing], in_slot, new_formation, now),
            incoming: self._move(players[incoming], out_slot, new_formation, now),
        }
        queue.stable_partition(new_formation.field_player_ids())
        updated.update(self._rearrange_bench(new_formation, queue, {**players, **updated}))
        self.verify_consistency(new_formation, queue, {**players, **updated})

        logger.info("Substitution: %s off (%s), %s on", outgoing, out_slot, incoming)
        return SubstitutionResult(
            formation=new_formation,
            rotation_queue=queue,
            updated_players=updated,
            players_going_off=[outgoing],
            players_coming_on=[incoming],
            timestamp=now,
        )

    def _perform_pair_substitution(self, formation: Formation, rotation_queue: RotationQueue,
                                   players: Mapping[str, Player], outgoing_id: Optional[str],
                                   incoming_id: Optional[str], now: int) -> SubstitutionResult:
        if outgoing_id is None:
            out_pair = rotation_queue.next()
        elif outgoing_id in formation.pair_keys(include_substitutes=True):
            out_pair = outgoing_id
        else:
            self._get_player(players, outgoing_id)
            if outgoing_id == formation.goalie:
                raise InvalidActionError("The goalie is changed with switch_goalie", {"player_id": outgoing_id})
            out_pair = formation.pair_of(outgoing_id)
        if out_pair is None:
            raise NoEligibleSubstituteError("No pair is queued to come off")
        if out_pair == SUB_PAIR:
            logger.info("Substitution skipped: %s is already on the bench", outgoing_id)
            return self._unchanged(formation, rotation_queue, now)

        sub_def_slot, sub_att_slot = formation.pair_slots(SUB_PAIR)
        sub_def, sub_att = formation.slots[sub_def_slot], formation.slots[sub_att_slot]
        if incoming_id is not None and incoming_id not in (sub_def, sub_att):
            raise InvalidActionError(f"Player '{incoming_id}' is not in the substitute pair",
                                     {"player_id": incoming_id})
        if not sub_def or not sub_att or any(players[pid].stats.is_inactive for pid in (sub_def, sub_att)):
            raise NoEligibleSubstituteError("Substitute pair is not available")

        queue = rotation_queue.clone()
        queue.rotate(out_pair)

        out_def_slot, out_att_slot = formation.pair_slots(out_pair)
        out_def, out_att = formation.slots[out_def_slot], formation.slots[out_att_slot]
        if self.team_config.pair_role_rotation == PairRoleRotation.SWAP_EVERY_ROTATION:
            to_def, to_att = sub_att, sub_def
        else:
            to_def, to_att = sub_def, sub_att

        new_formation = formation.copy()
        new_formation.assign(out_def_slot, to_def)
        new_formation.assign(out_att_slot, to_att)
        new_formation.assign(sub_def_slot, out_def)
        new_formation.assign(sub_att_slot, out_att)

        updated = {}
        for player_id, slot_key in ((to_def, out_def_slot), (to_att, out_att_slot),
                                    (out_def, sub_def_slot), (out_att, sub_att_slot)):
            updated[player_id] = self._move(players[player_id], slot_key, new_formation, now)
        self.verify_consistency(new_formation, queue, {**players, **updated})

        logger.info("Pair substitution: %s off (%s, %s), on (%s, %s)", out_pair, out_def, out_att, to_def, to_att)
        return SubstitutionResult(
            formation=new_formation,
            rotation_queue=queue,
            updated_players=updated,
            players_going_off=[out_def, out_att],
            players_coming_on=[to_def, to_att],
            timestamp=now,
        )

    def switch_positions(self, formation: Formation, rotation_queue: RotationQueue,
                         players: Mapping[str, Player], player_a: str, player_b: str,
                         now_epoch: Optional[int] = None) -> SubstitutionResult:
        """
        Swap the slots of two players without a substitution.

        Two outfield players swap positions (and roles). Two active
        substitutes swap bench order, and their queue order with it.
        """
        now = self._now(now_epoch)
        if player_a == player_b:
            raise InvalidActionError("Cannot switch a player with themselves", {"player_id": player_a})
        self._get_player(players, player_a)
        self._get_player(players, player_b)
        slot_a, slot_b = formation.slot_of(player_a), formation.slot_of(player_b)
        if slot_a is None or slot_b is None:
            raise InvalidActionError("Both players must have a slot in the formation")
        if GOALIE_SLOT in (slot_a, slot_b):
            raise InvalidActionError("The goalie is changed with switch_goalie")

        bench_a = formation.definition(slot_a).is_substitute
        bench_b = formation.definition(slot_b).is_substitute
        if bench_a != bench_b:
            raise InvalidActionError("Use a substitution to swap a field player with a substitute")

        queue = rotation_queue.clone()
        if bench_a:
            if players[player_a].stats.is_inactive or players[player_b].stats.is_inactive:
                raise InvalidActionError("Inactive players cannot be reordered")
            if not formation.is_pairs:
                index_a, index_b = queue.position_of(player_a), queue.position_of(player_b)
                if index_a < 0:
                    raise NotInQueueError(player_a)
                if index_b < 0:
                    raise NotInQueueError(player_b)
                queue.entries[index_a], queue.entries[index_b] = player_b, player_a

        new_formation = formation.copy()
        new_formation.assign(slot_a, player_b)
        new_formation.assign(slot_b, player_a)
        updated = {
            player_a: self._move(players[player_a], slot_b, new_formation, now),
            player_b: self._move(players[player_b], slot_a, new_formation, now),
        }
        self.verify_consistency(new_formation, queue, {**players, **updated})

        logger.info("Position switch: %s -> %s, %s -> %s", player_a, slot_b, player_b, slot_a)
        return SubstitutionResult(
            formation=new_formation,
            rotation_queue=queue,
            updated_players=updated,
            timestamp=now,
        )

    def switch_goalie(self, formation: Formation, rotation_queue: RotationQueue,
                      players: Mapping[str, Player], outgoing_goalie_id: str, incoming_player_id: str,
                      now_epoch: Optional[int] = None) -> SubstitutionResult:
        """
        Put ``incoming_player_id`` in goal.

        The old goalie takes the new goalie's slot and, in individual mode,
        their exact place in the rotation queue.
        """
        now = self._now(now_epoch)
        current = formation.goalie
        if outgoing_goalie_id != current:
            if current == incoming_player_id:
                logger.info("Goalie switch skipped: %s is already in goal", incoming_player_id)
                return self._unchanged(formation, rotation_queue, now)
            raise InvalidActionError(f"Player '{outgoing_goalie_id}' is not the goalie",
                                     {"player_id": outgoing_goalie_id})
        if incoming_player_id == outgoing_goalie_id:
            raise InvalidActionError("New goalie must be a different player")

        incoming = self._get_player(players, incoming_player_id)
        if incoming.stats.is_inactive:
            raise InvalidActionError(f"Player '{incoming_player_id}' is inactive",
                                     {"player_id": incoming_player_id})
        in_slot = formation.slot_of(incoming_player_id)
        if in_slot is None:
            raise InvalidActionError(f"Player '{incoming_player_id}' has no slot in the formation",
                                     {"player_id": incoming_player_id})

        queue = rotation_queue.clone()
        if not formation.is_pairs:
            index = queue.remove(incoming_player_id)
            if index is None:
                raise NotInQueueError(incoming_player_id)
            queue.add(outgoing_goalie_id, index)

        new_formation = formation.copy()
        new_formation.assign(GOALIE_SLOT, incoming_player_id)
        new_formation.assign(in_slot, outgoing_goalie_id)
        updated = {
            incoming_player_id: self._move(incoming, GOALIE_SLOT, new_formation, now),
            outgoing_goalie_id: self._move(players[outgoing_goalie_id], in_slot, new_formation, now),
        }
        self.verify_consistency(new_formation, queue, {**players, **updated})

        logger.info("Goalie switch: %s out of goal to %s, %s in goal",
                    outgoing_goalie_id, in_slot, incoming_player_id)
        return SubstitutionResult(
            formation=new_formation,
            rotation_queue=queue,
            updated_players=updated,
            timestamp=now,
        )

    def toggle_player_inactive(self, formation: Formation, rotation_queue: RotationQueue,
                               players: Mapping[str, Player], player_id: str,
                               now_epoch: Optional[int] = None, *, accruing: bool = True) -> SubstitutionResult:
        """
        Make a substitute inactive, or bring an inactive one back.

        Inactive players leave the queue and stop accruing time. A returning
        player is reinserted at their previous queue index.

        Args:
            accruing: Whether a returning player should start accruing bench
                time immediately (True while a period is in progress)
        """
        now = self._now(now_epoch)
        if formation.is_pairs:
            raise InvalidActionError("Players cannot be made inactive in pairs mode")
        player = self._get_player(players, player_id)
        if not formation.is_substitute(player_id):
            raise InvalidActionError("Only substitutes can be made inactive", {"player_id": player_id})

        queue = rotation_queue.clone()
        if not player.stats.is_inactive:
            others = [pid for pid in formation.substitute_player_ids()
                      if pid != player_id and not players[pid].stats.is_inactive]
            if not others:
                raise InvalidActionError("At least one substitute must stay active", {"player_id": player_id})
            queue.deactivate(player_id)
            updated_player = close_stint(player, now, self.clock)
            updated_player.stats.is_inactive = True
            action = "inactivated"
        else:
            queue.reactivate(player_id)
            stats = player.stats.copy()
            stats.is_inactive = False
            updated_player = player.with_stats(stats)
            if accruing:
                updated_player = start_new_stint(updated_player, now)
            action = "reactivated"

        queue.stable_partition(formation.field_player_ids())
        new_formation = formation.copy()
        updated = {player_id: updated_player}
        updated.update(self._rearrange_bench(new_formation, queue, {**players, **updated}))
        self.verify_consistency(new_formation, queue, {**players, **updated})

        logger.info("Player %s %s", player_id, action)
        return SubstitutionResult(
            formation=new_formation,
            rotation_queue=queue,
            updated_players=updated,
            timestamp=now,
        )
