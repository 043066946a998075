"""
Unit tests for the substitution state machine.

Exercises individual and pairs substitutions, position and goalie switches,
and inactivation against formation/queue/player snapshots.
"""
import unittest

import pytest

from sideline.errors import (
    InvalidActionError, InvalidFormationError, NoEligibleSubstituteError,
)
from sideline.models import (
    Formation, Player, PlayerRole, PlayerStats, PlayerStatus, TeamConfig,
)
from sideline.services import SubstitutionManager

T0 = 1_700_000_000_000


def placed_players(formation: Formation, accruing: bool = True):
    """Squad with role, status and slot taken from ``formation``."""
    players = {}
    for slot_key, player_id in formation.items():
        definition = formation.definition(slot_key)
        players[player_id] = Player(id=player_id, name=player_id.upper(), stats=PlayerStats(
            current_role=definition.role,
            current_status=definition.status,
            current_position=slot_key,
            last_stint_start_time_epoch=T0 if accruing else None,
        ))
    return players


class IndividualModeBase(unittest.TestCase):
    squad_size = 6
    slots = {
        "goalie": "p1", "left_defender": "p2", "right_defender": "p3",
        "left_attacker": "p4", "right_attacker": "p5", "substitute_1": "p6",
    }

    def setUp(self) -> None:
        self.config = TeamConfig(format="5v5", squad_size=self.squad_size, formation="2-2")
        self.manager = SubstitutionManager(self.config)
        self.formation = Formation.for_team_config(self.config, self.slots)
        self.players = placed_players(self.formation)
        self.queue = self.manager.initialize(self.formation, self.players)

    def substitute(self, now, outgoing=None, incoming=None):
        result = self.manager.perform_substitution(self.formation, self.queue, self.players,
                                                   outgoing, incoming, now)
        if result.applied:
            self.formation = result.formation
            self.queue = result.rotation_queue
            self.players = result.merge_players(self.players)
        return result


class TestIndividualSubstitution(IndividualModeBase):
    def test_initialize_rejects_invalid_lineup(self) -> None:
        formation = self.formation.copy()
        formation.assign("goalie", None)
        with self.assertRaises(InvalidFormationError):
            self.manager.initialize(formation, self.players)

    def test_three_subs_rotate_longest_waiting_players(self) -> None:
        self.assertEqual(self.queue.to_array(), ["p2", "p3", "p4", "p5", "p6"])
        going_off = []
        for step in range(1, 4):
            result = self.substitute(T0 + step * 60_000)
            going_off.extend(result.players_going_off)

        self.assertEqual(going_off, ["p2", "p3", "p4"])
        self.assertEqual(len(set(going_off)), 3)
        self.assertEqual(self.queue.to_array(), ["p5", "p6", "p2", "p3", "p4"])
        self.assertEqual(self.formation.substitute_player_ids(), ["p4"])
        self.assertEqual(self.formation.goalie, "p1")

    def test_substitution_swaps_slots_and_roles(self) -> None:
        result = self.substitute(T0 + 90_000)

        self.assertEqual(result.players_going_off, ["p2"])
        self.assertEqual(result.players_coming_on, ["p6"])
        self.assertEqual(self.formation.slots["left_defender"], "p6")
        self.assertEqual(self.formation.slots["substitute_1"], "p2")

        p2, p6 = self.players["p2"].stats, self.players["p6"].stats
        self.assertEqual(p2.current_role, PlayerRole.SUBSTITUTE)
        self.assertEqual(p2.current_status, PlayerStatus.SUBSTITUTE)
        self.assertEqual(p2.time_as_defender_seconds, 90)
        self.assertEqual(p6.current_role, PlayerRole.DEFENDER)
        self.assertEqual(p6.current_position, "left_defender")
        self.assertEqual(p6.time_as_sub_seconds, 90)
        self.assertEqual(p6.last_stint_start_time_epoch, T0 + 90_000)

    def test_inputs_are_not_mutated(self) -> None:
        formation, queue = self.formation, self.queue
        self.manager.perform_substitution(formation, queue, self.players, now_epoch=T0 + 1000)
        self.assertEqual(formation.slots["left_defender"], "p2")
        self.assertEqual(queue.next(), "p2")
        self.assertEqual(self.players["p2"].stats.current_role, PlayerRole.DEFENDER)

    def test_repeated_request_for_benched_player_is_no_op(self) -> None:
        self.substitute(T0 + 1000, outgoing="p2")
        result = self.substitute(T0 + 1200, outgoing="p2")

        self.assertFalse(result.applied)
        self.assertEqual(result.updated_players, {})
        self.assertEqual(self.queue.next(), "p3")

    def test_explicit_outgoing_player(self) -> None:
        result = self.substitute(T0 + 1000, outgoing="p4")
        self.assertEqual(result.players_going_off, ["p4"])
        self.assertEqual(self.formation.slots["left_attacker"], "p6")
        self.assertEqual(self.queue.to_array(), ["p2", "p3", "p5", "p6", "p4"])

    def test_goalie_cannot_be_substituted(self) -> None:
        with self.assertRaises(InvalidActionError):
            self.substitute(T0 + 1000, outgoing="p1")

    def test_no_active_substitute(self) -> None:
        self.players["p6"] = self.players["p6"].copy()
        self.players["p6"].stats.is_inactive = True
        with self.assertRaises(NoEligibleSubstituteError):
            self.substitute(T0 + 1000)

    def test_incoming_must_be_on_bench(self) -> None:
        with self.assertRaises(InvalidActionError):
            self.substitute(T0 + 1000, incoming="p3")

    def test_switch_field_positions(self) -> None:
        result = self.manager.switch_positions(self.formation, self.queue, self.players, "p2", "p5", T0 + 30_000)

        self.assertEqual(result.formation.slots["left_defender"], "p5")
        self.assertEqual(result.formation.slots["right_attacker"], "p2")
        p2 = result.updated_players["p2"].stats
        self.assertEqual(p2.current_role, PlayerRole.ATTACKER)
        self.assertEqual(p2.time_as_defender_seconds, 30)
        self.assertEqual(result.rotation_queue.to_array(), self.queue.to_array())

    def test_switch_rejects_goalie_and_mixed_bench(self) -> None:
        with self.assertRaises(InvalidActionError):
            self.manager.switch_positions(self.formation, self.queue, self.players, "p1", "p2")
        with self.assertRaises(InvalidActionError):
            self.manager.switch_positions(self.formation, self.queue, self.players, "p2", "p6")
        with self.assertRaises(InvalidActionError):
            self.manager.switch_positions(self.formation, self.queue, self.players, "p2", "p2")

    def test_switch_goalie_takes_queue_index(self) -> None:
        result = self.manager.switch_goalie(self.formation, self.queue, self.players, "p1", "p4", T0 + 5000)

        self.assertEqual(result.formation.goalie, "p4")
        self.assertEqual(result.formation.slots["left_attacker"], "p1")
        self.assertEqual(result.rotation_queue.to_array(), ["p2", "p3", "p1", "p5", "p6"])
        self.assertEqual(result.updated_players["p4"].stats.current_status, PlayerStatus.GOALIE)
        self.assertEqual(result.updated_players["p1"].stats.current_role, PlayerRole.ATTACKER)
        self.assertEqual(result.updated_players["p1"].stats.time_as_goalie_seconds, 5)

    def test_switch_goalie_with_substitute(self) -> None:
        result = self.manager.switch_goalie(self.formation, self.queue, self.players, "p1", "p6", T0)
        self.assertEqual(result.formation.slots["substitute_1"], "p1")
        self.assertEqual(result.updated_players["p1"].stats.current_role, PlayerRole.SUBSTITUTE)
        self.assertEqual(result.rotation_queue.to_array()[-1], "p1")

    def test_repeated_goalie_switch_is_no_op(self) -> None:
        first = self.manager.switch_goalie(self.formation, self.queue, self.players, "p1", "p4", T0)
        players = first.merge_players(self.players)
        second = self.manager.switch_goalie(first.formation, first.rotation_queue, players, "p1", "p4", T0)
        self.assertFalse(second.applied)
        self.assertEqual(second.formation.goalie, "p4")

    def test_inactivation_requires_another_active_substitute(self) -> None:
        with self.assertRaises(InvalidActionError):
            self.manager.toggle_player_inactive(self.formation, self.queue, self.players, "p6", T0)
        with self.assertRaises(InvalidActionError):
            self.manager.toggle_player_inactive(self.formation, self.queue, self.players, "p2", T0)

    def test_role_change_outside_active_stint_keeps_counters(self) -> None:
        idle = placed_players(self.formation, accruing=False)
        moved = self.manager.handle_role_change(idle["p2"], PlayerRole.ATTACKER, T0 + 60_000,
                                                position="left_attacker")
        self.assertEqual(moved.stats.time_on_field_seconds, 0)
        self.assertIsNone(moved.stats.last_stint_start_time_epoch)
        self.assertEqual(moved.stats.current_position, "left_attacker")


class TestInactiveSubstitutes(IndividualModeBase):
    squad_size = 7
    slots = dict(IndividualModeBase.slots, substitute_2="p7")

    def toggle(self, player_id, now):
        result = self.manager.toggle_player_inactive(self.formation, self.queue, self.players, player_id, now)
        self.formation = result.formation
        self.queue = result.rotation_queue
        self.players = result.merge_players(self.players)
        return result

    def test_inactive_player_leaves_queue_and_bench_order(self) -> None:
        self.toggle("p6", T0 + 10_000)

        self.assertTrue(self.players["p6"].stats.is_inactive)
        self.assertIsNone(self.players["p6"].stats.last_stint_start_time_epoch)
        self.assertEqual(self.players["p6"].stats.time_as_sub_seconds, 10)
        self.assertEqual(self.queue.to_array(), ["p2", "p3", "p4", "p5", "p7"])
        self.assertEqual(self.formation.slots["substitute_1"], "p7")
        self.assertEqual(self.formation.slots["substitute_2"], "p6")

    def test_reactivated_player_returns_to_previous_position(self) -> None:
        self.toggle("p6", T0 + 10_000)
        self.toggle("p6", T0 + 20_000)

        self.assertFalse(self.players["p6"].stats.is_inactive)
        self.assertEqual(self.players["p6"].stats.last_stint_start_time_epoch, T0 + 20_000)
        self.assertEqual(self.queue.to_array(), ["p2", "p3", "p4", "p5", "p6", "p7"])
        self.assertEqual(self.formation.substitute_player_ids(), ["p6", "p7"])

    def test_inactive_player_is_skipped_for_substitution(self) -> None:
        self.toggle("p6", T0)
        result = self.substitute(T0 + 60_000)
        self.assertEqual(result.players_coming_on, ["p7"])
        with self.assertRaises(NoEligibleSubstituteError):
            self.substitute(T0 + 70_000, incoming="p6")

    def test_swap_substitutes_reorders_queue(self) -> None:
        result = self.manager.switch_positions(self.formation, self.queue, self.players, "p6", "p7", T0)
        self.assertEqual(result.formation.substitute_player_ids(), ["p7", "p6"])
        self.assertEqual(result.rotation_queue.to_array(), ["p2", "p3", "p4", "p5", "p7", "p6"])


PAIR_SLOTS = {
    "goalie": "p1",
    "left_pair.defender": "p2", "left_pair.attacker": "p3",
    "right_pair.defender": "p4", "right_pair.attacker": "p5",
    "sub_pair.defender": "p6", "sub_pair.attacker": "p7",
}


def pairs_setup(rotation):
    config = TeamConfig(format="5v5", squad_size=7, formation="2-2", substitution_type="pairs",
                        pair_role_rotation=rotation)
    manager = SubstitutionManager(config)
    formation = Formation.for_team_config(config, PAIR_SLOTS)
    players = placed_players(formation)
    queue = manager.initialize(formation, players)
    return manager, formation, queue, players


def test_pair_substitution_keeps_roles() -> None:
    manager, formation, queue, players = pairs_setup("keep_throughout_period")
    result = manager.perform_substitution(formation, queue, players, now_epoch=T0 + 60_000)

    assert result.players_going_off == ["p2", "p3"]
    assert result.players_coming_on == ["p6", "p7"]
    assert result.formation.slots["left_pair.defender"] == "p6"
    assert result.formation.slots["left_pair.attacker"] == "p7"
    assert result.formation.pair_members("sub_pair") == ["p2", "p3"]
    assert result.rotation_queue.to_array() == ["right_pair", "left_pair"]
    assert result.updated_players["p2"].stats.time_as_defender_seconds == 60
    assert result.updated_players["p7"].stats.current_role == PlayerRole.ATTACKER


def test_pair_substitution_swaps_roles_when_configured() -> None:
    manager, formation, queue, players = pairs_setup("swap_every_rotation")
    result = manager.perform_substitution(formation, queue, players, now_epoch=T0 + 60_000)

    assert result.formation.slots["left_pair.defender"] == "p7"
    assert result.formation.slots["left_pair.attacker"] == "p6"
    assert result.updated_players["p7"].stats.current_role == PlayerRole.DEFENDER


def test_pair_substitution_by_member_id_and_repeat_is_no_op() -> None:
    manager, formation, queue, players = pairs_setup("keep_throughout_period")
    result = manager.perform_substitution(formation, queue, players, outgoing_player_id="p5",
                                          now_epoch=T0)
    assert result.players_going_off == ["p4", "p5"]

    players = result.merge_players(players)
    again = manager.perform_substitution(result.formation, result.rotation_queue, players,
                                         outgoing_player_id="p5", now_epoch=T0)
    assert not again.applied


def test_pairs_mode_has_no_inactivation() -> None:
    manager, formation, queue, players = pairs_setup(None)
    with pytest.raises(InvalidActionError):
        manager.toggle_player_inactive(formation, queue, players, "p6", T0)


def test_pairs_goalie_cannot_be_substituted() -> None:
    manager, formation, queue, players = pairs_setup("keep_throughout_period")
    with pytest.raises(InvalidActionError) as excinfo:
        manager.perform_substitution(formation, queue, players, outgoing_player_id="p1", now_epoch=T0)
    assert excinfo.value.details == {"player_id": "p1"}
    assert queue.to_array() == ["left_pair", "right_pair"]
