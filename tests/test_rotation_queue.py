"""
Unit tests for the RotationQueue model.

Covers seeding from a formation, rotation, inactive removal and reinsertion,
and the ordering helpers used by the substitution manager.
"""
import unittest

import pytest

from sideline.errors import NotInQueueError, StateDesyncError
from sideline.models import Formation, Player, PlayerStats, RotationQueue, TeamConfig

SLOTS_5V5 = {
    "goalie": "p1",
    "left_defender": "p2",
    "right_defender": "p3",
    "left_attacker": "p4",
    "right_attacker": "p5",
    "substitute_1": "p6",
    "substitute_2": "p7",
}


def squad(*inactive):
    return {pid: Player(id=pid, stats=PlayerStats(is_inactive=pid in inactive)) for pid in SLOTS_5V5.values()}


class TestRotationQueueInitialize(unittest.TestCase):
    def setUp(self) -> None:
        self.team_config = TeamConfig(format="5v5", squad_size=7, formation="2-2")
        self.formation = Formation.for_team_config(self.team_config, SLOTS_5V5)

    def test_field_players_in_slot_order_then_bench(self) -> None:
        queue = RotationQueue.initialize(squad(), self.formation)
        self.assertEqual(queue.to_array(), ["p2", "p3", "p4", "p5", "p6", "p7"])
        self.assertNotIn("p1", queue)

    def test_inactive_substitutes_are_held_out(self) -> None:
        queue = RotationQueue.initialize(squad("p6"), self.formation)
        self.assertEqual(queue.to_array(), ["p2", "p3", "p4", "p5", "p7"])
        self.assertEqual(queue.inactive_players(), ["p6"])

        queue.reactivate("p6")
        self.assertEqual(queue.to_array()[-1], "p6")

    def test_accepts_iterable_of_players(self) -> None:
        queue = RotationQueue.initialize(list(squad().values()), self.formation)
        self.assertEqual(queue.size(), 6)

    def test_pairs_mode_queues_field_pairs(self) -> None:
        team_config = TeamConfig(format="5v5", squad_size=7, formation="2-2", substitution_type="pairs")
        formation = Formation.for_team_config(team_config, {
            "goalie": "p1",
            "left_pair.defender": "p2", "left_pair.attacker": "p3",
            "right_pair.defender": "p4", "right_pair.attacker": "p5",
            "sub_pair.defender": "p6", "sub_pair.attacker": "p7",
        })
        queue = RotationQueue.initialize(squad(), formation)
        self.assertEqual(queue.to_array(), ["left_pair", "right_pair"])


class TestRotationQueueOperations(unittest.TestCase):
    def setUp(self) -> None:
        self.queue = RotationQueue(entries=["a", "b", "c", "d"])

    def test_next_peeks_without_removing(self) -> None:
        self.assertEqual(self.queue.next(), "a")
        self.assertEqual(self.queue.next(2), ["a", "b"])
        self.assertEqual(len(self.queue), 4)
        self.assertIsNone(RotationQueue().next())

    def test_rotate_moves_entry_to_back(self) -> None:
        self.queue.rotate("b")
        self.assertEqual(self.queue.to_array(), ["a", "c", "d", "b"])
        with self.assertRaises(NotInQueueError):
            self.queue.rotate("z")

    def test_remove_returns_index(self) -> None:
        self.assertEqual(self.queue.remove("c"), 2)
        self.assertIsNone(self.queue.remove("c"))

    def test_deactivate_and_reactivate_restore_position(self) -> None:
        self.assertEqual(self.queue.deactivate("b"), 1)
        self.queue.rotate("a")
        self.assertEqual(self.queue.to_array(), ["c", "d", "a"])

        self.assertEqual(self.queue.reactivate("b"), 1)
        self.assertEqual(self.queue.to_array(), ["c", "b", "d", "a"])
        self.assertEqual(self.queue.inactive_players(), [])

    def test_reinsert_clamps_hint_and_rejects_duplicates(self) -> None:
        self.queue.remove("d")
        self.assertEqual(self.queue.reinsert_preserving_order("d", 99), 3)
        with self.assertRaises(StateDesyncError):
            self.queue.reinsert_preserving_order("a", 0)

    def test_move_to_front_and_insert_before(self) -> None:
        self.queue.move_to_front("c")
        self.assertEqual(self.queue.to_array(), ["c", "a", "b", "d"])
        self.queue.insert_before("d", "a")
        self.assertEqual(self.queue.to_array(), ["c", "d", "a", "b"])
        self.queue.insert_before("e", "c")
        self.assertEqual(self.queue.next(), "e")

    def test_stable_partition_keeps_relative_order(self) -> None:
        self.queue.stable_partition(["d", "b"])
        self.assertEqual(self.queue.to_array(), ["b", "d", "a", "c"])

    def test_clone_is_independent(self) -> None:
        clone = self.queue.clone()
        clone.rotate("a")
        self.assertEqual(self.queue.next(), "a")

    def test_dict_round_trip(self) -> None:
        self.queue.deactivate("c")
        restored = RotationQueue.from_dict(self.queue.to_dict())
        self.assertEqual(restored, self.queue)


def test_duplicate_entries_rejected() -> None:
    with pytest.raises(StateDesyncError):
        RotationQueue(entries=["a", "a"])


def test_from_dict_tolerates_missing_data() -> None:
    assert RotationQueue.from_dict(None).to_array() == []
    assert RotationQueue.from_dict({"entries": ["x"]}).inactive_players() == []
