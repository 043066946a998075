import unittest

from sideline.models import Player, PlayerRole, PlayerStats, TimerState
from sideline.services import (
    Clock, close_stint, complete_current_stint, start_new_stint, update_player_time_stats,
)

T0 = 1_700_000_000_000


def make_player(role: PlayerRole, mark=T0) -> Player:
    stats = PlayerStats(current_role=role, last_stint_start_time_epoch=mark)
    return Player(id="p1", name="Alex", stats=stats)


class UpdatePlayerTimeStatsTests(unittest.TestCase):
    def test_no_open_stint_returns_unchanged_copy(self) -> None:
        player = make_player(PlayerRole.DEFENDER, mark=None)
        stats = update_player_time_stats(player, T0 + 10_000)

        self.assertEqual(stats, player.stats)
        self.assertIsNot(stats, player.stats)

    def test_credits_role_and_field_counters(self) -> None:
        stats = update_player_time_stats(make_player(PlayerRole.DEFENDER), T0 + 30_000)

        self.assertEqual(stats.time_as_defender_seconds, 30)
        self.assertEqual(stats.time_on_field_seconds, 30)
        self.assertEqual(stats.time_as_attacker_seconds, 0)
        self.assertEqual(stats.time_as_goalie_seconds, 0)
        self.assertEqual(stats.time_as_sub_seconds, 0)
        self.assertEqual(stats.last_stint_start_time_epoch, T0 + 30_000)

    def test_goalie_and_bench_time_are_not_field_time(self) -> None:
        goalie = update_player_time_stats(make_player(PlayerRole.GOALIE), T0 + 20_000)
        self.assertEqual(goalie.time_as_goalie_seconds, 20)
        self.assertEqual(goalie.time_on_field_seconds, 0)
        self.assertEqual(goalie.floor_seconds, 20)

        sub = update_player_time_stats(make_player(PlayerRole.SUBSTITUTE), T0 + 20_000)
        self.assertEqual(sub.time_as_sub_seconds, 20)
        self.assertEqual(sub.floor_seconds, 0)

    def test_same_instant_twice_is_idempotent(self) -> None:
        player = make_player(PlayerRole.ATTACKER)
        once = player.with_stats(update_player_time_stats(player, T0 + 12_345))
        twice = update_player_time_stats(once, T0 + 12_345)

        self.assertEqual(twice, once.stats)
        self.assertEqual(twice.time_as_attacker_seconds, 12)

    def test_frequent_refreshes_do_not_drift(self) -> None:
        player = make_player(PlayerRole.MIDFIELDER)
        for step in range(1, 11):
            player = player.with_stats(update_player_time_stats(player, T0 + step * 700))

        self.assertEqual(player.stats.time_as_midfielder_seconds, 7)
        self.assertEqual(player.stats.stint_carry_ms, 0)

    def test_settle_rounds_remainder_half_up(self) -> None:
        carried = update_player_time_stats(make_player(PlayerRole.DEFENDER), T0 + 1_500)
        self.assertEqual(carried.time_as_defender_seconds, 1)
        self.assertEqual(carried.stint_carry_ms, 500)

        settled = update_player_time_stats(make_player(PlayerRole.DEFENDER), T0 + 1_500, settle=True)
        self.assertEqual(settled.time_as_defender_seconds, 2)
        self.assertEqual(settled.stint_carry_ms, 0)

        below_half = update_player_time_stats(make_player(PlayerRole.DEFENDER), T0 + 1_499, settle=True)
        self.assertEqual(below_half.time_as_defender_seconds, 1)

    def test_paused_time_is_not_credited(self) -> None:
        clock = Clock(TimerState())
        clock.start_period(T0)
        clock.pause(T0 + 600_000)
        clock.resume(T0 + 900_000)

        stats = update_player_time_stats(make_player(PlayerRole.DEFENDER), T0 + 920_000, clock)
        self.assertEqual(stats.time_on_field_seconds, 620)

    def test_input_player_is_not_mutated(self) -> None:
        player = make_player(PlayerRole.DEFENDER)
        update_player_time_stats(player, T0 + 5_000)
        self.assertEqual(player.stats.time_on_field_seconds, 0)
        self.assertEqual(player.stats.last_stint_start_time_epoch, T0)


def test_close_stint_stops_accruing() -> None:
    player = close_stint(make_player(PlayerRole.ATTACKER), T0 + 10_600)
    assert player.stats.time_as_attacker_seconds == 11
    assert player.stats.last_stint_start_time_epoch is None
    assert not player.stats.is_accruing

    later = update_player_time_stats(player, T0 + 60_000)
    assert later.time_as_attacker_seconds == 11


def test_complete_current_stint_keeps_accruing() -> None:
    player = complete_current_stint(make_player(PlayerRole.SUBSTITUTE), T0 + 3_000)
    assert player.stats.time_as_sub_seconds == 3
    assert player.stats.last_stint_start_time_epoch == T0 + 3_000


def test_start_new_stint_clears_carry() -> None:
    player = make_player(PlayerRole.GOALIE, mark=None)
    player.stats.stint_carry_ms = 400
    opened = start_new_stint(player, T0)
    assert opened.stats.last_stint_start_time_epoch == T0
    assert opened.stats.stint_carry_ms == 0
