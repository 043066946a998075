"""
Stint accounting.

A stint is an uninterrupted interval in one role. These functions convert an
open stint into per-role seconds; they never mutate the player they are given.
"""
import logging
from typing import Optional

from ..models import Player, PlayerRole, PlayerStats
from ..utils import is_valid_time_range
from .clock import Clock

logger = logging.getLogger(__name__)


def _elapsed_ms(stats: PlayerStats, now_epoch: int, clock: Optional[Clock]) -> int:
    mark = stats.last_stint_start_time_epoch
    if not is_valid_time_range(mark, now_epoch):
        return 0
    if clock is None:
        return now_epoch - mark
    return clock.elapsed_since(mark, now_epoch)


def _credit(stats: PlayerStats, seconds: int) -> None:
    if seconds <= 0:
        return
    role = stats.current_role
    if role == PlayerRole.GOALIE:
        stats.time_as_goalie_seconds += seconds
    elif role == PlayerRole.DEFENDER:
        stats.time_as_defender_seconds += seconds
        stats.time_on_field_seconds += seconds
    elif role == PlayerRole.ATTACKER:
        stats.time_as_attacker_seconds += seconds
        stats.time_on_field_seconds += seconds
    elif role == PlayerRole.MIDFIELDER:
        stats.time_as_midfielder_seconds += seconds
        stats.time_on_field_seconds += seconds
    elif role == PlayerRole.SUBSTITUTE:
        stats.time_as_sub_seconds += seconds


def update_player_time_stats(player: Player, now_epoch: int, clock: Optional[Clock] = None,
                             *, settle: bool = False) -> PlayerStats:
    """
    Credit the open stint of ``player`` up to ``now_epoch``.

    Whole seconds are credited to the counter of the current role and the
    stint mark advances to ``now_epoch``; the sub-second remainder is carried
    to the next call. Calling twice with the same ``now_epoch`` changes
    nothing the second time.

    Args:
        player: Player snapshot
        now_epoch: Current time (epoch ms)
        clock: Pause-aware clock; without one the raw wall time is used
        settle: Close the stint remainder, rounding it half-up

    Returns:
        New PlayerStats (unchanged copy if no stint is open)
    """
    stats = player.stats.copy()
    if stats.last_stint_start_time_epoch is None:
        return stats

    total_ms = stats.stint_carry_ms + _elapsed_ms(stats, now_epoch, clock)
    seconds, carry = divmod(total_ms, 1000)
    if settle:
        if carry >= 500:
            seconds += 1
        carry = 0

    _credit(stats, seconds)
    stats.stint_carry_ms = carry
    stats.last_stint_start_time_epoch = max(now_epoch, stats.last_stint_start_time_epoch)
    return stats


def start_new_stint(player: Player, now_epoch: int) -> Player:
    """Open a fresh stint at ``now_epoch``."""
    stats = player.stats.copy()
    stats.last_stint_start_time_epoch = now_epoch
    stats.stint_carry_ms = 0
    return player.with_stats(stats)


def complete_current_stint(player: Player, now_epoch: int, clock: Optional[Clock] = None) -> Player:
    """Credit and settle the open stint, leaving the player accruing from ``now_epoch``."""
    return player.with_stats(update_player_time_stats(player, now_epoch, clock, settle=True))


def close_stint(player: Player, now_epoch: int, clock: Optional[Clock] = None) -> Player:
    """Credit and settle the open stint, then stop accruing."""
    stats = update_player_time_stats(player, now_epoch, clock, settle=True)
    stats.last_stint_start_time_epoch = None
    return player.with_stats(stats)
