"""
Match session: the game-state controller.

A MatchSession owns one MatchState, the pause-aware Clock over its timer
marks, one GameEventLogger and a SubstitutionManager. Commands run the
manager against the current snapshot and commit the whole result, log one
event per transition and save through the PersistenceManager when one is
attached.
"""
import logging
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Union

from ..errors import (
    IncompleteMatchDataError, InvalidActionError, InvalidFormationError,
    PeriodNotFinishedError, StateDesyncError,
)
from ..models import (
    EventType, FinalStats, Formation, LastSubstitution, MatchState, PeriodState,
    Player, PlayerStats, TeamConfig,
)
from ..utils import EARLY_END_CONFIRM_SECONDS, duration_seconds, round_ms_to_seconds
from .clock import Clock, calculate_undo_timer_target
from .formation_validator import FormationValidationService
from .game_event_logger import GameEventLogger
from .match_report_service import MatchReportService
from .persistence_service import PersistenceManager
from .stint_manager import close_stint, start_new_stint, update_player_time_stats
from .substitution_manager import SubstitutionManager, SubstitutionResult

logger = logging.getLogger(__name__)

SNAPSHOT_VERSION = 1


class MatchSession:
    """
    Controller for a single match.

    Args:
        state: Existing match state (a fresh match when omitted)
        time_source: Callable returning epoch milliseconds
        event_logger: Event log to own (a fresh one when omitted)
        persistence: Where snapshots are saved after each command
        validation_service: Lineup and consistency rules
    """

    def __init__(self, state: Optional[MatchState] = None, *,
                 time_source: Optional[Callable[[], int]] = None,
                 event_logger: Optional[GameEventLogger] = None,
                 persistence: Optional[PersistenceManager] = None,
                 validation_service: Optional[FormationValidationService] = None):
        self._time_source = time_source
        self.persistence = persistence
        self.validation_service = validation_service or FormationValidationService()
        self._bind(state or MatchState(), event_logger)

    def _bind(self, state: MatchState, event_logger: Optional[GameEventLogger] = None) -> None:
        self.state = state
        self.clock = Clock(state.timer, self._time_source)
        self.event_logger = event_logger or GameEventLogger(
            state.match_start_time, time_source=self.clock.now)
        self.manager = SubstitutionManager(state.team_config, self.clock, self.validation_service)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------
    @property
    def period_state(self) -> PeriodState:
        return self.state.period_state

    @property
    def formation(self) -> Optional[Formation]:
        return self.state.formation

    @property
    def players(self) -> Dict[str, Player]:
        return self.state.players

    def _now(self, now: Optional[int]) -> int:
        return self.clock.now() if now is None else now

    def _timer_now(self, now: Optional[int]) -> int:
        if self.state.period_state == PeriodState.ENDED and self.state.timer.period_end_time is not None:
            return self.state.timer.period_end_time
        return self._now(now)

    def match_timer_seconds(self, now: Optional[int] = None) -> int:
        """Seconds left in the period (negative once it runs over)."""
        duration = self.state.period_duration_minutes * 60
        start = self.state.timer.period_start_time
        if start is None or self.state.period_state == PeriodState.NOT_STARTED:
            return duration
        return duration - self.clock.elapsed_seconds_since(start, self._timer_now(now))

    def sub_timer_seconds(self, now: Optional[int] = None) -> int:
        """Running seconds since the last substitution (or period start)."""
        mark = self.state.timer.last_substitution_time
        if mark is None or self.state.period_state == PeriodState.NOT_STARTED:
            return 0
        return self.clock.elapsed_seconds_since(mark, self._timer_now(now))

    def is_substitution_due(self, now: Optional[int] = None) -> bool:
        """True when the sub timer has reached the configured alert interval."""
        if self.state.alert_minutes <= 0 or self.state.period_state != PeriodState.RUNNING:
            return False
        return self.sub_timer_seconds(now) >= self.state.alert_minutes * 60

    @property
    def next_player_id_to_sub_out(self) -> Optional[str]:
        """Front of the rotation queue (a pair key in pairs mode)."""
        return self.state.rotation_queue.next()

    @property
    def next_next_player_id_to_sub_out(self) -> Optional[str]:
        upcoming = self.state.rotation_queue.next(2)
        return upcoming[1] if len(upcoming) > 1 else None

    @property
    def has_pending_undo(self) -> bool:
        return self.state.last_substitution is not None

    def summary(self, now: Optional[int] = None) -> Dict[str, Any]:
        """Plain-data view of the live match for display."""
        now = self._now(now)
        players = self.refresh_player_times(now)
        state = self.state
        return {
            "match_id": state.match_id,
            "period_state": state.period_state.value,
            "current_period": state.current_period,
            "period_count": state.period_count,
            "match_timer_seconds": self.match_timer_seconds(now),
            "sub_timer_seconds": self.sub_timer_seconds(now),
            "substitution_due": self.is_substitution_due(now),
            "next_player_id_to_sub_out": self.next_player_id_to_sub_out,
            "next_next_player_id_to_sub_out": self.next_next_player_id_to_sub_out,
            "has_pending_undo": self.has_pending_undo,
            "own_score": state.own_score,
            "opponent_score": state.opponent_score,
            "team_config": state.team_config.to_dict(),
            "formation": state.formation.to_dict()["slots"] if state.formation else None,
            "rotation_queue": state.rotation_queue.to_array(),
            "players": [p.to_dict() for p in players.values()],
        }

    # ------------------------------------------------------------------
    # Internal helpers
    # ------------------------------------------------------------------
    def _require_formation(self) -> Formation:
        if self.state.formation is None:
            raise InvalidActionError("No formation configured")
        return self.state.formation

    def _require_active(self) -> None:
        if not self.state.is_period_active:
            raise InvalidActionError(
                f"No period in progress (state: {self.state.period_state.value})",
                {"period_state": self.state.period_state.value},
            )

    def _require_not_over(self) -> None:
        if self.state.is_match_over:
            raise InvalidActionError("The match is over")

    def _log(self, event_type: EventType, now: int, data: Optional[Dict[str, Any]] = None,
             related_event_id: Optional[str] = None):
        return self.event_logger.log_event(event_type, data, timestamp=now,
                                           period_number=self.state.current_period,
                                           related_event_id=related_event_id)

    def _replace_player(self, player_id: str, stats: PlayerStats) -> None:
        self.state.players[player_id] = self.state.players[player_id].with_stats(stats)

    def _preview_start(self, player_ids: Iterable[str]) -> None:
        """Rewrite started_* fields of unlocked players from their current slot."""
        for player_id in player_ids:
            stats = self.state.players[player_id].stats.copy()
            if stats.start_locked:
                continue
            stats.started_match_as = stats.current_status
            stats.started_at_role = stats.current_role
            stats.started_at_position = stats.current_position
            self._replace_player(player_id, stats)

    def _commit(self, result: SubstitutionResult) -> None:
        self.state.formation = result.formation
        self.state.rotation_queue = result.rotation_queue
        self.state.players = result.merge_players(self.state.players)

    def _persist(self) -> None:
        if self.persistence is not None and not self.save():
            logger.warning("Match state could not be saved")

    # ------------------------------------------------------------------
    # Period lifecycle
    # ------------------------------------------------------------------
    def configure_period(self, team_config: TeamConfig,
                         formation: Union[Formation, Mapping[str, Optional[str]]],
                         players: Union[Mapping[str, Player], Iterable[Player]], *,
                         period_duration_minutes: Optional[int] = None,
                         period_count: Optional[int] = None,
                         alert_minutes: Optional[int] = None,
                         match_id: Optional[str] = None) -> None:
        """
        Save the lineup for the next period.

        Validates the lineup, assigns every player's role, status and slot
        from the formation and seeds the rotation queue. Starting fields are
        only rewritten for players whose start is not yet locked.

        Raises:
            InvalidActionError: A period is in progress or the match is over
            InvalidFormationError: The lineup fails validation
        """
        if self.state.is_period_active:
            raise InvalidActionError("Cannot reconfigure while a period is in progress")
        self._require_not_over()

        if not isinstance(formation, Formation):
            formation = Formation.for_team_config(team_config, dict(formation))
        if isinstance(players, Mapping):
            incoming = list(players.values())
        else:
            incoming = list(players)

        squad: Dict[str, Player] = {}
        for player in incoming:
            existing = self.state.players.get(player.id)
            if existing is not None:
                squad[player.id] = Player(id=player.id, name=player.name or existing.name,
                                          jersey_number=player.jersey_number or existing.jersey_number,
                                          stats=existing.stats.copy())
            else:
                squad[player.id] = player.copy()

        manager = SubstitutionManager(team_config, self.clock, self.validation_service)
        rotation_queue = manager.initialize(formation, squad, team_config)

        for slot_key, player_id in formation.items():
            if not player_id:
                continue
            stats = squad[player_id].stats.copy()
            definition = formation.definition(slot_key)
            stats.current_role = definition.role
            stats.current_status = definition.status
            stats.current_position = slot_key
            squad[player_id] = squad[player_id].with_stats(stats)

        if self.state.period_state == PeriodState.ENDED:
            self.state.current_period += 1
            self.state.period_state = PeriodState.NOT_STARTED

        self.state.team_config = team_config
        self.state.formation = formation
        self.state.rotation_queue = rotation_queue
        self.state.players = squad
        self.state.last_substitution = None
        self.manager = manager
        if period_duration_minutes is not None:
            self.state.period_duration_minutes = max(1, int(period_duration_minutes))
        if period_count is not None:
            self.state.period_count = max(self.state.current_period, int(period_count))
        if alert_minutes is not None:
            self.state.alert_minutes = max(0, int(alert_minutes))
        if match_id is not None:
            self.state.match_id = match_id
        self._preview_start(squad)

        logger.info("Period %d configured: %s %s, goalie %s", self.state.current_period,
                    team_config.format, team_config.formation, formation.goalie)
        self._persist()

    def start_period(self, now: Optional[int] = None) -> None:
        """
        Start the configured period.

        The first start of the match captures and locks every player's
        starting status, role and slot.

        Raises:
            InvalidActionError: Not in NOT_STARTED state or nothing configured
            InvalidFormationError: The lineup no longer validates
        """
        if self.state.period_state != PeriodState.NOT_STARTED:
            raise InvalidActionError(f"Cannot start a period from state {self.state.period_state.value}")
        formation = self._require_formation()
        result = self.validation_service.validate_lineup(self.state.team_config, formation, self.state.players)
        if not result.is_valid:
            logger.warning("Period start blocked: %s", "; ".join(result.errors))
            raise InvalidFormationError(result.errors)
        self.manager.verify_consistency(formation, self.state.rotation_queue, self.state.players)

        now = self.clock.start_period(self._now(now))
        for player_id, player in list(self.state.players.items()):
            stats = player.stats.copy()
            stats.stint_carry_ms = 0
            stats.last_stint_start_time_epoch = None if stats.is_inactive else now
            if not stats.start_locked:
                stats.started_match_as = stats.current_status
                stats.started_at_role = stats.current_role
                stats.started_at_position = stats.current_position
                stats.start_locked = True
            self._replace_player(player_id, stats)

        if self.state.match_start_time is None:
            self.state.match_start_time = now
            self._log(EventType.MATCH_START, now, {
                "match_id": self.state.match_id,
                "team_config": self.state.team_config.to_dict(),
                "period_count": self.state.period_count,
                "period_duration_minutes": self.state.period_duration_minutes,
            })
        self.state.period_state = PeriodState.RUNNING
        self._log(EventType.PERIOD_START, now, {
            "period": self.state.current_period,
            "formation": dict(formation.slots),
            "rotation_queue": self.state.rotation_queue.to_array(),
        })
        logger.info("Period %d started", self.state.current_period)
        self._persist()

    def pause(self, now: Optional[int] = None) -> bool:
        """Pause the period; returns False if it was already paused."""
        if self.state.period_state == PeriodState.PAUSED:
            logger.info("Pause ignored: already paused")
            return False
        if self.state.period_state != PeriodState.RUNNING:
            raise InvalidActionError(f"Cannot pause from state {self.state.period_state.value}")
        now = self._now(now)
        self.clock.pause(now)
        self.state.period_state = PeriodState.PAUSED
        self._log(EventType.TIMER_PAUSED, now, {
            "sub_timer_seconds": self.sub_timer_seconds(now),
            "match_timer_seconds": self.match_timer_seconds(now),
        })
        logger.info("Period %d paused", self.state.current_period)
        self._persist()
        return True

    def resume(self, now: Optional[int] = None) -> bool:
        """Resume a paused period; returns False if it was not paused."""
        if self.state.period_state == PeriodState.RUNNING:
            logger.info("Resume ignored: not paused")
            return False
        if self.state.period_state != PeriodState.PAUSED:
            raise InvalidActionError(f"Cannot resume from state {self.state.period_state.value}")
        now = self._now(now)
        pause_started = self.state.timer.pause_start_time
        self.clock.resume(now)
        self.state.period_state = PeriodState.RUNNING
        self._log(EventType.TIMER_RESUMED, now, {"paused_seconds": duration_seconds(pause_started, now)})
        logger.info("Period %d resumed", self.state.current_period)
        self._persist()
        return True

    def end_period(self, now: Optional[int] = None, *, confirm_early: bool = False) -> None:
        """
        End the period and close every open stint.

        Raises:
            PeriodNotFinishedError: Over a minute remains and ``confirm_early`` is False
            InvalidActionError: No period in progress
        """
        self._require_active()
        now = self._now(now)
        remaining = self.match_timer_seconds(now)
        if remaining > EARLY_END_CONFIRM_SECONDS and not confirm_early:
            logger.warning("End of period %d requested with %d seconds remaining",
                           self.state.current_period, remaining)
            raise PeriodNotFinishedError(remaining)

        self.clock.end_period(now)
        for player_id, player in list(self.state.players.items()):
            self.state.players[player_id] = close_stint(player, now, self.clock)

        duration = round_ms_to_seconds(self.clock.elapsed_since(self.state.timer.period_start_time, now))
        self.state.period_durations_seconds.append(duration)
        self.state.period_state = PeriodState.ENDED
        self.state.last_substitution = None
        self._log(EventType.PERIOD_END, now, {"period": self.state.current_period, "duration_seconds": duration})
        logger.info("Period %d ended after %d seconds", self.state.current_period, duration)

        if self.state.current_period >= self.state.period_count:
            self.state.match_end_time = now
            self._log(EventType.MATCH_END, now, {
                "own_score": self.state.own_score,
                "opponent_score": self.state.opponent_score,
            })
            logger.info("Match ended %d-%d", self.state.own_score, self.state.opponent_score)
        self._persist()

    def refresh_player_times(self, now: Optional[int] = None) -> Dict[str, Player]:
        """Credit every open stint up to ``now`` and return the squad."""
        if not self.state.is_period_active:
            return self.state.players
        now = self._now(now)
        for player_id, player in list(self.state.players.items()):
            if player.stats.is_accruing:
                self._replace_player(player_id, update_player_time_stats(player, now, self.clock))
        return self.state.players

    # ------------------------------------------------------------------
    # Substitutions
    # ------------------------------------------------------------------
    def perform_substitution(self, outgoing_player_id: Optional[str] = None,
                             incoming_player_id: Optional[str] = None, *,
                             expected_next_id: Optional[str] = None,
                             now: Optional[int] = None) -> SubstitutionResult:
        """
        Substitute the next player (or pair) and remember how to undo it.

        Args:
            outgoing_player_id: Player or pair key to take off (default: queue front)
            incoming_player_id: Substitute to bring on (default: first active)
            expected_next_id: Queue front the caller saw; a mismatch means the
                request was already handled and nothing happens
            now: Swap instant (epoch ms)
        """
        self._require_active()
        formation = self._require_formation()
        now = self._now(now)
        queue = self.state.rotation_queue

        if outgoing_player_id is None and expected_next_id is not None and queue.next() != expected_next_id:
            logger.info("Substitution skipped: %s is no longer next", expected_next_id)
            return SubstitutionResult(formation=formation.copy(), rotation_queue=queue.clone(),
                                      timestamp=now, applied=False)

        sub_timer = self.sub_timer_seconds(now)
        result = self.manager.perform_substitution(formation, queue, self.state.players,
                                                   outgoing_player_id, incoming_player_id, now)
        if not result.applied:
            return result

        event = self._log(EventType.SUBSTITUTION, now, {
            "players_going_off": list(result.players_going_off),
            "players_coming_on": list(result.players_coming_on),
            "sub_timer_seconds": sub_timer,
        })
        self.state.last_substitution = LastSubstitution(
            timestamp=now,
            sub_timer_seconds=sub_timer,
            before_formation=formation.copy(),
            before_rotation_queue=queue.clone(),
            before_players={pid: self.state.players[pid].copy() for pid in result.updated_players},
            before_last_substitution_time=self.state.timer.last_substitution_time,
            before_second_last_substitution_time=self.state.timer.second_last_substitution_time,
            players_going_off=list(result.players_going_off),
            players_coming_on=list(result.players_coming_on),
            event_id=event.id,
        )
        self._commit(result)
        self.clock.record_substitution(now)
        self._persist()
        return result

    def undo_substitution(self, now: Optional[int] = None) -> int:
        """
        Undo the most recent substitution.

        Restores the formation, queue and touched players from before the
        swap and sets the sub timer to its recalculated value.

        Returns:
            The restored sub timer value in seconds

        Raises:
            InvalidActionError: No substitution to undo
        """
        last = self.state.last_substitution
        if last is None:
            logger.warning("Undo requested with no pending substitution")
            raise InvalidActionError("No substitution to undo")
        now = self._now(now)
        target = calculate_undo_timer_target(last.sub_timer_seconds, last.timestamp, now,
                                             self.clock.pause_intervals(now))

        self.state.formation = last.before_formation.copy()
        self.state.rotation_queue = last.before_rotation_queue.clone()
        for player_id, player in last.before_players.items():
            self.state.players[player_id] = self._undo_swap_for(player, self.state.players.get(player_id))
        self.state.timer.last_substitution_time = self.clock.mark_for_elapsed(target * 1000, now)
        self.state.timer.second_last_substitution_time = last.before_second_last_substitution_time
        self.state.last_substitution = None

        if last.event_id:
            self.event_logger.mark_event_as_undone(last.event_id, "user_action", now)
        self._log(EventType.SUBSTITUTION_UNDONE, now, {
            "players_going_off": list(last.players_going_off),
            "players_coming_on": list(last.players_coming_on),
            "sub_timer_seconds": target,
        }, related_event_id=last.event_id)
        logger.info("Substitution undone; sub timer restored to %d s", target)
        self._persist()
        return target

    @staticmethod
    def _undo_swap_for(before: Player, current: Optional[Player]) -> Player:
        """Pre-swap record carrying goals, awards and captaincy recorded since."""
        restored = before.copy()
        if current is not None:
            restored.stats.goals = current.stats.goals
            restored.stats.has_fair_play_award = current.stats.has_fair_play_award
            restored.stats.is_captain = current.stats.is_captain
        return restored

    def switch_positions(self, player_a: str, player_b: str, now: Optional[int] = None) -> SubstitutionResult:
        """Swap two outfield players' positions, or two substitutes' bench order."""
        self._require_not_over()
        formation = self._require_formation()
        now = self._now(now)
        result = self.manager.switch_positions(formation, self.state.rotation_queue, self.state.players,
                                               player_a, player_b, now)
        self._commit(result)
        self.state.last_substitution = None
        self._preview_start(result.updated_players)
        self._log(EventType.POSITION_CHANGE, now, {
            "players": [player_a, player_b],
            "positions": {pid: p.stats.current_position for pid, p in result.updated_players.items()},
        })
        self._persist()
        return result

    def swap_substitutes(self, player_a: str, player_b: str, now: Optional[int] = None) -> SubstitutionResult:
        """Reorder two substitutes on the bench and in the queue."""
        formation = self._require_formation()
        if not (formation.is_substitute(player_a) and formation.is_substitute(player_b)):
            raise InvalidActionError("Both players must be substitutes")
        return self.switch_positions(player_a, player_b, now)

    def switch_goalie(self, new_goalie_id: str, now: Optional[int] = None, *,
                      expected_goalie_id: Optional[str] = None) -> SubstitutionResult:
        """
        Put ``new_goalie_id`` in goal.

        Args:
            new_goalie_id: Player taking over in goal
            now: Switch instant (epoch ms)
            expected_goalie_id: Goalie the caller saw; defaults to the current one
        """
        self._require_not_over()
        formation = self._require_formation()
        now = self._now(now)
        outgoing = expected_goalie_id or formation.goalie
        result = self.manager.switch_goalie(formation, self.state.rotation_queue, self.state.players,
                                            outgoing, new_goalie_id, now)
        if not result.applied:
            return result
        self._commit(result)
        self.state.last_substitution = None
        self._preview_start(result.updated_players)
        self._log(EventType.GOALIE_SWITCH, now, {
            "old_goalie": outgoing,
            "new_goalie": new_goalie_id,
            "old_goalie_position": result.updated_players[outgoing].stats.current_position,
        })
        self._persist()
        return result

    def toggle_player_inactive(self, player_id: str, now: Optional[int] = None) -> SubstitutionResult:
        """Make a substitute inactive, or bring them back into the rotation."""
        self._require_not_over()
        formation = self._require_formation()
        now = self._now(now)
        was_inactive = self.state.players.get(player_id) is not None and \
            self.state.players[player_id].stats.is_inactive
        result = self.manager.toggle_player_inactive(formation, self.state.rotation_queue, self.state.players,
                                                     player_id, now, accruing=self.state.is_period_active)
        self._commit(result)
        self.state.last_substitution = None
        self._preview_start(result.updated_players)
        event_type = EventType.PLAYER_ACTIVATED if was_inactive else EventType.PLAYER_INACTIVATED
        self._log(event_type, now, {
            "player_id": player_id,
            "rotation_queue": self.state.rotation_queue.to_array(),
        })
        self._persist()
        return result

    def set_next_to_sub_out(self, entry_id: str) -> List[str]:
        """
        Move a field player (or field pair) to the front of the queue.

        Returns:
            The new queue order
        """
        formation = self._require_formation()
        if formation.is_pairs and entry_id not in formation.pair_keys():
            entry_id = formation.pair_of(entry_id) or entry_id
        if formation.is_pairs:
            if entry_id not in formation.pair_keys():
                raise InvalidActionError(f"'{entry_id}' is not a field pair", {"entry_id": entry_id})
        elif not formation.is_on_field(entry_id):
            raise InvalidActionError(f"'{entry_id}' is not an outfield player", {"entry_id": entry_id})

        queue = self.state.rotation_queue.clone()
        queue.move_to_front(entry_id)
        self.state.rotation_queue = queue
        self.state.last_substitution = None
        logger.info("%s set as next to come off", entry_id)
        self._persist()
        return queue.to_array()

    # ------------------------------------------------------------------
    # Score and awards
    # ------------------------------------------------------------------
    def record_goal(self, scored_by_own_team: bool = True, scorer_id: Optional[str] = None,
                    now: Optional[int] = None) -> str:
        """
        Record a goal for or against.

        Returns:
            Id of the logged goal event
        """
        self._require_active()
        now = self._now(now)
        if scorer_id is not None:
            if scorer_id not in self.state.players:
                raise InvalidActionError(f"Unknown player '{scorer_id}'", {"player_id": scorer_id})
            if not scored_by_own_team:
                raise InvalidActionError("Conceded goals have no scorer from this team")

        if scored_by_own_team:
            self.state.own_score += 1
            if scorer_id is not None:
                stats = self.state.players[scorer_id].stats.copy()
                stats.goals += 1
                self._replace_player(scorer_id, stats)
            event_type = EventType.GOAL_SCORED
        else:
            self.state.opponent_score += 1
            event_type = EventType.GOAL_CONCEDED

        event = self._log(event_type, now, {
            "scorer_id": scorer_id,
            "own_score": self.state.own_score,
            "opponent_score": self.state.opponent_score,
        })
        self.state.goal_event_ids.append(event.id)
        logger.info("Goal %s: %d-%d", "scored" if scored_by_own_team else "conceded",
                    self.state.own_score, self.state.opponent_score)
        self._persist()
        return event.id

    def undo_last_goal(self, now: Optional[int] = None) -> None:
        """Take back the most recently recorded goal."""
        if not self.state.goal_event_ids:
            raise InvalidActionError("No goal to undo")
        now = self._now(now)
        event_id = self.state.goal_event_ids[-1]
        event = self.event_logger.get_event_by_id(event_id)
        if event is None:
            logger.error("Goal event %s missing from the event log", event_id)
            raise StateDesyncError("Goal event is missing from the event log", {"event_id": event_id})

        self.state.goal_event_ids.pop()
        if event.type == EventType.GOAL_SCORED:
            self.state.own_score = max(0, self.state.own_score - 1)
            scorer_id = event.data.get("scorer_id")
            if scorer_id in self.state.players:
                stats = self.state.players[scorer_id].stats.copy()
                stats.goals = max(0, stats.goals - 1)
                self._replace_player(scorer_id, stats)
        else:
            self.state.opponent_score = max(0, self.state.opponent_score - 1)

        self.event_logger.mark_event_as_undone(event_id, "user_action", now)
        self._log(EventType.GOAL_UNDONE, now, {
            "own_score": self.state.own_score,
            "opponent_score": self.state.opponent_score,
        }, related_event_id=event_id)
        logger.info("Goal undone: %d-%d", self.state.own_score, self.state.opponent_score)
        self._persist()

    def award_fair_play(self, player_id: Optional[str], now: Optional[int] = None) -> None:
        """Give the fair play award to ``player_id`` (None clears it)."""
        if player_id is not None and player_id not in self.state.players:
            raise InvalidActionError(f"Unknown player '{player_id}'", {"player_id": player_id})
        for pid, player in list(self.state.players.items()):
            awarded = pid == player_id
            if player.stats.has_fair_play_award != awarded:
                stats = player.stats.copy()
                stats.has_fair_play_award = awarded
                self._replace_player(pid, stats)
        self._log(EventType.FAIR_PLAY_AWARD, self._now(now), {"player_id": player_id})
        self._persist()

    # ------------------------------------------------------------------
    # Reporting and persistence
    # ------------------------------------------------------------------
    def format_final_stats(self, match_duration_seconds: Optional[int] = None) -> FinalStats:
        """Final stats for the match sync collaborator."""
        if self.state.is_period_active:
            raise IncompleteMatchDataError("End the period before reporting final stats")
        return MatchReportService(self.state).format_final_stats(match_duration_seconds)

    def snapshot(self) -> Dict[str, Any]:
        """Plain-data snapshot of the whole session."""
        return {
            "version": SNAPSHOT_VERSION,
            "state": self.state.to_json(),
            "events": self.event_logger.to_list(),
        }

    def save(self) -> bool:
        """Save the snapshot through the attached persistence manager."""
        if self.persistence is None:
            logger.warning("Save requested without a persistence manager")
            return False
        return self.persistence.save_state(self.snapshot())

    def reset_match(self) -> None:
        """Tear down the match and its event log and start a fresh one."""
        logger.info("Match %s reset", self.state.match_id)
        self._bind(MatchState())
        self._persist()

    @classmethod
    def restore(cls, persistence: PersistenceManager, *,
                time_source: Optional[Callable[[], int]] = None,
                validation_service: Optional[FormationValidationService] = None) -> "MatchSession":
        """
        Rebuild a session from the persisted snapshot.

        A missing or unreadable snapshot gives a fresh match; missing fields
        fall back to their defaults.
        """
        data = persistence.load_state() or {}
        try:
            state = MatchState.from_json(data.get("state"))
        except (KeyError, TypeError, ValueError, StateDesyncError) as exc:
            logger.error("Saved match state is unusable, starting fresh: %s", exc)
            state = MatchState()
            data = {}

        session = cls(state, time_source=time_source, persistence=persistence,
                      validation_service=validation_service)
        session.event_logger.load(data.get("events"))
        if session.event_logger.match_start_time is None:
            session.event_logger.match_start_time = state.match_start_time
        logger.info("Match %s restored in state %s", state.match_id, state.period_state.value)
        return session
