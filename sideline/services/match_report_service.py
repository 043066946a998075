"""Final statistics and playing-time fairness reports."""

from __future__ import annotations

import csv
import io
import logging
from collections import Counter
from typing import List, Optional, Protocol

from ..errors import IncompleteMatchDataError, NoMatchIdError
from ..models import FinalStats, MatchState, Player, PlayerTimeSummary, role_priority
from ..utils import FAIRNESS_THRESHOLD_SECONDS

logger = logging.getLogger(__name__)

FAIRNESS_ORDER = {"under": 0, "ok": 1, "over": 2}


class ExportServiceInterface(Protocol):
    """Interface for final stats export."""

    def export_to_csv(self, stats: FinalStats) -> str:
        """Export final stats to CSV format."""
        ...


def calculate_match_outcome(goals_scored: int, goals_conceded: int) -> str:
    if goals_scored > goals_conceded:
        return "win"
    if goals_scored < goals_conceded:
        return "loss"
    return "draw"


class FinalStatsExporter:
    """Writes final stats as a CSV document."""

    def export_to_csv(self, stats: FinalStats) -> str:
        buffer = io.StringIO()
        writer = csv.writer(buffer, lineterminator="\n")

        writer.writerow(["Match", stats.match_id])
        writer.writerow(["Duration Seconds", stats.match_duration_seconds])
        writer.writerow(["Score", f"{stats.goals_scored}-{stats.goals_conceded}"])
        writer.writerow(["Outcome", stats.outcome])
        writer.writerow(["Periods Played", stats.periods_played])
        writer.writerow(["Players Under Target", stats.fairness_counts.get("under", 0)])
        writer.writerow(["Players On Target", stats.fairness_counts.get("ok", 0)])
        writer.writerow(["Players Over Target", stats.fairness_counts.get("over", 0)])
        writer.writerow([])

        writer.writerow([
            "Name", "Number", "Started As", "Starting Role", "Field Seconds",
            "Goalie Seconds", "Defender Seconds", "Midfielder Seconds",
            "Attacker Seconds", "Bench Seconds", "Goals", "Target Seconds",
            "Delta Seconds", "Fairness",
        ])
        for summary in stats.players:
            writer.writerow([
                summary.name,
                summary.jersey_number or "",
                summary.started_match_as or "",
                summary.started_at_role or "",
                summary.time_on_field_seconds,
                summary.time_as_goalie_seconds,
                summary.time_as_defender_seconds,
                summary.time_as_midfielder_seconds,
                summary.time_as_attacker_seconds,
                summary.time_as_sub_seconds,
                summary.goals,
                summary.target_seconds,
                summary.delta_seconds,
                summary.fairness,
            ])

        csv_text = buffer.getvalue()
        buffer.close()
        return csv_text


class MatchReportService:
    """
    Builds final stats from the accumulated player counters.

    Counters are the source of truth; nothing here re-derives time from
    wall-clock marks.
    """

    def __init__(self, state: MatchState, export_service: Optional[ExportServiceInterface] = None):
        self.state = state
        self.export_service = export_service or FinalStatsExporter()

    @staticmethod
    def _classify_fairness(delta_seconds: int) -> str:
        if delta_seconds < -FAIRNESS_THRESHOLD_SECONDS:
            return "under"
        if delta_seconds > FAIRNESS_THRESHOLD_SECONDS:
            return "over"
        return "ok"

    def _summarize(self, player: Player, target_seconds: int) -> PlayerTimeSummary:
        stats = player.stats
        delta = stats.time_on_field_seconds - target_seconds
        return PlayerTimeSummary(
            player_id=player.id,
            name=player.display_name,
            jersey_number=player.jersey_number,
            started_match_as=stats.started_match_as.value if stats.started_match_as else None,
            started_at_role=stats.started_at_role.value if stats.started_at_role else None,
            started_at_position=stats.started_at_position,
            current_role=stats.current_role.value,
            time_on_field_seconds=stats.time_on_field_seconds,
            time_as_goalie_seconds=stats.time_as_goalie_seconds,
            time_as_defender_seconds=stats.time_as_defender_seconds,
            time_as_attacker_seconds=stats.time_as_attacker_seconds,
            time_as_midfielder_seconds=stats.time_as_midfielder_seconds,
            time_as_sub_seconds=stats.time_as_sub_seconds,
            floor_seconds=stats.floor_seconds,
            goals=stats.goals,
            is_captain=stats.is_captain,
            is_inactive=stats.is_inactive,
            has_fair_play_award=stats.has_fair_play_award,
            target_seconds=target_seconds,
            delta_seconds=delta,
            fairness=self._classify_fairness(delta),
        )

    def player_summaries(self) -> List[PlayerTimeSummary]:
        """One summary per squad player, in roster order."""
        players = list(self.state.players.values())
        if not players:
            return []
        target = int(round(sum(p.stats.time_on_field_seconds for p in players) / len(players)))
        return [self._summarize(p, target) for p in players]

    def generate_fairness_report(self) -> List[PlayerTimeSummary]:
        """Summaries sorted with the most under-played players first."""
        summaries = self.player_summaries()
        summaries.sort(key=lambda item: (FAIRNESS_ORDER.get(item.fairness, 1), item.delta_seconds, item.name))
        return summaries

    def format_final_stats(self, match_duration_seconds: Optional[int] = None) -> FinalStats:
        """
        Assemble final stats for the match sync collaborator.

        Args:
            match_duration_seconds: Overrides the summed period durations

        Returns:
            FinalStats

        Raises:
            NoMatchIdError: The match has no id
            IncompleteMatchDataError: No period has started or the squad is empty
        """
        state = self.state
        if not state.match_id:
            raise NoMatchIdError("Match has no id; final stats cannot be saved")
        if state.match_start_time is None or not state.players:
            raise IncompleteMatchDataError("Match has not started; no stats to report",
                                           {"match_id": state.match_id})

        if match_duration_seconds is None:
            match_duration_seconds = sum(state.period_durations_seconds)

        summaries = self.player_summaries()
        summaries.sort(key=lambda s: (role_priority(state.players[s.player_id].stats.started_at_role), s.name))
        counter = Counter(s.fairness for s in summaries)
        fair_play = next((p.id for p in state.players.values() if p.stats.has_fair_play_award), None)

        stats = FinalStats(
            match_id=state.match_id,
            match_duration_seconds=int(match_duration_seconds),
            goals_scored=state.own_score,
            goals_conceded=state.opponent_score,
            outcome=calculate_match_outcome(state.own_score, state.opponent_score),
            periods_played=len(state.period_durations_seconds),
            fair_play_award_id=fair_play,
            players=summaries,
            fairness_counts={label: counter.get(label, 0) for label in ("under", "ok", "over")},
        )
        logger.info("Final stats for match %s: %s %d-%d", stats.match_id, stats.outcome,
                    stats.goals_scored, stats.goals_conceded)
        return stats

    def export_final_stats_csv(self, match_duration_seconds: Optional[int] = None) -> str:
        """Final stats as CSV through the injected exporter."""
        return self.export_service.export_to_csv(self.format_final_stats(match_duration_seconds))
