"""
Web application module for the sideline rotation engine.

This module contains the Flask server exposing the match session's command
surface and read-only timers as JSON API endpoints.
"""
import logging
from typing import Any, Callable, Dict, Optional

from flask import Flask, Response, jsonify, request

from ..errors import (
    InvalidActionError, InvalidFormationError, MatchDataError,
    NoEligibleSubstituteError, NoMatchIdError, SidelineError, StateDesyncError,
)
from ..models import Player, TeamConfig
from ..services import PersistenceManager, ServiceFactory, SubstitutionResult
from ..services.match_session import MatchSession

logger = logging.getLogger(__name__)


class WebAppState:
    """
    State holder for the web application.

    Owns the service factory and the single match session served by the API.
    """

    def __init__(self, persistence: Optional[PersistenceManager] = None,
                 time_source: Optional[Callable[[], int]] = None):
        self.service_factory = ServiceFactory(time_source=time_source)
        self.persistence = persistence
        if persistence is not None:
            self.session = self.service_factory.restore_match_session(persistence)
        else:
            self.session = self.service_factory.create_match_session()

    def reset_match(self) -> None:
        self.session.reset_match()


class BadRequestError(SidelineError):
    """Raised when a request body is missing fields or has wrong types."""


def _status_for(error: SidelineError) -> int:
    if isinstance(error, StateDesyncError):
        return 500
    if isinstance(error, (NoEligibleSubstituteError, InvalidActionError)):
        return 409
    if isinstance(error, MatchDataError) and not isinstance(error, NoMatchIdError):
        return 409
    return 400


def _body() -> Dict[str, Any]:
    data = request.get_json(silent=True)
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise BadRequestError("Request body must be a JSON object")
    return data


def _result_data(result: SubstitutionResult) -> Dict[str, Any]:
    return {
        "applied": result.applied,
        "players_going_off": result.players_going_off,
        "players_coming_on": result.players_coming_on,
        "formation": dict(result.formation.slots),
        "rotation_queue": result.rotation_queue.to_array(),
    }


def create_app(web_state: Optional[WebAppState] = None) -> Flask:
    """
    Create and configure the Flask application with API endpoints.

    Args:
        web_state: State holder to serve; a fresh in-memory match when omitted

    Returns:
        Configured Flask application instance
    """
    app = Flask(__name__)
    state = web_state or WebAppState()
    app.config["WEB_STATE"] = state

    def session() -> MatchSession:
        return state.session

    @app.errorhandler(SidelineError)
    def handle_engine_error(error: SidelineError):
        status = _status_for(error)
        if status >= 500:
            logger.error("%s: %s", type(error).__name__, error.message)
        else:
            logger.warning("%s: %s", type(error).__name__, error.message)
        details = error.details
        if isinstance(error, InvalidFormationError):
            details = error.errors
        return jsonify({
            "success": False,
            "error": type(error).__name__,
            "message": error.message,
            "details": details,
        }), status

    # ==================== Read-only ==================== #

    @app.route("/api/state", methods=["GET"])
    def get_state():
        return jsonify({"success": True, "state": session().summary()})

    @app.route("/api/events", methods=["GET"])
    def get_events():
        include_undone = request.args.get("include_undone", "0").lower() in ("1", "true", "yes")
        events = session().event_logger.get_match_events(include_undone=include_undone)
        return jsonify({"success": True, "events": [e.to_dict() for e in events]})

    @app.route("/api/final-stats", methods=["GET"])
    def get_final_stats():
        duration = request.args.get("match_duration_seconds", type=int)
        stats = session().format_final_stats(duration)
        if request.args.get("format") == "csv":
            csv_text = state.service_factory.create_report_service(session().state) \
                .export_service.export_to_csv(stats)
            return Response(csv_text, mimetype="text/csv")
        return jsonify({"success": True, "final_stats": stats.to_dict()})

    # ==================== Period lifecycle ==================== #

    @app.route("/api/period/configure", methods=["POST"])
    def configure_period():
        data = _body()
        try:
            team_config = TeamConfig.from_dict(data["team_config"])
            formation = dict(data["formation"])
            players = [Player(id=str(p["id"]), name=p.get("name", ""), jersey_number=p.get("jersey_number"))
                       for p in data["players"]]
        except (KeyError, TypeError, ValueError) as exc:
            raise BadRequestError(f"Invalid configuration payload: {exc}") from exc
        try:
            session().configure_period(
                team_config, formation, players,
                period_duration_minutes=data.get("period_duration_minutes"),
                period_count=data.get("period_count"),
                alert_minutes=data.get("alert_minutes"),
                match_id=data.get("match_id"),
            )
        except ValueError as exc:
            raise InvalidFormationError([str(exc)]) from exc
        return jsonify({"success": True, "state": session().summary()})

    @app.route("/api/period/start", methods=["POST"])
    def start_period():
        session().start_period()
        return jsonify({"success": True, "message": f"Period {session().state.current_period} started"})

    @app.route("/api/period/pause", methods=["POST"])
    def pause_period():
        changed = session().pause()
        return jsonify({"success": True, "changed": changed})

    @app.route("/api/period/resume", methods=["POST"])
    def resume_period():
        changed = session().resume()
        return jsonify({"success": True, "changed": changed})

    @app.route("/api/period/end", methods=["POST"])
    def end_period():
        data = _body()
        session().end_period(confirm_early=bool(data.get("confirm_early", False)))
        return jsonify({"success": True, "period_state": session().period_state.value})

    @app.route("/api/match/reset", methods=["POST"])
    def reset_match():
        state.reset_match()
        return jsonify({"success": True, "message": "Match reset"})

    # ==================== Rotation commands ==================== #

    @app.route("/api/substitution", methods=["POST"])
    def perform_substitution():
        data = _body()
        result = session().perform_substitution(
            data.get("outgoing_player_id"),
            data.get("incoming_player_id"),
            expected_next_id=data.get("expected_next_id"),
        )
        return jsonify({"success": True, "result": _result_data(result)})

    @app.route("/api/substitution/undo", methods=["POST"])
    def undo_substitution():
        target = session().undo_substitution()
        return jsonify({"success": True, "sub_timer_seconds": target})

    @app.route("/api/positions/switch", methods=["POST"])
    def switch_positions():
        data = _body()
        if not data.get("player_a") or not data.get("player_b"):
            raise BadRequestError("player_a and player_b are required")
        result = session().switch_positions(str(data["player_a"]), str(data["player_b"]))
        return jsonify({"success": True, "result": _result_data(result)})

    @app.route("/api/goalie", methods=["POST"])
    def switch_goalie():
        data = _body()
        if not data.get("new_goalie_id"):
            raise BadRequestError("new_goalie_id is required")
        result = session().switch_goalie(str(data["new_goalie_id"]),
                                         expected_goalie_id=data.get("expected_goalie_id"))
        return jsonify({"success": True, "result": _result_data(result)})

    @app.route("/api/players/<player_id>/inactive", methods=["POST"])
    def toggle_player_inactive(player_id: str):
        result = session().toggle_player_inactive(player_id)
        player = session().players[player_id]
        return jsonify({
            "success": True,
            "is_inactive": player.stats.is_inactive,
            "result": _result_data(result),
        })

    @app.route("/api/queue/next", methods=["POST"])
    def set_next_to_sub_out():
        data = _body()
        if not data.get("entry_id"):
            raise BadRequestError("entry_id is required")
        queue = session().set_next_to_sub_out(str(data["entry_id"]))
        return jsonify({"success": True, "rotation_queue": queue})

    # ==================== Score and awards ==================== #

    @app.route("/api/goals", methods=["POST"])
    def record_goal():
        data = _body()
        event_id = session().record_goal(bool(data.get("scored_by_own_team", True)), data.get("scorer_id"))
        return jsonify({
            "success": True,
            "event_id": event_id,
            "own_score": session().state.own_score,
            "opponent_score": session().state.opponent_score,
        })

    @app.route("/api/goals/undo", methods=["POST"])
    def undo_last_goal():
        session().undo_last_goal()
        return jsonify({
            "success": True,
            "own_score": session().state.own_score,
            "opponent_score": session().state.opponent_score,
        })

    @app.route("/api/fair-play", methods=["POST"])
    def award_fair_play():
        data = _body()
        session().award_fair_play(data.get("player_id"))
        return jsonify({"success": True, "player_id": data.get("player_id")})

    return app


def run_web_app(host: str = "127.0.0.1", port: int = 7122,
                persistence: Optional[PersistenceManager] = None) -> None:
    """
    Run the web application.

    Args:
        host: Host address to bind to (default: localhost only)
        port: Port number to listen on
        persistence: Where the match is saved after each command
    """
    app = create_app(WebAppState(persistence=persistence))
    logger.info("Serving sideline API on http://%s:%d", host, port)
    app.run(host=host, port=port, debug=False)
