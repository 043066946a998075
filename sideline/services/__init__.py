"""
Services package for the sideline rotation engine.

This package contains the clock, stint accounting, substitution state machine,
match controller, event log, persistence and reporting services.
"""
from .clock import Clock, calculate_undo_timer_target, paused_ms_between
from .stint_manager import (
    update_player_time_stats, start_new_stint, complete_current_stint, close_stint,
)
from .formation_validator import FormationValidationService, ValidationResult
from .substitution_manager import SubstitutionManager, SubstitutionResult
from .game_event_logger import GameEventLogger, calculate_match_time
from .persistence_service import (
    PersistenceManager, JsonFilePersistenceManager, InMemoryPersistenceManager,
)
from .match_report_service import MatchReportService, FinalStatsExporter, calculate_match_outcome
from .match_session import MatchSession
from .service_factory import ServiceFactory

__all__ = [
    "Clock", "calculate_undo_timer_target", "paused_ms_between",
    "update_player_time_stats", "start_new_stint", "complete_current_stint",
    "close_stint", "FormationValidationService", "ValidationResult",
    "SubstitutionManager", "SubstitutionResult", "GameEventLogger",
    "calculate_match_time", "PersistenceManager", "JsonFilePersistenceManager",
    "InMemoryPersistenceManager", "MatchReportService", "FinalStatsExporter",
    "calculate_match_outcome", "MatchSession", "ServiceFactory",
]
