"""
Utilities package for the sideline rotation engine.

This package contains utility functions used throughout the application.
"""
from .time_utils import (
    fmt_mmss, now_ms, duration_seconds, is_valid_time_range,
    round_ms_to_seconds,
)
from .constants import (
    APP_TITLE, FORMAT_5V5, FORMAT_7V7, FIELD_PLAYERS_BY_FORMAT, GOALIE_COUNT,
    MIN_SQUAD_SIZE, DEFAULT_MAX_SQUAD_SIZE, MAX_SQUAD_SIZE_BY_FORMAT,
    FORMATIONS_BY_FORMAT, DEFAULT_FORMATION_BY_FORMAT, PAIRS_FORMAT,
    PAIRS_FORMATION, PAIRS_SQUAD_SIZE, DEFAULT_PERIOD_DURATION_MIN,
    DEFAULT_PERIOD_COUNT, DEFAULT_ALERT_MINUTES, EARLY_END_CONFIRM_SECONDS,
    FAIRNESS_THRESHOLD_SECONDS,
)
from .logging_config import setup_logging

__all__ = [
    "fmt_mmss", "now_ms", "duration_seconds", "is_valid_time_range",
    "round_ms_to_seconds", "APP_TITLE", "FORMAT_5V5", "FORMAT_7V7",
    "FIELD_PLAYERS_BY_FORMAT", "GOALIE_COUNT", "MIN_SQUAD_SIZE",
    "DEFAULT_MAX_SQUAD_SIZE", "MAX_SQUAD_SIZE_BY_FORMAT", "FORMATIONS_BY_FORMAT",
    "DEFAULT_FORMATION_BY_FORMAT", "PAIRS_FORMAT", "PAIRS_FORMATION",
    "PAIRS_SQUAD_SIZE", "DEFAULT_PERIOD_DURATION_MIN", "DEFAULT_PERIOD_COUNT",
    "DEFAULT_ALERT_MINUTES", "EARLY_END_CONFIRM_SECONDS", "FAIRNESS_THRESHOLD_SECONDS", "setup_logging",
]
