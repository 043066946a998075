"""
Sideline Rotation Engine

Substitution and playing-time fairness engine for youth sport. Tracks every
player's stints on the field, in goal and on the bench, suggests who comes
off next and keeps minutes fair across the squad.

This package provides the engine services and a Flask JSON API for the
sideline device.
"""
from .models import Player, MatchState, TeamConfig, Formation
from .services import MatchSession, ServiceFactory
from .ui import create_app, run_web_app
from .utils import fmt_mmss, now_ms, APP_TITLE

__version__ = "1.0.0"

__all__ = [
    "Player", "MatchState", "TeamConfig", "Formation", "MatchSession",
    "ServiceFactory", "create_app", "run_web_app", "fmt_mmss", "now_ms",
    "APP_TITLE",
]
