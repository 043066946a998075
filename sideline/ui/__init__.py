"""
UI package for the sideline rotation engine.

This package contains the Flask web server exposing the match session.
"""
from .web_app import WebAppState, create_app, run_web_app

__all__ = ["WebAppState", "create_app", "run_web_app"]
