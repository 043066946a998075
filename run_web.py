#!/usr/bin/env python3
"""
Main entry point for the sideline rotation engine web API.

This script sets up logging and launches the Flask-based web server, saving
the match to the configured state file after every command.
"""
from sideline import config
from sideline.services import JsonFilePersistenceManager
from sideline.ui.web_app import run_web_app
from sideline.utils import setup_logging

if __name__ == "__main__":
    setup_logging(config.LOG_LEVEL, config.LOG_FILE)
    run_web_app(host=config.WEB_HOST, port=config.WEB_PORT,
                persistence=JsonFilePersistenceManager(config.STATE_FILE))
