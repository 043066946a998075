"""
Runtime configuration, read from the environment (and a local .env file).
"""
import os
from pathlib import Path

from dotenv import load_dotenv

load_dotenv()

# ── Logging ──────────────────────────────────────────────────────────
LOG_LEVEL = os.getenv("SIDELINE_LOG_LEVEL", "INFO")
LOG_FILE = os.getenv("SIDELINE_LOG_FILE") or None

# ── Persistence ──────────────────────────────────────────────────────
STATE_FILE = Path(os.getenv("SIDELINE_STATE_FILE", "sideline_state.json"))

# ── Web API ──────────────────────────────────────────────────────────
WEB_HOST = os.getenv("SIDELINE_WEB_HOST", "127.0.0.1")
WEB_PORT = int(os.getenv("SIDELINE_WEB_PORT", "7122"))
