"""
Constants for the sideline rotation engine.

This module contains configuration constants used throughout the application.
"""

# Application metadata
APP_TITLE = "Sideline Rotation Coach"

# Field formats
FORMAT_5V5 = "5v5"
FORMAT_7V7 = "7v7"

# Field players per format (goalie excluded)
FIELD_PLAYERS_BY_FORMAT = {
    FORMAT_5V5: 4,
    FORMAT_7V7: 6,
}

GOALIE_COUNT = 1
MIN_SQUAD_SIZE = 5
DEFAULT_MAX_SQUAD_SIZE = 15
MAX_SQUAD_SIZE_BY_FORMAT = {
    FORMAT_5V5: 11,
    FORMAT_7V7: 15,
}

# Tactical formations available per format
FORMATIONS_BY_FORMAT = {
    FORMAT_5V5: ["2-2", "1-2-1"],
    FORMAT_7V7: ["2-2-2", "2-3-1"],
}
DEFAULT_FORMATION_BY_FORMAT = {
    FORMAT_5V5: "2-2",
    FORMAT_7V7: "2-2-2",
}

# Pairs mode is only defined for one shape: goalie + two field pairs + one sub pair
PAIRS_FORMAT = FORMAT_5V5
PAIRS_FORMATION = "2-2"
PAIRS_SQUAD_SIZE = 7

# Match timing defaults
DEFAULT_PERIOD_DURATION_MIN = 12
DEFAULT_PERIOD_COUNT = 3
DEFAULT_ALERT_MINUTES = 0
# Ending a period with more time than this left needs confirmation
EARLY_END_CONFIRM_SECONDS = 60

# Fairness reporting
FAIRNESS_THRESHOLD_SECONDS = 120  # +/- 2 minutes regarded as notable variance
