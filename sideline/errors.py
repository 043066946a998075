"""Exception hierarchy for the sideline rotation engine."""
from typing import Any, Dict, List, Optional


class SidelineError(Exception):
    """Base class for all engine errors."""

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None):
        super().__init__(message)
        self.message = message
        self.details = details or {}


class InvalidFormationError(SidelineError):
    """Raised when a formation or team configuration fails validation."""

    def __init__(self, errors: List[str]):
        self.errors = list(errors)
        super().__init__(
            "Invalid formation: " + "; ".join(self.errors),
            {"errors": self.errors},
        )


class StateDesyncError(SidelineError):
    """Raised when Formation, RotationQueue and player statuses disagree."""


class NotInQueueError(StateDesyncError):
    """Raised when an entry expected in the rotation queue is missing."""

    def __init__(self, entry_id: str):
        self.entry_id = entry_id
        super().__init__(f"'{entry_id}' is not in the rotation queue", {"entry_id": entry_id})


class NoEligibleSubstituteError(SidelineError):
    """Raised when a substitution is requested but no active substitute exists."""


class InvalidActionError(SidelineError):
    """Raised for operator mistakes that can be corrected and retried."""


class PeriodNotFinishedError(InvalidActionError):
    """Raised when ending a period before its timer has run out without confirmation."""

    def __init__(self, remaining_seconds: int):
        self.remaining_seconds = remaining_seconds
        super().__init__(
            f"Period still has {remaining_seconds} seconds remaining",
            {"remaining_seconds": remaining_seconds},
        )


class MatchDataError(SidelineError):
    """Raised when match data cannot be assembled for reporting."""


class NoMatchIdError(MatchDataError):
    """Raised when final stats are requested for a match without an id."""


class IncompleteMatchDataError(MatchDataError):
    """Raised when final stats are requested before the match has data."""
