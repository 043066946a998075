"""Append-only match event log owned by a match session."""

import logging
import uuid
from typing import Any, Callable, Dict, Iterable, List, Optional

from ..models import EventType, GameEvent
from ..utils import fmt_mmss, now_ms

logger = logging.getLogger(__name__)

EventListener = Callable[[str, GameEvent], None]


def calculate_match_time(timestamp: Optional[int], start_time: Optional[int]) -> str:
    """Wall time since ``start_time`` as MM:SS ("00:00" when unknown)."""
    if not timestamp or not start_time:
        return "00:00"
    return fmt_mmss(max(0, timestamp - start_time) // 1000)


def validate_event_sequence(events: List[GameEvent]) -> bool:
    """True when timestamps never go backwards and sequence numbers strictly increase."""
    for prev, curr in zip(events, events[1:]):
        if curr.timestamp < prev.timestamp:
            logger.warning("Events not in chronological order: %s, %s", prev.id, curr.id)
            return False
        if curr.sequence <= prev.sequence:
            logger.warning("Event sequence numbers not increasing: %d, %d", prev.sequence, curr.sequence)
            return False
    return True


class GameEventLogger:
    """
    Event log for a single match.

    Events are never deleted; undone events are flagged so reports can show
    or hide them.
    """

    def __init__(self, match_start_time: Optional[int] = None,
                 time_source: Optional[Callable[[], int]] = None,
                 id_factory: Optional[Callable[[], str]] = None):
        self.match_start_time = match_start_time
        self._time_source = time_source or now_ms
        self._id_factory = id_factory or (lambda: uuid.uuid4().hex)
        self._events: List[GameEvent] = []
        self._sequence = 0
        self._listeners: List[EventListener] = []

    def __len__(self) -> int:
        return len(self._events)

    @property
    def events(self) -> List[GameEvent]:
        return list(self._events)

    def add_listener(self, callback: EventListener) -> Callable[[], None]:
        """Register ``callback(action, event)``; returns an unsubscribe function."""
        self._listeners.append(callback)

        def _unsubscribe() -> None:
            if callback in self._listeners:
                self._listeners.remove(callback)

        return _unsubscribe

    def _notify(self, action: str, event: GameEvent) -> None:
        for callback in list(self._listeners):
            callback(action, event)

    def log_event(self, event_type: EventType, data: Optional[Dict[str, Any]] = None,
                  timestamp: Optional[int] = None, period_number: int = 0,
                  related_event_id: Optional[str] = None) -> GameEvent:
        """
        Append an event.

        Args:
            event_type: Kind of transition
            data: Event payload (copied)
            timestamp: When it happened (epoch ms); defaults to now
            period_number: Period the event belongs to
            related_event_id: Event this one refers to (e.g. the undone one)

        Returns:
            The logged GameEvent
        """
        event_type = EventType(event_type)
        timestamp = int(timestamp if timestamp is not None else self._time_source())
        if event_type == EventType.MATCH_START:
            self.match_start_time = timestamp

        self._sequence += 1
        event = GameEvent(
            id=self._id_factory(),
            type=event_type,
            timestamp=timestamp,
            match_time=calculate_match_time(timestamp, self.match_start_time),
            sequence=self._sequence,
            period_number=period_number,
            data=dict(data or {}),
            related_event_id=related_event_id,
        )
        self._events.append(event)
        logger.debug("Event %s #%d at %s", event.type.value, event.sequence, event.match_time)
        self._notify("event_logged", event)
        return event

    def mark_event_as_undone(self, event_id: str, undo_reason: str = "user_action",
                             timestamp: Optional[int] = None) -> bool:
        """Flag an event as undone; returns False if it does not exist."""
        event = self.get_event_by_id(event_id)
        if event is None:
            logger.warning("Event not found for undo marking: %s", event_id)
            return False
        event.undone = True
        event.undo_timestamp = int(timestamp if timestamp is not None else self._time_source())
        event.undo_reason = undo_reason
        self._notify("event_undone", event)
        return True

    def get_event_by_id(self, event_id: str) -> Optional[GameEvent]:
        return next((e for e in self._events if e.id == event_id), None)

    def get_match_events(self, include_undone: bool = False,
                         event_types: Optional[Iterable[EventType]] = None,
                         start_time: Optional[int] = None,
                         end_time: Optional[int] = None) -> List[GameEvent]:
        """Filter the log; undone events are hidden unless requested."""
        events = list(self._events)
        if not include_undone:
            events = [e for e in events if not e.undone]
        if event_types is not None:
            wanted = {EventType(t) for t in event_types}
            events = [e for e in events if e.type in wanted]
        if start_time is not None:
            events = [e for e in events if e.timestamp >= start_time]
        if end_time is not None:
            events = [e for e in events if e.timestamp <= end_time]
        return events

    def get_effective_playing_time(self, now: Optional[int] = None) -> int:
        """Milliseconds from match start to match end (or now), minus logged pauses."""
        events = self.get_match_events()
        start = next((e for e in events if e.type == EventType.MATCH_START), None)
        if start is None:
            return 0
        end = next((e for e in events if e.type == EventType.MATCH_END), None)
        now = now if now is not None else self._time_source()
        end_time = end.timestamp if end else now

        paused = 0
        pause_started = None
        for event in events:
            if event.type == EventType.TIMER_PAUSED and pause_started is None:
                pause_started = event.timestamp
            elif event.type == EventType.TIMER_RESUMED and pause_started is not None:
                paused += event.timestamp - pause_started
                pause_started = None
        if pause_started is not None:
            paused += max(0, end_time - pause_started)
        return max(0, end_time - start.timestamp - paused)

    def clear(self) -> None:
        """Drop every event and restart numbering."""
        self._events = []
        self._sequence = 0
        self.match_start_time = None

    def to_list(self) -> List[Dict[str, Any]]:
        return [e.to_dict() for e in self._events]

    def load(self, data: Optional[List[Dict[str, Any]]]) -> None:
        """Replace the log with serialized events; invalid input leaves it empty."""
        self.clear()
        try:
            events = [GameEvent.from_dict(item) for item in data or []]
        except (KeyError, TypeError, ValueError) as exc:
            logger.warning("Discarding unreadable event log: %s", exc)
            return
        if not validate_event_sequence(events):
            logger.warning("Event sequence validation failed, starting with empty events")
            return
        self._events = events
        self._sequence = events[-1].sequence if events else 0
        start = next((e for e in events if e.type == EventType.MATCH_START), None)
        self.match_start_time = start.timestamp if start else None

    @classmethod
    def from_list(cls, data: Optional[List[Dict[str, Any]]], **kwargs) -> "GameEventLogger":
        event_logger = cls(**kwargs)
        event_logger.load(data)
        return event_logger
