import itertools
import unittest

from sideline.models import EventType
from sideline.services import GameEventLogger, calculate_match_time

T0 = 1_700_000_000_000


def counter_ids():
    numbers = itertools.count(1)
    return lambda: f"e{next(numbers)}"


class GameEventLoggerTests(unittest.TestCase):
    def setUp(self) -> None:
        self.logger = GameEventLogger(time_source=lambda: T0, id_factory=counter_ids())

    def test_log_event_assigns_sequence_and_match_time(self) -> None:
        start = self.logger.log_event(EventType.MATCH_START, {"match_id": "m1"}, timestamp=T0)
        sub = self.logger.log_event("substitution", {"players_going_off": ["p2"]},
                                    timestamp=T0 + 95_000, period_number=1)

        self.assertEqual(start.sequence, 1)
        self.assertEqual(sub.sequence, 2)
        self.assertEqual(sub.id, "e2")
        self.assertEqual(sub.type, EventType.SUBSTITUTION)
        self.assertEqual(sub.match_time, "01:35")
        self.assertEqual(self.logger.match_start_time, T0)

    def test_undone_events_are_flagged_not_deleted(self) -> None:
        event = self.logger.log_event(EventType.GOAL_SCORED, timestamp=T0)
        self.assertTrue(self.logger.mark_event_as_undone(event.id, "user_action", T0 + 10))
        self.assertFalse(self.logger.mark_event_as_undone("missing"))

        self.assertEqual(self.logger.get_match_events(), [])
        undone = self.logger.get_match_events(include_undone=True)
        self.assertEqual(len(undone), 1)
        self.assertTrue(undone[0].undone)
        self.assertEqual(undone[0].undo_timestamp, T0 + 10)

    def test_filters(self) -> None:
        self.logger.log_event(EventType.MATCH_START, timestamp=T0)
        self.logger.log_event(EventType.GOAL_SCORED, timestamp=T0 + 1000)
        self.logger.log_event(EventType.GOAL_CONCEDED, timestamp=T0 + 2000)

        goals = self.logger.get_match_events(event_types=[EventType.GOAL_SCORED, EventType.GOAL_CONCEDED])
        self.assertEqual(len(goals), 2)
        late = self.logger.get_match_events(start_time=T0 + 1500)
        self.assertEqual([e.type for e in late], [EventType.GOAL_CONCEDED])

    def test_effective_playing_time_excludes_pauses(self) -> None:
        self.logger.log_event(EventType.MATCH_START, timestamp=T0)
        self.logger.log_event(EventType.TIMER_PAUSED, timestamp=T0 + 60_000)
        self.logger.log_event(EventType.TIMER_RESUMED, timestamp=T0 + 90_000)
        self.assertEqual(self.logger.get_effective_playing_time(T0 + 120_000), 90_000)

        self.logger.log_event(EventType.MATCH_END, timestamp=T0 + 150_000)
        self.assertEqual(self.logger.get_effective_playing_time(T0 + 999_000), 120_000)

    def test_listeners(self) -> None:
        seen = []
        unsubscribe = self.logger.add_listener(lambda action, event: seen.append((action, event.type)))
        event = self.logger.log_event(EventType.GOAL_SCORED, timestamp=T0)
        self.logger.mark_event_as_undone(event.id)
        unsubscribe()
        self.logger.log_event(EventType.GOAL_SCORED, timestamp=T0)

        self.assertEqual(seen, [("event_logged", EventType.GOAL_SCORED), ("event_undone", EventType.GOAL_SCORED)])

    def test_serialization_round_trip(self) -> None:
        self.logger.log_event(EventType.MATCH_START, timestamp=T0)
        self.logger.log_event(EventType.PERIOD_START, {"period": 1}, timestamp=T0)

        restored = GameEventLogger.from_list(self.logger.to_list())
        self.assertEqual(restored.events, self.logger.events)
        self.assertEqual(restored.match_start_time, T0)
        self.assertEqual(restored.log_event(EventType.PERIOD_END, timestamp=T0 + 1).sequence, 3)

    def test_out_of_order_log_is_discarded(self) -> None:
        self.logger.log_event(EventType.MATCH_START, timestamp=T0 + 5000)
        self.logger.log_event(EventType.GOAL_SCORED, timestamp=T0 + 6000)
        data = list(reversed(self.logger.to_list()))

        restored = GameEventLogger.from_list(data)
        self.assertEqual(len(restored), 0)
        self.assertIsNone(restored.match_start_time)


def test_calculate_match_time() -> None:
    assert calculate_match_time(T0 + 61_000, T0) == "01:01"
    assert calculate_match_time(T0, None) == "00:00"
    assert calculate_match_time(T0 - 5_000, T0) == "00:00"
