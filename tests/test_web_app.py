"""Tests for the Flask JSON API."""

import pytest

from sideline.services import InMemoryPersistenceManager
from sideline.ui.web_app import WebAppState, create_app

T0 = 1_700_000_000_000

CONFIGURE_BODY = {
    "match_id": "m1",
    "team_config": {"format": "5v5", "squad_size": 6, "formation": "2-2"},
    "formation": {
        "goalie": "p1", "left_defender": "p2", "right_defender": "p3",
        "left_attacker": "p4", "right_attacker": "p5", "substitute_1": "p6",
    },
    "players": [{"id": f"p{i}", "name": f"Player {i}", "jersey_number": str(i)} for i in range(1, 7)],
    "period_duration_minutes": 10,
    "period_count": 1,
}


class FakeTime:
    def __init__(self):
        self.now = T0

    def __call__(self):
        return self.now


@pytest.fixture
def clock():
    return FakeTime()


@pytest.fixture
def client(clock):
    app = create_app(WebAppState(time_source=clock))
    app.config["TESTING"] = True
    return app.test_client()


def configure_and_start(client):
    assert client.post("/api/period/configure", json=CONFIGURE_BODY).status_code == 200
    assert client.post("/api/period/start").status_code == 200


def test_state_before_configuration(client):
    response = client.get("/api/state")
    assert response.status_code == 200
    data = response.get_json()
    assert data["success"] is True
    assert data["state"]["period_state"] == "not_started"
    assert data["state"]["formation"] is None


def test_configure_and_start(client):
    response = client.post("/api/period/configure", json=CONFIGURE_BODY)
    state = response.get_json()["state"]
    assert state["rotation_queue"] == ["p2", "p3", "p4", "p5", "p6"]
    assert state["match_timer_seconds"] == 600

    response = client.post("/api/period/start")
    assert response.get_json()["message"] == "Period 1 started"


def test_invalid_formation_returns_400(client):
    body = dict(CONFIGURE_BODY, formation=dict(CONFIGURE_BODY["formation"], substitute_1="p2"))
    response = client.post("/api/period/configure", json=body)

    assert response.status_code == 400
    data = response.get_json()
    assert data["success"] is False
    assert data["error"] == "InvalidFormationError"
    assert any("multiple slots" in error for error in data["details"])


def test_unknown_slot_returns_400(client):
    body = dict(CONFIGURE_BODY, formation={"sweeper": "p1"})
    response = client.post("/api/period/configure", json=body)
    assert response.status_code == 400
    assert response.get_json()["error"] == "InvalidFormationError"


def test_malformed_configure_body(client):
    response = client.post("/api/period/configure", json={"formation": {}})
    assert response.status_code == 400
    assert response.get_json()["error"] == "BadRequestError"


def test_substitution_flow(client, clock):
    configure_and_start(client)
    clock.now = T0 + 60_000

    response = client.post("/api/substitution", json={"expected_next_id": "p2"})
    result = response.get_json()["result"]
    assert result["applied"] is True
    assert result["players_going_off"] == ["p2"]
    assert result["players_coming_on"] == ["p6"]

    repeat = client.post("/api/substitution", json={"expected_next_id": "p2"}).get_json()
    assert repeat["result"]["applied"] is False

    clock.now = T0 + 75_000
    undo = client.post("/api/substitution/undo").get_json()
    assert undo["sub_timer_seconds"] == 75

    state = client.get("/api/state").get_json()["state"]
    assert state["next_player_id_to_sub_out"] == "p2"
    assert state["has_pending_undo"] is False


def test_action_errors_return_409(client):
    response = client.post("/api/substitution")
    assert response.status_code == 409
    assert response.get_json()["error"] == "InvalidActionError"

    configure_and_start(client)
    response = client.post("/api/substitution/undo")
    assert response.status_code == 409

    response = client.post("/api/period/end", json={})
    assert response.status_code == 409
    data = response.get_json()
    assert data["error"] == "PeriodNotFinishedError"
    assert data["details"]["remaining_seconds"] == 600


def test_pause_resume_and_end(client, clock):
    configure_and_start(client)
    assert client.post("/api/period/pause").get_json()["changed"] is True
    assert client.post("/api/period/pause").get_json()["changed"] is False
    assert client.post("/api/period/resume").get_json()["changed"] is True

    clock.now = T0 + 30_000
    response = client.post("/api/period/end", json={"confirm_early": True})
    assert response.get_json()["period_state"] == "ended"


def test_positions_goalie_and_queue(client, clock):
    configure_and_start(client)
    clock.now = T0 + 10_000

    switched = client.post("/api/positions/switch", json={"player_a": "p2", "player_b": "p4"}).get_json()
    assert switched["result"]["formation"]["left_defender"] == "p4"

    goalie = client.post("/api/goalie", json={"new_goalie_id": "p3"}).get_json()
    assert goalie["result"]["formation"]["goalie"] == "p3"
    assert goalie["result"]["rotation_queue"][1] == "p1"

    queue = client.post("/api/queue/next", json={"entry_id": "p5"}).get_json()
    assert queue["rotation_queue"][0] == "p5"

    assert client.post("/api/goalie", json={}).status_code == 400


def test_inactive_toggle_needs_second_substitute(client):
    configure_and_start(client)
    response = client.post("/api/players/p6/inactive")
    assert response.status_code == 409
    assert "stay active" in response.get_json()["message"]


def test_goals_events_and_final_stats(client, clock):
    configure_and_start(client)
    clock.now = T0 + 60_000
    goal = client.post("/api/goals", json={"scored_by_own_team": True, "scorer_id": "p4"}).get_json()
    assert goal["own_score"] == 1
    client.post("/api/goals", json={"scored_by_own_team": False})
    undo = client.post("/api/goals/undo").get_json()
    assert undo["opponent_score"] == 0

    assert client.post("/api/fair-play", json={"player_id": "p2"}).get_json()["success"] is True

    assert client.get("/api/final-stats").status_code == 409

    clock.now = T0 + 600_000
    client.post("/api/period/end")
    stats = client.get("/api/final-stats").get_json()["final_stats"]
    assert stats["outcome"] == "win"
    assert stats["fair_play_award_id"] == "p2"

    csv_response = client.get("/api/final-stats?format=csv")
    assert csv_response.mimetype == "text/csv"
    assert csv_response.get_data(as_text=True).startswith("Match,m1")

    events = client.get("/api/events").get_json()["events"]
    assert [e["type"] for e in events].count("goal_conceded") == 0
    all_events = client.get("/api/events?include_undone=true").get_json()["events"]
    assert [e["type"] for e in all_events].count("goal_conceded") == 1


def test_state_is_saved_and_restored(clock):
    persistence = InMemoryPersistenceManager()
    client = create_app(WebAppState(persistence=persistence, time_source=clock)).test_client()
    configure_and_start(client)

    restored = WebAppState(persistence=persistence, time_source=clock)
    assert restored.session.period_state.value == "running"

    client.post("/api/match/reset")
    assert WebAppState(persistence=persistence).session.formation is None
