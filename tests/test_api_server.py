from __future__ import annotations

from fastapi.testclient import TestClient
import pytest

from knowledge_quiz.core.services.leaderboard import InMemoryLeaderboard
from knowledge_quiz.core.services.session_store import InMemorySessionStore
from knowledge_quiz.core.session_controller import SessionController
from knowledge_quiz.server.api_server import create_api_app


@pytest.fixture
def api_controller(question_bank):
    # a long tick interval keeps the countdown from moving during a test
    manager = SessionController(
        question_bank, InMemorySessionStore(), InMemoryLeaderboard(), tick_interval=60
    )
    yield manager
    manager.close()


@pytest.fixture
def client(api_controller):
    with TestClient(create_api_app(api_controller)) as test_client:
        yield test_client


@pytest.fixture
def player(client):
    assert client.put("/player", json={"player_name": "  Ada "}).json() == {"player_name": "Ada"}


def test_player_roundtrip(client, player):
    assert client.get("/player").json() == {"player_name": "Ada"}
    assert client.delete("/player").status_code == 204
    assert client.get("/player").json() == {"player_name": None}


def test_blank_player_name_is_unprocessable(client):
    assert client.put("/player", json={"player_name": ""}).status_code == 422


def test_list_subjects(client):
    body = client.get("/subjects").json()
    assert [subject["id"] for subject in body] == ["python", "sql"]
    assert body[1]["question_count"] == 3


def test_enter_without_player_conflicts(client):
    assert client.post("/subjects/sql/enter").status_code == 409


def test_enter_unknown_subject_is_retryable(client, player):
    response = client.post("/subjects/nope/enter")
    assert response.status_code == 503
    assert response.json()["retryable"] is True


def test_session_requires_active_quiz(client, player):
    assert client.get("/session").status_code == 404


def test_enter_starts_timer_and_hides_answer(client, player, api_controller):
    body = client.post("/subjects/sql/enter").json()

    assert body["question_number"] == 1
    assert body["question_count"] == 3
    assert body["time_left_seconds"] == 180
    assert body["selected_option_index"] is None
    assert "correct_option_index" not in body
    assert "<p>Question 1</p>" in body["question_html"]
    assert api_controller.is_timer_running()


def test_answer_navigation_and_results(client, player, api_controller):
    client.post("/subjects/sql/enter")

    assert client.post("/session/answer", json={"option_index": 1}).json()["selected_option_index"] == 1
    assert client.post("/session/answer", json={"option_index": 9}).status_code == 409

    first_next = client.post("/session/next").json()
    assert first_next["advanced"] is True
    assert first_next["session"]["question_number"] == 2
    assert client.post("/session/previous").json()["question_number"] == 1
    client.post("/session/next")
    client.post("/session/next")
    assert client.post("/session/next").json()["advanced"] is False

    assert client.get("/session/results").status_code == 409

    results = client.post("/session/complete").json()
    assert results["score"] == 1
    assert results["incorrect"] == 2
    assert results["accuracy_percentage"] == 33
    assert results["rank"] == 1
    assert results["leaderboard"][0]["player_name"] == "Ada"
    assert not api_controller.is_timer_running()

    review = client.get("/session/review").json()
    assert [item["is_correct"] for item in review] == [True, False, False]
    assert review[0]["explanation_html"] is not None
    assert review[1]["explanation_html"] is None

    leaderboard = client.get("/leaderboard/sql").json()
    assert leaderboard == [
        {"rank": 1, "player_name": "Ada", "score": 1, "submitted_at": leaderboard[0]["submitted_at"]}
    ]


def test_hint_uses_explanation(client, player):
    client.post("/subjects/sql/enter")
    assert "Explanation 1" in client.get("/session/hint").json()["hint_html"]


def test_leave_and_reenter_resumes(client, player, api_controller):
    client.post("/subjects/sql/enter")
    client.post("/session/answer", json={"option_index": 2})
    client.post("/session/next")

    assert client.post("/session/leave").status_code == 204
    assert not api_controller.is_timer_running()

    resumed = client.post("/subjects/sql/enter").json()
    assert resumed["question_number"] == 2
    assert resumed["answered_count"] == 1


def test_restart_discards_progress(client, player):
    client.post("/subjects/sql/enter")
    client.post("/session/answer", json={"option_index": 2})
    client.post("/session/next")

    fresh = client.post("/session/restart").json()
    assert fresh["question_number"] == 1
    assert fresh["answered_count"] == 0


def test_completed_quiz_reenters_fresh(client, player):
    client.post("/subjects/sql/enter")
    client.post("/session/complete")

    again = client.post("/subjects/sql/enter").json()
    assert again["quiz_completed"] is False
    assert again["answered_count"] == 0
