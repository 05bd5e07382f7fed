from __future__ import annotations

import json

import pytest

from knowledge_quiz.core.errors import PersistenceError
from knowledge_quiz.core.services.leaderboard import (
    InMemoryLeaderboard,
    JsonFileLeaderboard,
    rank_of,
)


@pytest.fixture(params=["memory", "json"])
def board(request, tmp_path):
    if request.param == "memory":
        return InMemoryLeaderboard()
    return JsonFileLeaderboard(tmp_path)


def test_entries_ranked_by_score_then_submission(board):
    board.submit("sql", "Ada", 2)
    board.submit("sql", "Grace", 3)
    board.submit("sql", "Linus", 2)
    board.submit("sql", "Ada", 3)

    ranked = [(entry.player_name, entry.score) for entry in board.list("sql")]
    assert ranked == [("Grace", 3), ("Ada", 3), ("Ada", 2), ("Linus", 2)]


def test_subjects_are_independent(board):
    board.submit("sql", "Ada", 2)
    assert board.list("python") == []


def test_ordering_is_stable_across_calls(board):
    for name in ["Ada", "Grace", "Linus"]:
        board.submit("sql", name, 1)
    assert board.list("sql") == board.list("sql")
    assert [entry.player_name for entry in board.list("sql")] == ["Ada", "Grace", "Linus"]


def test_rank_of_uses_first_position(board):
    board.submit("sql", "Grace", 3)
    board.submit("sql", "Ada", 1)
    board.submit("sql", "Ada", 2)

    entries = board.list("sql")
    assert rank_of(entries, "Ada") == 2
    assert rank_of(entries, "Grace") == 1
    assert rank_of(entries, "Nobody") is None


def test_json_leaderboard_persists(tmp_path):
    JsonFileLeaderboard(tmp_path).submit("sql", "Ada", 2)
    JsonFileLeaderboard(tmp_path).submit("sql", "Grace", 2)

    entries = JsonFileLeaderboard(tmp_path).list("sql")
    assert [entry.player_name for entry in entries] == ["Ada", "Grace"]
    assert [entry.sequence for entry in entries] == [1, 2]


def test_json_leaderboard_skips_malformed_rows(tmp_path):
    path = tmp_path / "leaderboards" / "sql.json"
    path.parent.mkdir(parents=True)
    path.write_text(
        json.dumps([
            {"player_name": "Ada", "score": 2, "submitted_at": "2026-01-01T00:00:00+00:00", "sequence": 1},
            {"player_name": "Broken"},
        ]),
        encoding="utf-8",
    )
    assert [entry.player_name for entry in JsonFileLeaderboard(tmp_path).list("sql")] == ["Ada"]


def test_json_leaderboard_corrupt_file_raises(tmp_path):
    path = tmp_path / "leaderboards" / "sql.json"
    path.parent.mkdir(parents=True)
    path.write_text("{oops", encoding="utf-8")
    with pytest.raises(PersistenceError):
        JsonFileLeaderboard(tmp_path).list("sql")


def test_json_leaderboard_undecodable_file_raises(tmp_path):
    path = tmp_path / "leaderboards" / "sql.json"
    path.parent.mkdir(parents=True)
    path.write_bytes(b"\xff\xfe\x00broken")
    with pytest.raises(PersistenceError):
        JsonFileLeaderboard(tmp_path).list("sql")


def test_json_leaderboard_non_list_document_is_never_overwritten(tmp_path):
    path = tmp_path / "leaderboards" / "sql.json"
    path.parent.mkdir(parents=True)
    path.write_text(json.dumps({"entries": [{"player_name": "Ada"}]}), encoding="utf-8")
    board = JsonFileLeaderboard(tmp_path)

    with pytest.raises(PersistenceError):
        board.list("sql")
    with pytest.raises(PersistenceError):
        board.submit("sql", "Grace", 3)
    assert json.loads(path.read_text(encoding="utf-8")) == {"entries": [{"player_name": "Ada"}]}
