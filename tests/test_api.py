from __future__ import annotations

import json
import time

import pytest
from conftest import trivia_payload
from fastapi.testclient import TestClient

from trivia_engine.config import Settings
from trivia_engine.main import create_app
from trivia_engine.schemas.trivia import TriviaQuestion


def _settings(**overrides) -> Settings:
    values = {
        "DATABASE_URL": "sqlite://",
        "REDIS_URL": None,
        "OPENROUTER_API_KEY": None,
        "GEMINI_API_KEY": None,
        "SUPABASE_URL": None,
        "SUPABASE_ANON_KEY": None,
    }
    values.update(overrides)
    return Settings(_env_file=None, **values)


@pytest.fixture
def client():
    with TestClient(create_app(_settings())) as test_client:
        yield test_client


class _FakeGenerator:
    """Stands in for TriviaGenerator; records when each question was asked for"""

    def __init__(self) -> None:
        self.called_at: list[float] = []

    async def generate_question(self, **kwargs) -> TriviaQuestion:
        self.called_at.append(time.monotonic())
        n = len(self.called_at)
        return TriviaQuestion.model_validate(trivia_payload(question=f"Generated question number {n}?"))


def _pack() -> str:
    return json.dumps({
        "items": [
            {**trivia_payload(), "id": "p1", "stemHash": "ignored", "createdAt": 1},
        ]
    })


def test_health_reports_local_only_mode(client) -> None:
    response = client.get("/health")
    assert response.status_code == 200
    body = response.json()
    assert body["status"] == "healthy"
    assert body["generation_enabled"] is False
    assert body["mirror_enabled"] is False


def test_single_player_session_flow(client) -> None:
    created = client.post("/api/sessions/s1/single", json={"player_name": "Ada"})
    assert created.status_code == 201
    assert created.json()["status"] == "active"

    question = client.post("/api/sessions/s1/question", json={}).json()
    answer = client.post("/api/sessions/s1/answer", json={"answer_index": question["answer_index"]})
    assert answer.json()["correct"] is True

    locked = client.post("/api/sessions/s1/question", json={"category": "Science"})
    assert locked.status_code == 403
    assert locked.json()["error"] == "http_error"

    assert client.get("/api/sessions/s1/stats").json()["correct_answers"] == 1
    assert client.get("/api/sessions/s1/can-choose").json() == {"can_choose_category": False}
    assert client.get("/api/sessions/s1/bank/stats").json()["used"] >= 1

    assert client.delete("/api/sessions/s1/").status_code == 204
    assert client.get("/api/sessions/s1/state").status_code == 404


def test_join_requires_waiting_game(client) -> None:
    assert client.post("/api/sessions/m1/join", json={"player_name": "B", "game_code": "X"}).status_code == 404
    client.post("/api/sessions/m1/multiplayer", json={"host_name": "A", "game_code": "X"})
    joined = client.post("/api/sessions/m1/join", json={"player_name": "B", "game_code": "X"})
    assert joined.status_code == 200
    assert len(joined.json()["players"]) == 2


def test_library_import_draw_and_export(client) -> None:
    imported = client.post("/api/library/import", content=_pack(), headers={"Content-Type": "application/json"})
    assert imported.json() == {"inserted": 1, "duplicates": 0, "total": 1}

    counts = client.get("/api/library/counts").json()
    assert counts["total"] == 1
    assert counts["by_category"]["science"] == 1

    drawn = client.post("/api/library/draw", json={"category": "science", "difficulty": "medium"})
    assert drawn.status_code == 200
    assert drawn.json()["id"] == "p1"
    assert drawn.json()["answer_index"] == 2

    exhausted = client.post("/api/library/draw", json={"category": "science", "difficulty": "easy"})
    assert exhausted.status_code == 404

    exported = client.get("/api/library/export").json()
    assert exported["items"][0]["usedAt"] is not None
    assert client.post("/api/library/missing/used").status_code == 404


def test_invalid_pack_is_a_bad_request(client) -> None:
    response = client.post("/api/library/import", content="[{\"id\": 1}]")
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_pack"


def test_score_endpoint(client) -> None:
    response = client.post("/api/rounds/score", json={
        "correct": True,
        "answered_at": 1_000,
        "open_at": 1_000,
        "round_ends_at": 31_000,
        "prev_streak": 0,
    })
    assert response.json()["delta"] == 150


def test_generation_without_backend_is_a_gateway_error(client) -> None:
    response = client.post("/api/rounds/generate", json={"category": "science", "difficulty": "easy"})
    assert response.status_code == 502
    assert response.json()["error"] == "generation_failed"


def test_health_reports_configured_mirror() -> None:
    settings = _settings(SUPABASE_URL="https://example.supabase.co", SUPABASE_ANON_KEY="anon")
    with TestClient(create_app(settings)) as test_client:
        assert test_client.get("/health").json()["mirror_enabled"] is True


def test_reset_leaves_other_sessions_bank_alone(client) -> None:
    client.post("/api/sessions/alice/single", json={"player_name": "Alice"})
    for _ in range(3):
        client.post("/api/sessions/alice/question", json={})
    before = client.get("/api/sessions/alice/bank/stats").json()
    assert before["used"] >= 1

    client.post("/api/sessions/bob/single", json={"player_name": "Bob"})
    assert client.delete("/api/sessions/bob/").status_code == 204

    assert client.get("/api/sessions/alice/bank/stats").json() == before
    assert client.get("/api/sessions/bob/bank/stats").json()["used"] == 0


def test_sessions_without_a_game_are_not_kept(client) -> None:
    sessions = client.app.state.sessions

    assert client.get("/api/sessions/ghost/state").status_code == 404
    assert "ghost" not in sessions

    client.post("/api/sessions/s2/single", json={"player_name": "Ada"})
    assert "s2" in sessions
    client.delete("/api/sessions/s2/")
    assert "s2" not in sessions


def test_non_utf8_pack_is_a_bad_request(client) -> None:
    response = client.post("/api/library/import", content=b"\xff\xfe{not utf8")
    assert response.status_code == 400
    assert response.json()["error"] == "invalid_pack"


def test_pack_with_unknown_source_is_rejected(client) -> None:
    pack = json.dumps([{**trivia_payload(), "id": "p1", "stemHash": "h", "createdAt": 1, "source": "bogus"}])
    response = client.post("/api/library/import", content=pack)
    assert response.status_code == 400
    assert client.get("/api/library/counts").json()["total"] == 0


def test_fill_uses_configured_delay_when_request_has_none() -> None:
    with TestClient(create_app(_settings(FILL_DELAY_SECONDS=0.0))) as test_client:
        fill_queue = test_client.app.state.fill_queue
        assert fill_queue.default_delay == 0.0
        fill_queue.generator = _FakeGenerator()

        response = test_client.post("/api/library/fill", json={
            "category": "science",
            "difficulty": "easy",
            "amount": 2,
            "job_id": "nightly",
        })

        body = response.json()
        assert body["job_id"] == "nightly"
        assert body["inserted"] == 2
        assert fill_queue.jobs == {}


def test_cancel_unknown_fill_is_not_found(client) -> None:
    assert client.post("/api/library/fill/nope/cancel").status_code == 404


def test_pack_generation_spaces_items_by_configured_delay() -> None:
    with TestClient(create_app(_settings(PACK_DELAY_SECONDS=0.05))) as test_client:
        generator = _FakeGenerator()
        test_client.app.state.generator = generator

        response = test_client.post("/api/library/pack", json={
            "category": "science",
            "difficulty": "easy",
            "count": 2,
        })

        assert response.status_code == 200
        pack = response.json()
        assert len(pack["items"]) == 2
        assert pack["category"] == "science"
        assert generator.called_at[1] - generator.called_at[0] >= 0.04
        assert test_client.get("/api/library/counts").json()["total"] == 0
