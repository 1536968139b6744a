from __future__ import annotations

from fastapi.testclient import TestClient

from tests.conftest import auth, mint_token

SESSION = "/v1/assessments/classroom-practice-self-review/session"


def test_list_requires_token(client: TestClient) -> None:
    assert client.get("/v1/submissions").status_code == 401


def test_list_is_empty_for_new_user(client: TestClient, token: str) -> None:
    resp = client.get("/v1/submissions", headers=auth(token))
    assert resp.status_code == 200
    assert resp.json() == []


def test_stats_for_new_user(client: TestClient, token: str) -> None:
    resp = client.get("/v1/submissions/stats", headers=auth(token))
    assert resp.status_code == 200
    body = resp.json()
    assert body["total_assessments"] == 1
    assert body["completed_assessments"] == 0
    assert body["completion_rate"] == 0
    assert body["last_completed_assessment"] is None


def test_stats_cache_miss_then_hit(client: TestClient, token: str) -> None:
    client.post(SESSION, headers=auth(token))
    first = client.get("/v1/submissions/stats", headers=auth(token)).json()
    second = client.get("/v1/submissions/stats", headers=auth(token)).json()
    assert first == second
    assert first["in_progress_assessments"] == 1


def test_stats_invalidated_by_entering(client: TestClient, token: str) -> None:
    before = client.get("/v1/submissions/stats", headers=auth(token)).json()
    assert before["in_progress_assessments"] == 0

    client.post(SESSION, headers=auth(token))

    after = client.get("/v1/submissions/stats", headers=auth(token)).json()
    assert after["in_progress_assessments"] == 1

def test_stats_invalidated_by_completion(client: TestClient, token: str) -> None:
    client.post(SESSION, headers=auth(token))
    before = client.get("/v1/submissions/stats", headers=auth(token)).json()
    assert before["completed_assessments"] == 0

    client.post(f"{SESSION}/complete", json={"answers": {"env_layout": "a"}}, headers=auth(token))

    after = client.get("/v1/submissions/stats", headers=auth(token)).json()
    assert after["completed_assessments"] == 1
    assert after["in_progress_assessments"] == 0
    assert after["completion_rate"] == 100
    # 20 minutes
    assert after["total_time_spent_hours"] == 0.3
    assert after["last_completed_assessment"] == "classroom-practice-self-review"


def test_stats_are_per_user(client: TestClient) -> None:
    alice = mint_token(username="alice")
    bob = mint_token(username="bob")
    client.post(SESSION, headers=auth(alice))
    client.post(f"{SESSION}/complete", json={}, headers=auth(alice))

    assert client.get("/v1/submissions/stats", headers=auth(alice)).json()[
        "completed_assessments"
    ] == 1
    assert client.get("/v1/submissions/stats", headers=auth(bob)).json()[
        "completed_assessments"
    ] == 0
