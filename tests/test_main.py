from __future__ import annotations

from fastapi.testclient import TestClient

from assessment_service.main import app
from tests.conftest import auth, mint_token


def test_app_title() -> None:
    assert app.title == "assessment-service"


def test_registered_routes() -> None:
    paths = {route.path for route in app.routes}
    assert {
        "/health",
        "/ready",
        "/metrics",
        "/v1/assessments",
        "/v1/assessments/{assessment_id}",
        "/v1/assessments/{assessment_id}/session",
        "/v1/assessments/{assessment_id}/session/answers",
        "/v1/assessments/{assessment_id}/session/save",
        "/v1/assessments/{assessment_id}/session/complete",
        "/v1/submissions",
        "/v1/submissions/stats",
    } <= paths


def test_cors_allows_configured_origin(client: TestClient) -> None:
    resp = client.options(
        "/v1/assessments",
        headers={
            "Origin": "http://localhost:3000",
            "Access-Control-Request-Method": "GET",
        },
    )
    assert resp.headers.get("access-control-allow-origin") == "http://localhost:3000"


def test_shutdown_flushes_open_sessions() -> None:
    token = mint_token(username="closing-tab")
    session = "/v1/assessments/classroom-practice-self-review/session"
    with TestClient(app) as c:
        c.post(session, headers=auth(token))
        c.put(f"{session}/answers", json={"answers": {"env_layout": "x"}}, headers=auth(token))
    # Lifespan shutdown ran: the pending edit was written.
    with TestClient(app) as c:
        [submission] = c.get("/v1/submissions", headers=auth(token)).json()
    assert submission["percent_complete"] == 20
