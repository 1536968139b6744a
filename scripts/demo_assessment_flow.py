"""Demo: enter an assessment, autosave, complete, read the dashboard.

Run with:
    python scripts/demo_assessment_flow.py
"""

from __future__ import annotations

import time

from fastapi.testclient import TestClient

from assessment_service.core.config import SETTINGS
from assessment_service.main import app
from assessment_service.services import token_service

ASSESSMENT_ID = "classroom-practice-self-review"
SESSION = f"/v1/assessments/{ASSESSMENT_ID}/session"


def main() -> None:
    headers = {
        "Authorization": f"Bearer {token_service.create_access_token(sub='demo-learner')}"
    }

    with TestClient(app) as client:
        # ── Step 1: enter (find-or-create) ──────────────────────────
        r = client.post(SESSION, headers=headers)
        submission_id = r.json()["submission"]["id"]
        print(f"1. POST {SESSION}           → {r.status_code}  submission={submission_id}")

        # ── Step 2: a burst of edits, one autosave ──────────────────
        for text in ("D", "Desks", "Desks in pods"):
            r = client.put(
                f"{SESSION}/answers",
                json={"answers": {"env_layout": text, "env_materials": ""}},
                headers=headers,
            )
        print(f"2. PUT  {SESSION}/answers x3 → {r.status_code}  (debounced)")

        time.sleep(SETTINGS.autosave_quiet_seconds + 0.5)
        r = client.get("/v1/submissions", headers=headers)
        print(f"3. GET  /v1/submissions     → percent={r.json()[0]['percent_complete']}")

        # ── Step 3: complete twice ──────────────────────────────────
        for attempt in (1, 2):
            r = client.post(f"{SESSION}/complete", json={}, headers=headers)
            body = r.json()
            print(
                f"4.{attempt} POST {SESSION}/complete → {r.status_code}"
                f"  status={body['status']} percent={body['percent_complete']}"
            )

        # ── Step 4: dashboard ───────────────────────────────────────
        r = client.get("/v1/submissions/stats", headers=headers)
        print(f"5. GET  /v1/submissions/stats → {r.json()}")


if __name__ == "__main__":
    main()
