from __future__ import annotations

import sys
from collections.abc import Iterator
from pathlib import Path

import pytest
from fastapi.testclient import TestClient

from assessment_service.main import app
from assessment_service.services import token_service
from assessment_service.services.backends import session_registry, submission_repo
from assessment_service.services.cache import cache_service

# Ensure repo root is on sys.path so `import assessment_service` works under pytest.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

# Short enough that API tests can wait out a debounce cycle.
TEST_QUIET_PERIOD = 0.05


@pytest.fixture(autouse=True)
def reset_submissions() -> None:
    """Clear the in-memory submission store between tests."""
    if hasattr(submission_repo, "_by_id"):
        submission_repo._by_id.clear()  # type: ignore[union-attr]


@pytest.fixture(autouse=True)
def reset_sessions() -> Iterator[None]:
    """Forget open sessions and use a short quiet period."""
    session_registry.clear()
    original = session_registry._quiet_period
    session_registry._quiet_period = TEST_QUIET_PERIOD
    yield
    session_registry.clear()
    session_registry._quiet_period = original


@pytest.fixture(autouse=True)
def reset_cache() -> None:
    """Clear cache between tests."""
    if hasattr(cache_service, "_store"):
        cache_service._store.clear()  # type: ignore[union-attr]


@pytest.fixture
def client() -> Iterator[TestClient]:
    # Context-managed so every request shares one event loop and
    # debounce timers armed by one request can fire before the next.
    with TestClient(app) as c:
        yield c


def mint_token(
    username: str = "test-user",
    roles: list[str] | None = None,
) -> str:
    """Create a valid ES256 JWT for testing."""
    return token_service.create_access_token(sub=username, roles=roles)


@pytest.fixture
def token() -> str:
    """Token with default role (user)."""
    return mint_token()


def auth(token: str) -> dict[str, str]:
    return {"Authorization": f"Bearer {token}"}
