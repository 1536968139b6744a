from __future__ import annotations

import pytest

from assessment_service.core.config import AppEnv, Settings, load_settings

_ENV_VARS = (
    "APP_ENV",
    "LOG_LEVEL",
    "LOG_JSON",
    "PORT",
    "DATABASE_URL",
    "REDIS_URL",
    "AUTOSAVE_QUIET_SECONDS",
    "SESSION_IDLE_SECONDS",
    "CORS_ORIGINS",
)


@pytest.fixture
def clean_env(monkeypatch: pytest.MonkeyPatch) -> pytest.MonkeyPatch:
    for name in _ENV_VARS:
        monkeypatch.delenv(name, raising=False)
    return monkeypatch


# ---- defaults ----


def test_load_settings_defaults(clean_env: pytest.MonkeyPatch) -> None:
    settings = load_settings()
    assert settings.app_env == "dev"
    assert settings.log_level == "info"
    assert settings.log_json is False
    assert settings.port == 8000
    assert settings.database_url is None
    assert settings.redis_url is None
    assert settings.autosave_quiet_seconds == 2.0
    assert settings.session_idle_seconds == 1800.0
    assert settings.cors_origins == ("http://localhost:3000",)


def test_load_settings_respects_env_vars(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("APP_ENV", "PROD")
    clean_env.setenv("LOG_LEVEL", "  warning  ")
    clean_env.setenv("LOG_JSON", "true")
    clean_env.setenv("AUTOSAVE_QUIET_SECONDS", "0.5")
    clean_env.setenv("SESSION_IDLE_SECONDS", "600")
    clean_env.setenv("DATABASE_URL", "postgresql+asyncpg://u:p@db/assessments")
    settings = load_settings()
    assert settings.app_env == "prod"
    assert settings.log_level == "warning"
    assert settings.log_json is True
    assert settings.autosave_quiet_seconds == 0.5
    assert settings.session_idle_seconds == 600.0
    assert settings.database_url == "postgresql+asyncpg://u:p@db/assessments"


def test_cors_origins_split_on_commas(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("CORS_ORIGINS", "https://a.example, https://b.example,")
    assert load_settings().cors_origins == ("https://a.example", "https://b.example")


def test_blank_urls_mean_not_configured(clean_env: pytest.MonkeyPatch) -> None:
    clean_env.setenv("DATABASE_URL", "   ")
    clean_env.setenv("REDIS_URL", "")
    settings = load_settings()
    assert settings.database_url is None
    assert settings.redis_url is None


# ---- invalid values ----


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("APP_ENV", "staging", "APP_ENV must be dev|test|prod"),
        ("LOG_LEVEL", "verbose", "LOG_LEVEL must be debug|info|warning|error"),
        ("PORT", "eighty", "PORT must be an integer"),
        ("LOG_JSON", "maybe", "LOG_JSON must be a boolean"),
        ("AUTOSAVE_QUIET_SECONDS", "soon", "AUTOSAVE_QUIET_SECONDS must be a number"),
        ("AUTOSAVE_QUIET_SECONDS", "0", "AUTOSAVE_QUIET_SECONDS must be positive"),
        ("AUTOSAVE_QUIET_SECONDS", "-1", "AUTOSAVE_QUIET_SECONDS must be positive"),
        ("SESSION_IDLE_SECONDS", "forever", "SESSION_IDLE_SECONDS must be a number"),
        ("SESSION_IDLE_SECONDS", "0", "SESSION_IDLE_SECONDS must be positive"),
    ],
)
def test_load_settings_rejects_invalid_values(
    clean_env: pytest.MonkeyPatch, name: str, value: str, message: str
) -> None:
    clean_env.setenv(name, value)
    with pytest.raises(ValueError, match=message.replace("|", r"\|")):
        load_settings()


# ---- Settings properties ----


def _make_settings(app_env: AppEnv = "dev") -> Settings:
    return Settings(  # type: ignore[arg-type]
        app_env=app_env,
        log_level="info",
        log_json=False,
        port=8000,
        database_url=None,
        redis_url=None,
    )


@pytest.mark.parametrize("app_env", ["dev", "test", "prod"])
def test_settings_env_flags(app_env: AppEnv) -> None:
    s = _make_settings(app_env)
    assert (s.is_dev, s.is_test, s.is_prod) == (
        app_env == "dev",
        app_env == "test",
        app_env == "prod",
    )


def test_settings_is_frozen() -> None:
    s = _make_settings()
    with pytest.raises(AttributeError):
        s.autosave_quiet_seconds = 0.1  # type: ignore[misc]
