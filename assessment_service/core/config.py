from __future__ import annotations

import os
from dataclasses import dataclass
from typing import Literal

AppEnv = Literal["dev", "test", "prod"]
LogLevel = Literal["debug", "info", "warning", "error"]


def _getenv(name: str, default: str) -> str:
    # Centralize env access so type casting and validation live in one place
    return os.environ.get(name, default).strip()


def _parse_bool(name: str, raw: str) -> bool:
    value = raw.lower()
    if value in ("1", "true", "yes", "on"):
        return True
    if value in ("0", "false", "no", "off", ""):
        return False
    raise ValueError(f"{name} must be a boolean (got {raw!r})")


@dataclass(frozen=True)
class Settings:
    app_env: AppEnv
    log_level: LogLevel
    log_json: bool
    port: int
    database_url: str | None
    redis_url: str | None
    autosave_quiet_seconds: float = 2.0
    session_idle_seconds: float = 1800.0
    cors_origins: tuple[str, ...] = ("http://localhost:3000",)

    @property
    def is_dev(self) -> bool:
        return self.app_env == "dev"

    @property
    def is_test(self) -> bool:
        return self.app_env == "test"

    @property
    def is_prod(self) -> bool:
        return self.app_env == "prod"


def load_settings() -> Settings:
    app_env_raw = _getenv("APP_ENV", "dev").lower()
    log_level_raw = _getenv("LOG_LEVEL", "info").lower()
    port_raw = _getenv("PORT", "8000")
    quiet_raw = _getenv("AUTOSAVE_QUIET_SECONDS", "2.0")
    idle_raw = _getenv("SESSION_IDLE_SECONDS", "1800")

    if app_env_raw not in ("dev", "test", "prod"):
        raise ValueError(f"APP_ENV must be dev|test|prod (got {app_env_raw!r})")

    if log_level_raw not in ("debug", "info", "warning", "error"):
        raise ValueError(
            f"LOG_LEVEL must be debug|info|warning|error (got {log_level_raw!r})"
        )

    try:
        port = int(port_raw)
    except ValueError:
        raise ValueError(f"PORT must be an integer (got {port_raw!r})") from None

    try:
        autosave_quiet_seconds = float(quiet_raw)
    except ValueError:
        raise ValueError(
            f"AUTOSAVE_QUIET_SECONDS must be a number (got {quiet_raw!r})"
        ) from None
    if autosave_quiet_seconds <= 0:
        raise ValueError(
            f"AUTOSAVE_QUIET_SECONDS must be positive (got {quiet_raw!r})"
        )

    try:
        session_idle_seconds = float(idle_raw)
    except ValueError:
        raise ValueError(
            f"SESSION_IDLE_SECONDS must be a number (got {idle_raw!r})"
        ) from None
    if session_idle_seconds <= 0:
        raise ValueError(f"SESSION_IDLE_SECONDS must be positive (got {idle_raw!r})")

    log_json = _parse_bool("LOG_JSON", _getenv("LOG_JSON", "false"))

    database_url = _getenv("DATABASE_URL", "") or None
    redis_url = _getenv("REDIS_URL", "") or None

    cors_origins = tuple(
        origin.strip()
        for origin in _getenv("CORS_ORIGINS", "http://localhost:3000").split(",")
        if origin.strip()
    )

    return Settings(  # type: ignore[arg-type]
        app_env=app_env_raw,
        log_level=log_level_raw,
        log_json=log_json,
        port=port,
        database_url=database_url,
        redis_url=redis_url,
        autosave_quiet_seconds=autosave_quiet_seconds,
        session_idle_seconds=session_idle_seconds,
        cors_origins=cors_origins,
    )


# Module-level singleton so imports are cheap
SETTINGS = load_settings()
