"""Application configuration accessors.

Centralizes environment variable parsing & defaults so the rest of the
package never touches ``os.environ`` directly.
"""
from __future__ import annotations

import os

APP_NAME = "locallibrary"
APP_VERSION = "1.0.0"
APP_DESCRIPTION = "Local library catalog: authors, books, genres and copies"

DEFAULT_DATABASE_URL = "sqlite:///./library.db"
DEFAULT_LOG_LEVEL = "INFO"


def _raw_env(name: str, default: str | None = None) -> str | None:
    val = os.getenv(name)
    return val if val is not None else default


def database_url() -> str:
    return _raw_env("DATABASE_URL", DEFAULT_DATABASE_URL)  # type: ignore[return-value]


def app_env() -> str:
    return (_raw_env("APP_ENV", "development") or "development").strip().lower()


def is_production() -> bool:
    return app_env() == "production"


def log_level_name() -> str:
    return _raw_env("LOG_LEVEL", DEFAULT_LOG_LEVEL).upper()  # type: ignore[union-attr]


def connect_attempts() -> int:
    try:
        return max(1, int(_raw_env("DB_CONNECT_ATTEMPTS", "3")))
    except ValueError:
        return 3


def connect_retry_delay() -> float:
    try:
        return max(0.0, float(_raw_env("DB_CONNECT_RETRY_DELAY", "1.0")))
    except ValueError:
        return 1.0


def server_host() -> str:
    return _raw_env("HOST", "127.0.0.1")  # type: ignore[return-value]


def server_port() -> int:
    try:
        return int(_raw_env("PORT", "3000"))
    except ValueError:
        return 3000


def summarize_runtime_config() -> dict:
    return {
        "app_env": app_env(),
        "log_level": log_level_name(),
        "connect_attempts": connect_attempts(),
    }


__all__ = [
    "APP_NAME",
    "APP_VERSION",
    "APP_DESCRIPTION",
    "database_url",
    "app_env",
    "is_production",
    "log_level_name",
    "connect_attempts",
    "connect_retry_delay",
    "server_host",
    "server_port",
    "summarize_runtime_config",
]
