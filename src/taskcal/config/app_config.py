"""
Application configuration.

All settings come from the environment and are read when an ``AppConfig`` is
constructed, so tests can patch the environment and build a fresh config.

Environment Variables:
    DATABASE_URL: Storage connection string (default: built from POSTGRES_*)
    POSTGRES_HOST: Fallback DSN host (default: 'postgres')
    POSTGRES_PORT: Fallback DSN port (default: 5432)
    POSTGRES_DB: Fallback DSN database (default: 'tasks')
    POSTGRES_USER: Fallback DSN user (default: 'postgres')
    POSTGRES_PASSWORD: Fallback DSN password (default: 'postgres')
    HOST: Bind address (default: '0.0.0.0')
    PORT: Listening port (default: 3000)
    CORS_ALLOW_ORIGINS: Comma separated origins (default: local UI origins)
    STORE_READY_MAX_ATTEMPTS: Liveness probe attempts at startup (default: 30)
    STORE_READY_DELAY_S: Seconds between probe attempts (default: 1.0)
    DB_POOL_SIZE: Connection pool size (default: 10)
    DB_MAX_OVERFLOW: Extra connections above pool size (default: 5)
    DB_POOL_TIMEOUT: Seconds to wait for a pooled connection (default: 30)
    DB_POOL_RECYCLE: Seconds before a connection is recycled (default: 1800)
    DB_POOL_PRE_PING: Probe connections on checkout (default: true)
    LOG_LEVEL: Logging level (default: 'INFO')
"""
from __future__ import annotations

import os
from dataclasses import dataclass, field
from typing import List

DEFAULT_CORS_ORIGINS = "http://localhost:8080,http://localhost:3000"


def get_env_setting(key: str, default: str) -> str:
    return os.getenv(key, default)


def get_env_int_setting(key: str, default: int) -> int:
    try:
        return int(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_env_float_setting(key: str, default: float) -> float:
    try:
        return float(os.getenv(key, str(default)))
    except (ValueError, TypeError):
        return default


def get_env_bool_setting(key: str, default: bool) -> bool:
    value = os.getenv(key, str(default)).lower()
    return value in ("true", "1", "yes", "on")


def _default_database_url() -> str:
    explicit = get_env_setting("DATABASE_URL", "").strip()
    if explicit:
        return explicit
    user = get_env_setting("POSTGRES_USER", "postgres")
    password = get_env_setting("POSTGRES_PASSWORD", "postgres")
    host = get_env_setting("POSTGRES_HOST", "postgres")
    port = get_env_int_setting("POSTGRES_PORT", 5432)
    db = get_env_setting("POSTGRES_DB", "tasks")
    return f"postgresql://{user}:{password}@{host}:{port}/{db}"


def _default_cors_origins() -> List[str]:
    raw = get_env_setting("CORS_ALLOW_ORIGINS", DEFAULT_CORS_ORIGINS)
    return [origin.strip() for origin in raw.split(",") if origin.strip()]


@dataclass(frozen=True)
class AppConfig:
    """Centralized configuration for the task calendar service."""

    # Storage
    database_url: str = field(default_factory=_default_database_url)

    # HTTP server
    host: str = field(default_factory=lambda: get_env_setting("HOST", "0.0.0.0"))
    port: int = field(default_factory=lambda: get_env_int_setting("PORT", 3000))
    cors_allow_origins: List[str] = field(default_factory=_default_cors_origins)

    # Startup readiness wait
    ready_max_attempts: int = field(
        default_factory=lambda: get_env_int_setting("STORE_READY_MAX_ATTEMPTS", 30)
    )
    ready_delay_s: float = field(
        default_factory=lambda: get_env_float_setting("STORE_READY_DELAY_S", 1.0)
    )

    # Pool config (PostgreSQL only)
    pool_size: int = field(default_factory=lambda: get_env_int_setting("DB_POOL_SIZE", 10))
    max_overflow: int = field(default_factory=lambda: get_env_int_setting("DB_MAX_OVERFLOW", 5))
    pool_timeout: int = field(default_factory=lambda: get_env_int_setting("DB_POOL_TIMEOUT", 30))
    pool_recycle: int = field(default_factory=lambda: get_env_int_setting("DB_POOL_RECYCLE", 1800))
    pool_pre_ping: bool = field(default_factory=lambda: get_env_bool_setting("DB_POOL_PRE_PING", True))

    # Logging
    log_level: str = field(default_factory=lambda: get_env_setting("LOG_LEVEL", "INFO").upper())
