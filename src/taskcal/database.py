# Copyright 2024 TaskCal Contributors
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""
Store: connection pool lifecycle and schema management for the task table.

The engine is created from a single connection string. PostgreSQL URLs are
normalised to the asyncpg driver and get a tuned connection pool; any other
async SQLAlchemy URL (SQLite via aiosqlite in tests) is used as given.
"""

import asyncio
import logging
import re
from typing import Any, Dict, Optional

from sqlalchemy import text
from sqlalchemy.engine import make_url
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.schema import CreateIndex, CreateTable

from .config import AppConfig
from .exceptions import SchemaError, StoreUnavailableError
from .models.task import Task
from .utils.retry import retry

logger = logging.getLogger(__name__)

__all__ = [
    "normalize_async_dsn",
    "create_engine_from_config",
    "TaskStore",
]

# DDL is retried this many times to ride out concurrent-creation races.
SCHEMA_ATTEMPTS = 3
SCHEMA_RETRY_DELAY_S = 0.5


def normalize_async_dsn(dsn: str) -> str:
    """
    Force an async driver onto the DSN.

    e.g., postgresql://..., postgres://..., postgresql+psycopg2://... all become
    postgresql+asyncpg://...; other schemes are left untouched.
    """
    dsn = dsn.strip()
    return re.sub(
        r"^postgres(?:ql)?(\+[a-z0-9_]+)?://",
        "postgresql+asyncpg://",
        dsn,
        flags=re.IGNORECASE,
    )


def create_engine_from_config(config: AppConfig) -> AsyncEngine:
    dsn = normalize_async_dsn(config.database_url)
    url = make_url(dsn)

    kwargs: Dict[str, Any] = {"future": True}
    if url.get_backend_name() == "postgresql":
        kwargs.update(
            pool_size=config.pool_size,
            max_overflow=config.max_overflow,
            pool_timeout=config.pool_timeout,
            pool_recycle=config.pool_recycle,
            pool_pre_ping=config.pool_pre_ping,
            echo_pool=False,
        )
        logger.info(
            "Creating async PostgreSQL engine for %s (pool_size=%s)",
            url.host, config.pool_size,
        )
    else:
        logger.info("Creating async engine for backend %s", url.get_backend_name())

    return create_async_engine(dsn, **kwargs)


def _safe_pool_stats(pool) -> Dict[str, Optional[int]]:
    stats: Dict[str, Optional[int]] = {}
    for key, attr in (("size", "size"), ("checked_out", "checkedout"), ("overflow", "overflow")):
        fn = getattr(pool, attr, None)
        try:
            stats[key] = fn() if callable(fn) else None
        except Exception:
            stats[key] = None
    stats["checked_in"] = (
        (stats["size"] - stats["checked_out"])
        if all(isinstance(stats.get(k), int) for k in ("size", "checked_out"))
        else None
    )
    return stats


class TaskStore:
    """
    Owns the engine and session factory for the task table.

    Nothing should query the store before ``wait_until_ready()`` and
    ``ensure_schema()`` have both completed; the application gates its API on
    that (see ``taskcal.main``).
    """

    def __init__(self, engine: AsyncEngine) -> None:
        self._engine = engine
        self._session_factory = async_sessionmaker(
            bind=engine, expire_on_commit=False, class_=AsyncSession
        )

    @classmethod
    def from_config(cls, config: AppConfig) -> "TaskStore":
        return cls(create_engine_from_config(config))

    @property
    def engine(self) -> AsyncEngine:
        return self._engine

    @property
    def session_factory(self) -> async_sessionmaker:
        return self._session_factory

    # ─────────────────────────────────────────────────────────────────
    # Startup
    # ─────────────────────────────────────────────────────────────────

    async def _ping(self) -> None:
        async with self._engine.connect() as conn:
            await conn.execute(text("SELECT 1"))

    async def wait_until_ready(self, max_attempts: int = 30, delay: float = 1.0) -> None:
        """Block until ``SELECT 1`` succeeds, retrying with a fixed delay."""

        def _log_attempt(attempt: int, exc: BaseException) -> None:
            logger.warning(
                "Database connection attempt %d/%d failed, retrying... (%s)",
                attempt, max_attempts, exc.__class__.__name__,
            )

        try:
            await retry(
                self._ping,
                max_attempts,
                delay,
                retry_on=(SQLAlchemyError, OSError, asyncio.TimeoutError),
                on_retry=_log_attempt,
            )
        except (SQLAlchemyError, OSError, asyncio.TimeoutError) as exc:
            logger.error(
                "Database connection attempt %d/%d failed: %s", max_attempts, max_attempts, exc
            )
            raise StoreUnavailableError(
                f"Could not connect to database after {max_attempts} attempts"
            ) from exc
        logger.info("Database connection established")

    async def _create_schema(self) -> None:
        table = Task.__table__
        async with self._engine.begin() as conn:
            await conn.execute(CreateTable(table, if_not_exists=True))
            for index in sorted(table.indexes, key=lambda ix: ix.name):
                await conn.execute(CreateIndex(index, if_not_exists=True))

    async def ensure_schema(self) -> None:
        """Create the task table and its date index if they do not exist."""
        try:
            await retry(
                self._create_schema,
                SCHEMA_ATTEMPTS,
                SCHEMA_RETRY_DELAY_S,
                retry_on=(SQLAlchemyError,),
            )
        except SQLAlchemyError as exc:
            logger.error("Database initialization error: %s", exc)
            raise SchemaError() from exc
        logger.info("Database initialized successfully")

    # ─────────────────────────────────────────────────────────────────
    # Health / stats / shutdown
    # ─────────────────────────────────────────────────────────────────

    async def check_health(self) -> bool:
        try:
            async with self._engine.connect() as conn:
                result = await conn.execute(text("SELECT 1"))
                return result.scalar_one_or_none() == 1
        except Exception as e:
            logger.error(f"Task store health check failed: {e}")
            return False

    def pool_stats(self) -> Dict[str, Optional[int]]:
        return _safe_pool_stats(self._engine.pool)

    async def dispose(self) -> None:
        await self._engine.dispose()
        logger.info("Database engine disposed")
