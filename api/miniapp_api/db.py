"""Подключение к PostgreSQL: пул соединений, тонкие SQL-хелперы, схема."""

from __future__ import annotations

import logging
from contextlib import asynccontextmanager
from importlib import resources
from typing import Any, AsyncIterator, Iterable

from psycopg import AsyncConnection
from psycopg.rows import dict_row
from psycopg_pool import AsyncConnectionPool

from .config import Settings, get_settings

logger = logging.getLogger(__name__)

_pool: AsyncConnectionPool | None = None


async def init_pool(settings: Settings | None = None) -> None:
    """Инициализация пула соединений."""
    global _pool
    if _pool is not None:
        return
    settings = settings or get_settings()
    _pool = AsyncConnectionPool(
        conninfo=settings.db_dsn,
        min_size=settings.db_pool_min_size,
        max_size=settings.db_pool_max_size,
        max_idle=settings.db_pool_max_idle,
        timeout=settings.db_connect_timeout,
        kwargs={"connect_timeout": max(1, int(settings.db_connect_timeout))},
        open=False,
    )
    await _pool.open()
    logger.info("DB pool opened: %s", settings.db_dsn.split("@")[-1])


async def close_pool() -> None:
    """Закрытие пула."""
    global _pool
    if _pool is not None:
        await _pool.close()
        _pool = None


@asynccontextmanager
async def get_conn() -> AsyncIterator[AsyncConnection]:
    """Получить соединение из пула."""
    if _pool is None:
        raise RuntimeError("DB pool not initialized")
    async with _pool.connection() as conn:
        yield conn


async def fetch_one(query: str, params: Iterable[Any] | None = None) -> dict | None:
    async with get_conn() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, params or [])
            return await cur.fetchone()


async def fetch_all(query: str, params: Iterable[Any] | None = None) -> list[dict]:
    async with get_conn() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, params or [])
            rows = await cur.fetchall()
            return list(rows)


async def execute(query: str, params: Iterable[Any] | None = None) -> int:
    """Выполнить запрос без возврата данных. Возвращает rowcount."""
    async with get_conn() as conn:
        async with conn.cursor() as cur:
            await cur.execute(query, params or [])
            await conn.commit()
            return cur.rowcount


async def execute_returning(query: str, params: Iterable[Any] | None = None) -> dict | None:
    async with get_conn() as conn:
        async with conn.cursor(row_factory=dict_row) as cur:
            await cur.execute(query, params or [])
            row = await cur.fetchone()
            await conn.commit()
            return row


async def execute_script(script: str) -> None:
    """Выполнить несколько SQL-выражений одним запросом.

    Без параметров: psycopg допускает multi-statement только в этом режиме.
    """
    async with get_conn() as conn:
        async with conn.cursor() as cur:
            await cur.execute(script)
            await conn.commit()


def load_schema() -> str:
    """Текст schema.sql, поставляемого вместе с пакетом."""
    return resources.files(__package__).joinpath("schema.sql").read_text(encoding="utf-8")


async def check_connection() -> bool:
    """Проверить доступность БД (SELECT NOW())."""
    try:
        row = await fetch_one("SELECT NOW() AS now")
    except Exception as exc:
        logger.error("Database connection failed: %s", exc)
        return False
    logger.info("Database connected successfully: %s", row["now"] if row else None)
    return True


async def initialize_database() -> bool:
    """Применить schema.sql. Схема идемпотентна, безопасно при каждом старте."""
    try:
        await execute_script(load_schema())
    except Exception as exc:
        logger.error("Database initialization failed: %s", exc)
        return False
    logger.info("Database schema initialized successfully")
    return True
