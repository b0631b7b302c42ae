"""Сессии: строка на каждый выданный JWT (по его SHA-256), инвалидация, чистка."""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime

from ..db import execute, execute_returning, fetch_one

logger = logging.getLogger(__name__)


async def create_session(user_id: int, token_hash: str, expires_at: datetime) -> dict:
    row = await execute_returning(
        """
        INSERT INTO sessions (user_id, token_hash, expires_at)
        VALUES (%s, %s, %s)
        RETURNING *
        """,
        [user_id, token_hash, expires_at],
    )
    if row is None:
        raise RuntimeError(f"Session insert returned no row for user_id={user_id}")
    return row


async def get_active_session(token_hash: str) -> dict | None:
    """Активная и не истёкшая сессия по хэшу токена."""
    return await fetch_one(
        """
        SELECT s.id, s.user_id, s.token_hash, s.expires_at, s.is_active, s.created_at
        FROM sessions s
        JOIN users u ON u.id = s.user_id
        WHERE s.token_hash = %s
          AND s.is_active = TRUE
          AND s.expires_at > NOW()
        """,
        [token_hash],
    )


async def invalidate_session(token_hash: str) -> bool:
    await execute(
        "UPDATE sessions SET is_active = FALSE WHERE token_hash = %s",
        [token_hash],
    )
    return True


async def clean_expired_sessions() -> int:
    deleted = await execute("DELETE FROM sessions WHERE expires_at < NOW()")
    logger.info("Cleaned %s expired sessions", deleted)
    return deleted


async def run_cleanup_loop(interval: float) -> None:
    """Фоновая чистка истёкших сессий раз в interval секунд.

    Ошибки логируются, цикл продолжается. Останавливается через cancel().
    """
    while True:
        await asyncio.sleep(interval)
        try:
            await clean_expired_sessions()
        except Exception as exc:
            logger.error("Error cleaning expired sessions: %s", exc)
