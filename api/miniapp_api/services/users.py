"""Пользователи Mini App: upsert по telegram_id и выборки."""

from __future__ import annotations

import logging

from ..db import execute_returning, fetch_one
from ..models import TelegramUser

logger = logging.getLogger(__name__)


async def upsert_user(tg_user: TelegramUser) -> dict:
    """Создать пользователя или обновить профиль из свежих initData."""
    row = await execute_returning(
        """
        INSERT INTO users (telegram_id, username, first_name, last_name, language_code, is_premium)
        VALUES (%s, %s, %s, %s, %s, %s)
        ON CONFLICT (telegram_id) DO UPDATE
        SET username = EXCLUDED.username,
            first_name = EXCLUDED.first_name,
            last_name = EXCLUDED.last_name,
            language_code = EXCLUDED.language_code,
            is_premium = EXCLUDED.is_premium,
            updated_at = NOW()
        RETURNING *
        """,
        [
            tg_user.id,
            tg_user.username,
            tg_user.first_name,
            tg_user.last_name,
            tg_user.language_code,
            tg_user.is_premium,
        ],
    )
    if row is None:
        raise RuntimeError(f"Upsert returned no row for telegram_id={tg_user.id}")
    logger.debug("User upserted: id=%s telegram_id=%s", row["id"], tg_user.id)
    return row


async def get_user_by_telegram_id(telegram_id: int) -> dict | None:
    return await fetch_one("SELECT * FROM users WHERE telegram_id = %s", [telegram_id])


async def get_user_by_id(user_id: int) -> dict | None:
    return await fetch_one("SELECT * FROM users WHERE id = %s", [user_id])
