"""Pydantic-модели: данные Telegram, представления пользователя."""

from __future__ import annotations

from datetime import datetime
from typing import Any

from pydantic import BaseModel


# === Telegram ===


class TelegramUser(BaseModel):
    """Пользователь из initData."""
    id: int
    first_name: str
    last_name: str | None = None
    username: str | None = None
    language_code: str | None = None
    is_premium: bool = False
    allows_write_to_pm: bool = False
    photo_url: str | None = None


class InitData(BaseModel):
    """Провалидированные initData."""
    user: TelegramUser
    auth_date: int | None = None
    query_id: str | None = None
    start_param: str | None = None
    hash: str


class BotInfo(BaseModel):
    bot_id: int
    token: str


# === Ответы ===


def user_view(user: dict[str, Any], *, detailed: bool = False) -> dict[str, Any]:
    """Строка users → camelCase-представление для клиента."""
    view: dict[str, Any] = {
        "id": user["id"],
        "telegramId": user["telegram_id"],
        "username": user.get("username"),
        "firstName": user.get("first_name"),
        "lastName": user.get("last_name"),
        "isPremium": user.get("is_premium"),
    }
    if detailed:
        view["languageCode"] = user.get("language_code")
        view["createdAt"] = _iso(user.get("created_at"))
        view["updatedAt"] = _iso(user.get("updated_at"))
    return view


def _iso(value: Any) -> Any:
    return value.isoformat() if isinstance(value, datetime) else value
