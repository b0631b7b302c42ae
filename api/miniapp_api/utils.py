"""Общие утилиты роутеров: чтение initData из тела, контекст клиента."""

from __future__ import annotations

import json
from datetime import datetime, timezone

from fastapi import Request

from .config import Settings
from .errors import ApiError, InitDataError
from .models import InitData
from .telegram import is_init_data_recent, validate_init_data


def utc_now_iso() -> str:
    return datetime.now(timezone.utc).isoformat()


def client_ip(request: Request) -> str | None:
    return request.client.host if request.client else None


def user_agent(request: Request) -> str | None:
    return request.headers.get("user-agent")


async def read_init_data(request: Request) -> str | None:
    """initData из JSON-тела или формы (application/x-www-form-urlencoded)."""
    content_type = request.headers.get("content-type", "")
    if content_type.startswith(("application/x-www-form-urlencoded", "multipart/form-data")):
        form = await request.form()
        value = form.get("initData")
        return value if isinstance(value, str) else None

    raw = await request.body()
    if not raw:
        return None
    try:
        data = json.loads(raw)
    except ValueError:
        raise ApiError(400, "Invalid JSON body")
    if not isinstance(data, dict):
        return None
    value = data.get("initData")
    return value if isinstance(value, str) else None


async def require_valid_init_data(request: Request, settings: Settings) -> InitData:
    """Общая проверка для validate/login: наличие, подпись, свежесть."""
    init_data = await read_init_data(request)
    if not init_data:
        raise ApiError(400, "initData is required")

    try:
        result = validate_init_data(init_data, settings.bot_token)
    except InitDataError as exc:
        raise ApiError(401, "Invalid init data", str(exc))

    if not is_init_data_recent(init_data, max_age=settings.init_data_max_age):
        raise ApiError(
            401, "Expired init data", "Init data is too old. Please refresh the app."
        )
    return result
