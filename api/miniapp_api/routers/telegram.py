"""Проверка initData без входа и публичная конфигурация Mini App."""

from __future__ import annotations

from typing import Any

from fastapi import APIRouter, Depends, Request

from ..config import Settings
from ..deps import AuthContext, get_app_settings, optional_session
from ..models import user_view
from ..telegram import create_web_app_url
from ..utils import require_valid_init_data

router = APIRouter(prefix="/api", tags=["telegram"])


@router.post("/telegram/validate")
async def validate(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """Проверить initData (подпись + свежесть), пользователь не создаётся."""
    result = await require_valid_init_data(request, settings)
    return {
        "success": True,
        "message": "Telegram Web App validation successful",
        "user": result.user.model_dump(),
    }


@router.get("/config")
async def client_config(
    auth: AuthContext | None = Depends(optional_session),
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """Данные для клиента: ссылка на Mini App и статус входа."""
    payload: dict[str, Any] = {
        "botUsername": settings.bot_username or None,
        "webAppUrl": create_web_app_url(settings.bot_username) if settings.bot_username else None,
        "authenticated": auth is not None,
    }
    if auth is not None:
        payload["user"] = user_view(auth.user)
    return payload
