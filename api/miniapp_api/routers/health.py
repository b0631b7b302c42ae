"""Эндпоинты мониторинга: корень, health."""

from __future__ import annotations

import time
from typing import Any

from fastapi import APIRouter, Depends

from ..config import Settings
from ..deps import get_app_settings
from ..utils import utc_now_iso

router = APIRouter(tags=["health"])

_STARTED_AT = time.monotonic()


@router.get("/")
async def root(settings: Settings = Depends(get_app_settings)) -> dict[str, Any]:
    return {
        "message": "Telegram Mini App API is running!",
        "status": "success",
        "timestamp": utc_now_iso(),
        "environment": settings.env,
    }


@router.get("/health")
async def health() -> dict[str, Any]:
    return {
        "status": "healthy",
        "uptime": time.monotonic() - _STARTED_AT,
        "timestamp": utc_now_iso(),
    }
