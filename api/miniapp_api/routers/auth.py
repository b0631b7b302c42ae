"""Вход через initData, выход и пример защищённого маршрута."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any

from fastapi import APIRouter, Depends, Request

from ..config import Settings
from ..deps import AuthContext, get_app_settings, require_session
from ..models import user_view
from ..security import create_user_payload, generate_token, hash_token, token_ttl
from ..services import activity as activity_svc
from ..services import sessions as sessions_svc
from ..services import users as users_svc
from ..utils import client_ip, require_valid_init_data, user_agent, utc_now_iso

router = APIRouter(prefix="/api", tags=["auth"])
logger = logging.getLogger(__name__)


@router.post("/auth/login")
async def login(
    request: Request,
    settings: Settings = Depends(get_app_settings),
) -> dict[str, Any]:
    """initData → пользователь (upsert) → JWT + строка sessions."""
    init = await require_valid_init_data(request, settings)

    user = await users_svc.upsert_user(init.user)
    token = generate_token(create_user_payload(user), settings)

    expires_at = datetime.now(timezone.utc) + token_ttl(settings)
    await sessions_svc.create_session(user["id"], hash_token(token), expires_at)

    await activity_svc.log_activity(
        user["id"],
        "login",
        {"method": "telegram_webapp"},
        client_ip(request),
        user_agent(request),
    )
    logger.info("User logged in: id=%s telegram_id=%s", user["id"], user["telegram_id"])

    return {
        "success": True,
        "message": "Authentication successful",
        "token": token,
        "user": user_view(user),
    }


@router.post("/auth/logout")
async def logout(
    request: Request,
    auth: AuthContext = Depends(require_session),
) -> dict[str, Any]:
    await sessions_svc.invalidate_session(auth.token_hash)
    await activity_svc.log_activity(
        auth.user["id"],
        "logout",
        {"method": "api"},
        client_ip(request),
        user_agent(request),
    )
    return {"success": True, "message": "Logout successful"}


@router.get("/protected")
async def protected(
    request: Request,
    auth: AuthContext = Depends(require_session),
) -> dict[str, Any]:
    await activity_svc.log_activity(
        auth.user["id"],
        "access_protected_route",
        {"route": "/api/protected"},
        client_ip(request),
        user_agent(request),
    )
    expires_at = auth.session.get("expires_at")
    return {
        "success": True,
        "message": "This is a protected route",
        "data": {
            "user": user_view(auth.user),
            "session": {
                "id": auth.session["id"],
                "expiresAt": expires_at.isoformat() if isinstance(expires_at, datetime) else expires_at,
            },
            "timestamp": utc_now_iso(),
        },
    }
