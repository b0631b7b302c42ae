"""FastAPI-зависимости аутентификации по Bearer JWT + активной сессии."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from fastapi import Request

from .config import Settings
from .errors import ApiError, ExpiredTokenError, InvalidTokenError
from .security import hash_token, verify_token
from .services import sessions as sessions_svc
from .services import users as users_svc

logger = logging.getLogger(__name__)


@dataclass
class AuthContext:
    """Аутентифицированный запрос: пользователь, сессия, хэш токена."""
    user: dict[str, Any]
    session: dict[str, Any]
    token_hash: str


def get_app_settings(request: Request) -> Settings:
    """Настройки того приложения, которое обслуживает запрос (create_app(settings))."""
    return request.app.state.settings


def _bearer_token(request: Request) -> str | None:
    # "Bearer <token>": берём вторую часть заголовка
    header = request.headers.get("authorization")
    if not header:
        return None
    parts = header.split(" ")
    return parts[1] if len(parts) > 1 and parts[1] else None


async def _authenticate(token: str, settings: Settings) -> AuthContext:
    claims = verify_token(token, settings)
    user_id = claims.get("userId")
    user = await users_svc.get_user_by_id(user_id) if user_id is not None else None
    if not user:
        raise ApiError(
            401, "User not found", "The user associated with this token no longer exists"
        )

    token_hash = hash_token(token)
    session = await sessions_svc.get_active_session(token_hash)
    if not session:
        raise ApiError(401, "Session expired", "Your session has expired. Please login again")

    return AuthContext(user=user, session=session, token_hash=token_hash)


async def require_session(request: Request) -> AuthContext:
    """Обязательная аутентификация. Ошибки → 401/500 в формате {error, message}."""
    token = _bearer_token(request)
    if not token:
        raise ApiError(
            401, "Access token required", "Please provide a valid authentication token"
        )
    try:
        return await _authenticate(token, get_app_settings(request))
    except ApiError:
        raise
    except ExpiredTokenError:
        raise ApiError(401, "Token expired", "The provided token has expired")
    except InvalidTokenError:
        raise ApiError(401, "Invalid token", "The provided token is invalid")
    except Exception:
        logger.exception("Authentication error")
        raise ApiError(500, "Authentication failed", "An error occurred during authentication")


async def optional_session(request: Request) -> AuthContext | None:
    """Аутентификация, если возможна; иначе None без ошибки."""
    token = _bearer_token(request)
    if not token:
        return None
    try:
        return await _authenticate(token, get_app_settings(request))
    except Exception as exc:
        logger.debug("Optional auth skipped: %s", exc)
        return None
