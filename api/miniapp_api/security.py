"""JWT-сессии Mini App и вспомогательные хэши токенов."""

from __future__ import annotations

import hashlib
import logging
import re
import secrets
import time
from datetime import timedelta
from typing import Any

import jwt

from .config import Settings, get_settings
from .errors import ExpiredTokenError, InvalidTokenError

logger = logging.getLogger(__name__)

ALGORITHM = "HS256"

_DURATION_RE = re.compile(r"^\s*(\d+)\s*([smhdw]?)\s*$", re.IGNORECASE)
_UNIT_SECONDS = {"": 1, "s": 1, "m": 60, "h": 3600, "d": 86400, "w": 7 * 86400}


def parse_duration(value: str | int) -> timedelta:
    """'7d', '12h', '30m', '45s', '2w' или число секунд → timedelta."""
    if isinstance(value, int):
        return timedelta(seconds=value)
    match = _DURATION_RE.match(value)
    if not match:
        raise ValueError(f"Invalid duration: {value!r}")
    amount, unit = match.groups()
    return timedelta(seconds=int(amount) * _UNIT_SECONDS[unit.lower()])


def token_ttl(settings: Settings | None = None) -> timedelta:
    settings = settings or get_settings()
    return parse_duration(settings.jwt_expires_in)


def _secret(settings: Settings) -> str:
    if not settings.jwt_secret:
        raise RuntimeError("JWT_SECRET is not configured")
    return settings.jwt_secret


def generate_token(payload: dict[str, Any], settings: Settings | None = None) -> str:
    """Подписать JWT (HS256) с iat/exp/iss/aud из настроек."""
    settings = settings or get_settings()
    now = int(time.time())
    claims = {
        **payload,
        "iat": now,
        "exp": now + int(token_ttl(settings).total_seconds()),
        "iss": settings.jwt_issuer,
        "aud": settings.jwt_audience,
    }
    return jwt.encode(claims, _secret(settings), algorithm=ALGORITHM)


def verify_token(token: str, settings: Settings | None = None) -> dict[str, Any]:
    """Проверить подпись, срок, issuer и audience. Возвращает claims."""
    settings = settings or get_settings()
    try:
        return jwt.decode(
            token,
            _secret(settings),
            algorithms=[ALGORITHM],
            audience=settings.jwt_audience,
            issuer=settings.jwt_issuer,
        )
    except jwt.ExpiredSignatureError as exc:
        raise ExpiredTokenError("Token expired") from exc
    except jwt.InvalidTokenError as exc:
        logger.debug("JWT rejected: %s", exc)
        raise InvalidTokenError(str(exc)) from exc


def hash_token(token: str) -> str:
    """SHA-256 токена: в БД хранится только он."""
    return hashlib.sha256(token.encode()).hexdigest()


def generate_refresh_token() -> str:
    return secrets.token_hex(64)


def create_user_payload(user: dict[str, Any]) -> dict[str, Any]:
    """Claims пользователя для JWT из строки users."""
    return {
        "userId": user["id"],
        "telegramId": user["telegram_id"],
        "username": user.get("username"),
        "firstName": user.get("first_name"),
        "lastName": user.get("last_name"),
        "isPremium": user.get("is_premium"),
    }
