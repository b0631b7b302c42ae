"""Проверка launch-данных Mini App (initData).

Подпись: HMAC-SHA256 от отсортированных пар key=value, ключ выводится из
токена бота. Любой отказ — InitDataError с причиной для клиента.
См. https://core.telegram.org/bots/webapps#validating-data-received-via-the-mini-app
"""

from __future__ import annotations

import hashlib
import hmac
import json
import re
import time
from typing import Any, Mapping
from urllib.parse import parse_qsl, urlencode

from pydantic import ValidationError

from .errors import InitDataError
from .models import BotInfo, InitData, TelegramUser

_BOT_TOKEN_RE = re.compile(r"^\d+:[A-Za-z0-9_-]{35}$")
_USER_PREFIX = "user."


def _parse(init_data: str) -> list[tuple[str, str]]:
    # Дубли ключей сохраняются: они тоже входят в data-check-string
    return parse_qsl(init_data, keep_blank_values=True)


def _first(pairs: list[tuple[str, str]], key: str) -> str | None:
    for k, v in pairs:
        if k == key:
            return v
    return None


def _secret_key(bot_token: str) -> bytes:
    # secret_key = HMAC-SHA256("WebAppData", bot_token)
    return hmac.new(b"WebAppData", bot_token.encode(), hashlib.sha256).digest()


def _data_check_string(pairs: list[tuple[str, str]]) -> str:
    """Отсортированные по ключу key=value без hash, через \\n."""
    return "\n".join(
        f"{k}={v}" for k, v in sorted(pairs, key=lambda kv: kv[0]) if k != "hash"
    )


def _compute_hash(pairs: list[tuple[str, str]], bot_token: str) -> str:
    return hmac.new(
        _secret_key(bot_token), _data_check_string(pairs).encode(), hashlib.sha256
    ).hexdigest()


def _as_bool(value: Any) -> bool:
    return value is True or value == "true"


def _as_int(value: str | None) -> int | None:
    """parseInt-подобный разбор: ведущие цифры, иначе None."""
    if value is None:
        return None
    match = re.match(r"\s*([+-]?\d+)", value)
    return int(match.group(1)) if match else None


def _user_fields(pairs: list[tuple[str, str]]) -> dict[str, Any] | None:
    """Сырые поля пользователя: JSON-поле user либо плоские ключи user.*"""
    raw = _first(pairs, "user")
    if raw is not None:
        try:
            data = json.loads(raw)
        except ValueError:
            return None
        if not isinstance(data, dict):
            return None
        data["is_premium"] = _as_bool(data.get("is_premium"))
        data["allows_write_to_pm"] = _as_bool(data.get("allows_write_to_pm"))
        return data

    flat = {k[len(_USER_PREFIX):]: v for k, v in reversed(pairs) if k.startswith(_USER_PREFIX)}
    if not flat:
        return None
    return {
        "id": _as_int(flat.get("id")),
        "first_name": flat.get("first_name"),
        "last_name": flat.get("last_name"),
        "username": flat.get("username"),
        "language_code": flat.get("language_code"),
        "is_premium": _as_bool(flat.get("is_premium")),
        "allows_write_to_pm": _as_bool(flat.get("allows_write_to_pm")),
        "photo_url": flat.get("photo_url"),
    }


def _build_user(fields: dict[str, Any] | None) -> TelegramUser | None:
    if not fields or not fields.get("id") or not fields.get("first_name"):
        return None
    try:
        return TelegramUser.model_validate(fields)
    except ValidationError:
        return None


def validate_init_data(init_data: str | None, bot_token: str) -> InitData:
    """Проверить подпись initData и достать пользователя.

    Свежесть auth_date здесь не проверяется, см. is_init_data_recent().

    Raises:
        InitDataError: пустые данные, нет hash, hash не совпал
            или пользователь без id/first_name.
    """
    if not init_data:
        raise InitDataError("Init data is required")

    pairs = _parse(init_data)
    received_hash = _first(pairs, "hash")
    if not received_hash:
        raise InitDataError("Hash is missing from init data")

    computed_hash = _compute_hash(pairs, bot_token or "")
    # bytes: после percent-decoding hash может быть не-ASCII
    if not hmac.compare_digest(computed_hash.encode(), received_hash.encode()):
        raise InitDataError("Hash validation failed")

    user = _build_user(_user_fields(pairs))
    if user is None:
        raise InitDataError("Invalid user data")

    return InitData(
        user=user,
        auth_date=_as_int(_first(pairs, "auth_date")),
        query_id=_first(pairs, "query_id"),
        start_param=_first(pairs, "start_param"),
        hash=received_hash,
    )


def extract_user_data(init_data: str) -> TelegramUser | None:
    """Пользователь из initData без проверки подписи (логи, диагностика)."""
    if not init_data:
        return None
    return _build_user(_user_fields(_parse(init_data)))


def is_init_data_recent(
    init_data: str,
    max_age: int = 3600,
    now: float | None = None,
) -> bool:
    """initData моложе max_age секунд. Без auth_date — всегда False."""
    auth_date = _as_int(_first(_parse(init_data or ""), "auth_date"))
    if auth_date is None:
        return False
    current = int(now if now is not None else time.time())
    return current - auth_date < max_age


def create_web_app_url(bot_username: str, start_param: str = "") -> str:
    """Ссылка t.me на бота, опционально с ?start=..."""
    base_url = f"https://t.me/{bot_username.replace('@', '')}"
    return f"{base_url}?start={start_param}" if start_param else base_url


def validate_bot_token(token: str | None) -> bool:
    """Формат токена: <bot_id>:<35 символов>."""
    if not token:
        return False
    return bool(_BOT_TOKEN_RE.match(token))


def get_bot_info(token: str | None) -> BotInfo | None:
    if not validate_bot_token(token):
        return None
    bot_id, _ = token.split(":", 1)
    return BotInfo(bot_id=int(bot_id), token=token)


def sign_init_data(fields: Mapping[str, Any], bot_token: str) -> str:
    """Собрать подписанную строку initData (dev-инструменты и тесты).

    dict-значения (например user) сериализуются в компактный JSON,
    как это делает Telegram.
    """
    pairs: list[tuple[str, str]] = []
    for key, value in fields.items():
        if isinstance(value, (dict, list)):
            value = json.dumps(value, separators=(",", ":"), ensure_ascii=False)
        elif isinstance(value, bool):
            value = "true" if value else "false"
        pairs.append((key, str(value)))
    pairs.append(("hash", _compute_hash(pairs, bot_token)))
    return urlencode(pairs)
