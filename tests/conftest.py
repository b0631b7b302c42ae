"""
Общие фикстуры: тестовые настройки, подписанные initData, in-memory хранилище
вместо PostgreSQL и TestClient поверх свежего приложения.
"""

from __future__ import annotations

import itertools
import os
import time
from datetime import datetime, timezone
from typing import Any, Callable

import pytest

# Переменные окружения выставляются до импорта приложения
os.environ["BOT_TOKEN"] = "123456789:AAEhBOweik6ad9r_QXMENQjcrGbqCr4K-ra"
os.environ["BOT_USERNAME"] = "@miniapp_test_bot"
os.environ["JWT_SECRET"] = "test-jwt-secret-with-enough-length-0123456789"
os.environ["ENV"] = "test"
os.environ["STATIC_DIR"] = "__no_static_dir__"

from fastapi.testclient import TestClient  # noqa: E402

from miniapp_api.config import Settings, get_settings  # noqa: E402
from miniapp_api.main import create_app  # noqa: E402
from miniapp_api.models import TelegramUser  # noqa: E402
from miniapp_api.services import activity as activity_svc  # noqa: E402
from miniapp_api.services import sessions as sessions_svc  # noqa: E402
from miniapp_api.services import users as users_svc  # noqa: E402
from miniapp_api.telegram import sign_init_data  # noqa: E402

get_settings.cache_clear()


class FakeStore:
    """In-memory замена таблиц users / sessions / user_activity."""

    def __init__(self) -> None:
        self.users: dict[int, dict[str, Any]] = {}
        self.sessions: dict[str, dict[str, Any]] = {}
        self.activity: list[dict[str, Any]] = []
        self._user_ids = itertools.count(1)
        self._session_ids = itertools.count(1)

    async def upsert_user(self, tg_user: TelegramUser) -> dict[str, Any]:
        now = datetime.now(timezone.utc)
        for row in self.users.values():
            if row["telegram_id"] == tg_user.id:
                row.update(
                    username=tg_user.username,
                    first_name=tg_user.first_name,
                    last_name=tg_user.last_name,
                    language_code=tg_user.language_code,
                    is_premium=tg_user.is_premium,
                    updated_at=now,
                )
                return dict(row)
        row = {
            "id": next(self._user_ids),
            "telegram_id": tg_user.id,
            "username": tg_user.username,
            "first_name": tg_user.first_name,
            "last_name": tg_user.last_name,
            "language_code": tg_user.language_code,
            "is_premium": tg_user.is_premium,
            "created_at": now,
            "updated_at": now,
        }
        self.users[row["id"]] = row
        return dict(row)

    async def get_user_by_id(self, user_id: int) -> dict[str, Any] | None:
        row = self.users.get(user_id)
        return dict(row) if row else None

    async def create_session(
        self, user_id: int, token_hash: str, expires_at: datetime
    ) -> dict[str, Any]:
        row = {
            "id": next(self._session_ids),
            "user_id": user_id,
            "token_hash": token_hash,
            "expires_at": expires_at,
            "is_active": True,
            "created_at": datetime.now(timezone.utc),
        }
        self.sessions[token_hash] = row
        return dict(row)

    async def get_active_session(self, token_hash: str) -> dict[str, Any] | None:
        row = self.sessions.get(token_hash)
        if not row or not row["is_active"] or row["user_id"] not in self.users:
            return None
        if row["expires_at"] <= datetime.now(timezone.utc):
            return None
        return dict(row)

    async def invalidate_session(self, token_hash: str) -> bool:
        if token_hash in self.sessions:
            self.sessions[token_hash]["is_active"] = False
        return True

    async def log_activity(
        self,
        user_id: int,
        action: str,
        details: dict[str, Any] | None = None,
        ip_address: str | None = None,
        user_agent: str | None = None,
    ) -> None:
        self.activity.append(
            {
                "user_id": user_id,
                "action": action,
                "details": details or {},
                "ip_address": ip_address,
                "user_agent": user_agent,
            }
        )

    def actions(self) -> list[str]:
        return [entry["action"] for entry in self.activity]


@pytest.fixture
def settings() -> Settings:
    return get_settings()


@pytest.fixture
def bot_token(settings: Settings) -> str:
    return settings.bot_token


@pytest.fixture
def make_init_data(bot_token: str) -> Callable[..., str]:
    """Фабрика подписанных initData с пользователем Telegram."""

    def _make(
        user: dict[str, Any] | None = None,
        auth_date: int | None = None,
        token: str | None = None,
        **extra: Any,
    ) -> str:
        fields: dict[str, Any] = {
            "auth_date": int(time.time()) if auth_date is None else auth_date,
            "query_id": "AAHdF6IQAAAAAN0XohDhrOrc",
            "user": user
            if user is not None
            else {
                "id": 279058397,
                "first_name": "Vladislav",
                "last_name": "Kibenko",
                "username": "vdkfrost",
                "language_code": "ru",
                "is_premium": True,
                "allows_write_to_pm": True,
            },
        }
        fields.update(extra)
        return sign_init_data(fields, token or bot_token)

    return _make


@pytest.fixture
def store(monkeypatch: pytest.MonkeyPatch) -> FakeStore:
    fake = FakeStore()
    monkeypatch.setattr(users_svc, "upsert_user", fake.upsert_user)
    monkeypatch.setattr(users_svc, "get_user_by_id", fake.get_user_by_id)
    monkeypatch.setattr(sessions_svc, "create_session", fake.create_session)
    monkeypatch.setattr(sessions_svc, "get_active_session", fake.get_active_session)
    monkeypatch.setattr(sessions_svc, "invalidate_session", fake.invalidate_session)
    monkeypatch.setattr(activity_svc, "log_activity", fake.log_activity)
    return fake


@pytest.fixture
def app(settings: Settings, store: FakeStore):
    # Без `with TestClient(...)`: lifespan (пул БД) не запускается
    return create_app(settings)


@pytest.fixture
def client(app) -> TestClient:
    return TestClient(app)


@pytest.fixture
def login(client: TestClient, make_init_data: Callable[..., str]) -> Callable[..., dict[str, Any]]:
    """Выполнить вход и вернуть JSON ответа /api/auth/login."""

    def _login(**kwargs: Any) -> dict[str, Any]:
        resp = client.post("/api/auth/login", json={"initData": make_init_data(**kwargs)})
        assert resp.status_code == 200, resp.text
        return resp.json()

    return _login
