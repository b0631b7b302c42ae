"""Startup / shutdown приложения без PostgreSQL: функции пула подменены."""

from __future__ import annotations

import asyncio

import pytest
from fastapi.testclient import TestClient

from miniapp_api import main
from miniapp_api.config import Settings
from miniapp_api.main import create_app


class FakeDatabase:
    def __init__(self, connected: bool = True, schema_ok: bool = True) -> None:
        self.connected = connected
        self.schema_ok = schema_ok
        self.calls: list[str] = []
        self.pool_settings: Settings | None = None
        self.cleanup_interval: float | None = None
        self.cleanup_cancelled = False

    async def init_pool(self, settings: Settings) -> None:
        self.calls.append("init_pool")
        self.pool_settings = settings

    async def check_connection(self) -> bool:
        self.calls.append("check_connection")
        return self.connected

    async def initialize_database(self) -> bool:
        self.calls.append("initialize_database")
        return self.schema_ok

    async def close_pool(self) -> None:
        self.calls.append("close_pool")

    async def run_cleanup_loop(self, interval: float) -> None:
        self.cleanup_interval = interval
        try:
            await asyncio.Event().wait()
        except asyncio.CancelledError:
            self.cleanup_cancelled = True
            raise


def _patch(monkeypatch: pytest.MonkeyPatch, db: FakeDatabase) -> None:
    for name in ("init_pool", "check_connection", "initialize_database", "close_pool", "run_cleanup_loop"):
        monkeypatch.setattr(main, name, getattr(db, name))


def test_startup_and_shutdown(settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    db = FakeDatabase()
    _patch(monkeypatch, db)
    app_settings = settings.model_copy(update={"session_cleanup_interval": 120})
    app = create_app(app_settings)

    with TestClient(app) as client:
        assert client.get("/health").status_code == 200
        assert db.calls == ["init_pool", "check_connection", "initialize_database"]
        assert db.pool_settings is app_settings

    assert db.cleanup_interval == 120
    assert db.cleanup_cancelled is True
    assert db.calls[-1] == "close_pool"


def test_startup_fails_without_database(settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    db = FakeDatabase(connected=False)
    _patch(monkeypatch, db)

    with pytest.raises(RuntimeError, match="Failed to connect to database"):
        with TestClient(create_app(settings)):
            pass

    assert db.calls == ["init_pool", "check_connection", "close_pool"]
    assert db.cleanup_interval is None


def test_startup_fails_on_schema_error(settings: Settings, monkeypatch: pytest.MonkeyPatch) -> None:
    db = FakeDatabase(schema_ok=False)
    _patch(monkeypatch, db)

    with pytest.raises(RuntimeError, match="Failed to initialize database schema"):
        with TestClient(create_app(settings)):
            pass

    assert db.calls == ["init_pool", "check_connection", "initialize_database", "close_pool"]
    assert db.cleanup_interval is None
