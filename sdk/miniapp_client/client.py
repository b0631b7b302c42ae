"""
MiniAppClient — асинхронный HTTP-клиент к miniapp-api.

Хранит JWT после login() и подставляет его в Authorization
для защищённых маршрутов.
"""

from __future__ import annotations

from typing import Any

import httpx

from .exceptions import MiniAppAPIError


class MiniAppClient:
    """
    HTTP-клиент к miniapp-api.

    Пример:
        async with MiniAppClient("http://localhost:3000") as api:
            await api.login(init_data)
            profile = await api.profile()
            await api.logout()
    """

    def __init__(
        self,
        base_url: str = "http://localhost:3000",
        token: str | None = None,
        timeout: float = 30.0,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self.token = token
        self._client = httpx.AsyncClient(
            base_url=self.base_url, timeout=timeout, transport=transport
        )

    async def close(self) -> None:
        """Закрыть HTTP-клиент."""
        if not self._client.is_closed:
            await self._client.aclose()

    async def __aenter__(self) -> MiniAppClient:
        return self

    async def __aexit__(self, *args: Any) -> None:
        await self.close()

    # --- Внутренние методы ---

    def _auth_headers(self) -> dict[str, str]:
        if not self.token:
            raise MiniAppAPIError("Not authenticated: call login() first")
        return {"Authorization": f"Bearer {self.token}"}

    async def _request(self, method: str, path: str, **kwargs: Any) -> dict[str, Any]:
        """Базовый HTTP-запрос с обработкой ошибок."""
        resp = await self._client.request(method, path, **kwargs)
        if resp.status_code >= 400:
            error: str | None = None
            try:
                data = resp.json()
                error = data.get("error")
                detail = data.get("message") or error or str(data)
            except Exception:
                detail = resp.text
            raise MiniAppAPIError(
                f"HTTP {resp.status_code}: {detail}",
                status_code=resp.status_code,
                error=error,
                detail=detail,
            )
        return resp.json()

    # === Публичные ===

    async def health(self) -> dict[str, Any]:
        return await self._request("GET", "/health")

    async def config(self) -> dict[str, Any]:
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else None
        return await self._request("GET", "/api/config", headers=headers)

    async def validate_init_data(self, init_data: str) -> dict[str, Any]:
        """Проверить initData без входа. Возвращает пользователя Telegram."""
        data = await self._request("POST", "/api/telegram/validate", json={"initData": init_data})
        return data["user"]

    async def login(self, init_data: str) -> dict[str, Any]:
        """Войти по initData. Токен сохраняется в клиенте."""
        data = await self._request("POST", "/api/auth/login", json={"initData": init_data})
        self.token = data["token"]
        return data["user"]

    # === Требуют входа ===

    async def profile(self) -> dict[str, Any]:
        data = await self._request("GET", "/api/user/profile", headers=self._auth_headers())
        return data["user"]

    async def protected(self) -> dict[str, Any]:
        data = await self._request("GET", "/api/protected", headers=self._auth_headers())
        return data["data"]

    async def logout(self) -> None:
        await self._request("POST", "/api/auth/logout", headers=self._auth_headers())
        self.token = None
