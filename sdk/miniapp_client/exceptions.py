"""Исключения SDK."""

from __future__ import annotations


class MiniAppAPIError(Exception):
    """Ошибка при вызове miniapp-api."""

    def __init__(
        self,
        message: str,
        status_code: int | None = None,
        error: str | None = None,
        detail: str | None = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error = error
        self.detail = detail
