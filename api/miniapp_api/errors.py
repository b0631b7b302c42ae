"""Исключения API и их рендеринг в JSON вида {"error": ..., "message": ...}."""

from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException
from starlette.middleware.base import BaseHTTPMiddleware, RequestResponseEndpoint
from starlette.responses import Response

from .config import Settings, get_settings

logger = logging.getLogger(__name__)


class InitDataError(Exception):
    """initData от Telegram не прошли валидацию."""


class TokenError(Exception):
    """Проблема с JWT."""


class InvalidTokenError(TokenError):
    pass


class ExpiredTokenError(TokenError):
    pass


class ApiError(Exception):
    """Ошибка, которую роут отдаёт клиенту как есть."""

    def __init__(self, status_code: int, error: str, message: str | None = None):
        super().__init__(message or error)
        self.status_code = status_code
        self.error = error
        self.message = message

    def to_dict(self) -> dict[str, str]:
        body = {"error": self.error}
        if self.message is not None:
            body["message"] = self.message
        return body


async def api_error_handler(request: Request, exc: ApiError) -> JSONResponse:
    return JSONResponse(exc.to_dict(), status_code=exc.status_code)


async def http_error_handler(request: Request, exc: StarletteHTTPException) -> JSONResponse:
    """404 → {"error": "Route not found", "path": ...}, остальные HTTP-ошибки как есть."""
    if exc.status_code == 404:
        return JSONResponse(
            {"error": "Route not found", "path": request.url.path},
            status_code=404,
        )
    return JSONResponse(
        {"error": str(exc.detail)},
        status_code=exc.status_code,
        headers=getattr(exc, "headers", None),
    )


async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
    logger.error(
        "Unhandled exception in %s %s: %s",
        request.method, request.url.path, exc,
        exc_info=exc,
    )
    settings: Settings = getattr(request.app.state, "settings", None) or get_settings()
    message = str(exc) if settings.is_development else "Internal server error"
    return JSONResponse(
        {"error": "Something went wrong!", "message": message},
        status_code=500,
    )


class UnhandledErrorMiddleware(BaseHTTPMiddleware):
    """Ловит необработанные ошибки внутри стека middleware.

    Ответ 500 проходит обратно через CORSMiddleware и получает его заголовки.
    """

    async def dispatch(self, request: Request, call_next: RequestResponseEndpoint) -> Response:
        try:
            return await call_next(request)
        except Exception as exc:
            return await unhandled_error_handler(request, exc)


def setup_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(ApiError, api_error_handler)
    app.add_exception_handler(StarletteHTTPException, http_error_handler)
    app.add_exception_handler(Exception, unhandled_error_handler)
