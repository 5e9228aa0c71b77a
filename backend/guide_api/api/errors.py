"""Translate service errors into JSON responses."""

import logging
from typing import Any

from fastapi import FastAPI, Request
from fastapi.responses import JSONResponse
from starlette import status
from starlette.exceptions import HTTPException as StarletteHTTPException

from guide_api.core.config import Settings
from guide_api.core.errors import NotReadyError, SearchError, ValidationError

logger = logging.getLogger(__name__)

NOT_READY_MESSAGE = "Server is not ready, please try again later."
SEARCH_FAILED_MESSAGE = "Failed to perform search."
INTERNAL_ERROR_MESSAGE = "Internal server error"
NOT_FOUND_MESSAGE = "Endpoint not found"


def error_body(error: str, details: str | None = None) -> dict[str, Any]:
    body: dict[str, Any] = {"error": error}
    if details is not None:
        body["details"] = details
    return body


def register_exception_handlers(app: FastAPI, settings: Settings) -> None:
    """Install handlers for the guide error taxonomy on ``app``."""

    def internal_details(exc: Exception) -> str | None:
        # Internal messages never leave a production process
        return str(exc) if settings.is_development else None

    @app.exception_handler(NotReadyError)
    async def not_ready_handler(request: Request, exc: NotReadyError) -> JSONResponse:
        logger.warning(f"{request.method} {request.url.path} before ready: {exc.details}")
        return JSONResponse(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            content=error_body(NOT_READY_MESSAGE, exc.details),
        )

    @app.exception_handler(ValidationError)
    async def validation_handler(request: Request, exc: ValidationError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_400_BAD_REQUEST,
            content=error_body(str(exc)),
        )

    @app.exception_handler(SearchError)
    async def search_error_handler(request: Request, exc: SearchError) -> JSONResponse:
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(SEARCH_FAILED_MESSAGE, internal_details(exc)),
        )

    @app.exception_handler(StarletteHTTPException)
    async def http_error_handler(
        request: Request, exc: StarletteHTTPException
    ) -> JSONResponse:
        # Unknown paths and unsupported methods on known paths look the same
        if exc.status_code in (status.HTTP_404_NOT_FOUND, status.HTTP_405_METHOD_NOT_ALLOWED):
            return JSONResponse(
                status_code=status.HTTP_404_NOT_FOUND,
                content=error_body(NOT_FOUND_MESSAGE),
            )
        return JSONResponse(
            status_code=exc.status_code,
            content=error_body(str(exc.detail)),
            headers=getattr(exc, "headers", None),
        )

    @app.exception_handler(Exception)
    async def unhandled_error_handler(request: Request, exc: Exception) -> JSONResponse:
        logger.exception(f"Unhandled error on {request.method} {request.url.path}")
        return JSONResponse(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR,
            content=error_body(INTERNAL_ERROR_MESSAGE, internal_details(exc)),
        )
