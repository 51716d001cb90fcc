"""Map core errors and HTTP errors to ``{"ok": false, "message": ...}`` payloads."""

from __future__ import annotations

import logging

from fastapi import FastAPI, HTTPException, Request, status
from fastapi.responses import JSONResponse

from finance_cloud.errors import (
    FinanceCoreError,
    NotAuthorized,
    SchemaMissing,
    UpstreamUnavailable,
    ValidationFailed,
)

logger = logging.getLogger(__name__)


def status_for(exc: FinanceCoreError) -> int:
    if isinstance(exc, NotAuthorized):
        return status.HTTP_401_UNAUTHORIZED
    if isinstance(exc, ValidationFailed):
        return status.HTTP_422_UNPROCESSABLE_ENTITY
    if isinstance(exc, UpstreamUnavailable):
        return status.HTTP_502_BAD_GATEWAY
    return status.HTTP_500_INTERNAL_SERVER_ERROR


def message_for(exc: FinanceCoreError) -> str:
    if isinstance(exc, SchemaMissing):
        return exc.hint
    return str(exc)


def error_payload(message: str, status_code: int) -> JSONResponse:
    return JSONResponse(status_code=status_code, content={"ok": False, "message": message})


async def _core_error_handler(request: Request, exc: FinanceCoreError) -> JSONResponse:
    code = status_for(exc)
    if code >= 500:
        logger.error("%s %s failed: %s", request.method, request.url.path, exc)
    return error_payload(message_for(exc), code)


async def _http_error_handler(request: Request, exc: HTTPException) -> JSONResponse:
    return JSONResponse(
        status_code=exc.status_code,
        content={"ok": False, "message": exc.detail},
        headers=getattr(exc, "headers", None),
    )


def register_error_handlers(app: FastAPI) -> None:
    app.add_exception_handler(FinanceCoreError, _core_error_handler)
    app.add_exception_handler(HTTPException, _http_error_handler)


__all__ = ["error_payload", "message_for", "register_error_handlers", "status_for"]
