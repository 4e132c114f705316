# File: /docview/core/error_handlers.py | Version: 2.0 | Title: Error envelope handlers
from __future__ import annotations

import logging

from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from docview.core.errors import DocumentViewError
from docview.schemas.envelope import failed

log = logging.getLogger(__name__)

_CODE_MAP = {
    400: "BAD_REQUEST",
    403: "PERMISSION_DENIED",
    404: "NOT_FOUND",
    405: "METHOD_NOT_ALLOWED",
    409: "CONFLICT",
    422: "VALIDATION_ERROR",
    500: "INTERNAL_SERVER_ERROR",
}


def _loc(parts) -> str:
    # Drop the "body"/"query" prefix FastAPI puts in front of field paths
    parts = [str(p) for p in parts]
    if parts and parts[0] in {"body", "query", "path", "header"}:
        parts = parts[1:]
    return ".".join(parts) or "__root__"


def register_exception_handlers(app: FastAPI) -> None:
    @app.exception_handler(DocumentViewError)
    async def _domain_exc(_req: Request, exc: DocumentViewError):
        if exc.status_code >= 500:
            log.warning("%s: %s", exc.code, exc.message)
        return JSONResponse(
            status_code=exc.status_code,
            content=failed(exc.message, exc.code, exc.errors),
        )

    @app.exception_handler(StarletteHTTPException)
    async def _http_exc(_req: Request, exc: StarletteHTTPException):
        return JSONResponse(
            status_code=exc.status_code,
            content=failed(str(exc.detail), _CODE_MAP.get(exc.status_code, "ERROR")),
        )

    @app.exception_handler(RequestValidationError)
    async def _validation_exc(_req: Request, exc: RequestValidationError):
        errors: dict = {}
        for e in exc.errors():
            errors.setdefault(_loc(e.get("loc", ())), []).append(e.get("msg", "Invalid value"))
        return JSONResponse(status_code=422, content=failed("Validation error", "VALIDATION_ERROR", errors))

    @app.exception_handler(Exception)
    async def _unhandled(_req: Request, exc: Exception):
        # Avoid leaking internals
        log.exception("Unhandled error")
        return JSONResponse(status_code=500, content=failed("Internal server error", "INTERNAL_SERVER_ERROR"))
