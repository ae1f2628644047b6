from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, HTTPException
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

from chatgraph.kernel.errors import ChatGraphError

logger = structlog.get_logger()


def register_exception_handlers(app: FastAPI) -> None:
    """Render typed errors as `{detail, code, meta?}` with their status code."""

    @app.exception_handler(ChatGraphError)
    async def _chatgraph_error_handler(request: Request, exc: ChatGraphError) -> Response:
        return JSONResponse(status_code=exc.status_code, content=exc.to_public_dict())

    @app.exception_handler(HTTPException)
    async def _http_exception_handler(request: Request, exc: HTTPException) -> Response:
        payload: dict[str, Any] = {
            "detail": exc.detail,
            "code": f"http.{exc.status_code}",
        }
        headers = dict(exc.headers or {})
        return JSONResponse(status_code=int(exc.status_code), content=payload, headers=headers)

    @app.exception_handler(Exception)
    async def _unhandled_exception_handler(request: Request, exc: Exception) -> Response:
        logger.exception("Unhandled exception", path=request.url.path, error=str(exc))
        return JSONResponse(
            status_code=500,
            content={"detail": "Internal server error", "code": "internal.error"},
        )
