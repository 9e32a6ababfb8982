"""Global error handlers: every failure leaves as the same JSON envelope."""

from __future__ import annotations

from typing import Any

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from litpad.exceptions import (
    INVALID_ENTRY,
    INVALID_REQUEST,
    NON_EXISTENT,
    SERVER_ERROR,
    UNAUTHORIZED_USER,
    LitPadError,
)
from litpad.responses import ErrorResponse

logger = structlog.get_logger()

_HTTP_STATUS_CODES = {
    401: UNAUTHORIZED_USER,
    404: NON_EXISTENT,
}


def failure(status_code: int, code: str, message: str, data: Any = None) -> JSONResponse:  # noqa: ANN401
    """Render the failure envelope."""
    envelope = ErrorResponse(code=code, message=message, data=data)
    return JSONResponse(
        status_code=status_code,
        content=envelope.model_dump(exclude=None if data is not None else {"data"}),
    )


def validation_details(errors: list[dict[str, Any]]) -> dict[str, str]:
    """Collapse pydantic errors into ``{field: message}``."""
    details: dict[str, str] = {}
    for error in errors:
        loc = [str(part) for part in error.get("loc", ()) if part not in ("body", "query", "path")]
        field = ".".join(loc) or "__all__"
        details.setdefault(field, error.get("msg", "Invalid value"))
    return details


def setup_error_handlers(app: FastAPI) -> None:
    """Register global exception handlers."""

    @app.exception_handler(LitPadError)
    async def domain_exception_handler(_request: Request, exc: LitPadError) -> JSONResponse:
        return failure(exc.status_code, exc.code, exc.message, exc.data)

    @app.exception_handler(StarletteHTTPException)
    async def http_exception_handler(_request: Request, exc: StarletteHTTPException) -> JSONResponse:
        """Routing errors (404, 405) and stray HTTPExceptions."""
        code = _HTTP_STATUS_CODES.get(exc.status_code, INVALID_REQUEST)
        return failure(exc.status_code, code, str(exc.detail))

    @app.exception_handler(RequestValidationError)
    async def validation_exception_handler(_request: Request, exc: RequestValidationError) -> JSONResponse:
        return failure(422, INVALID_ENTRY, "Invalid Entry", validation_details(list(exc.errors())))

    @app.exception_handler(Exception)
    async def global_exception_handler(request: Request, exc: Exception) -> JSONResponse:
        """Catch-all for unhandled exceptions; logged with the bound request id."""
        logger.error(
            "unhandled_exception",
            path=request.url.path,
            method=request.method,
            error=str(exc),
            exc_info=exc,
        )
        return failure(500, SERVER_ERROR, "Server Error")
