"""Exception handlers — map the domain error hierarchy onto HTTP responses.

Every error body is ``{"detail": "<message>"}``, the same shape FastAPI
uses for ``HTTPException``.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, cast

from fastapi import FastAPI, Request, status
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from copilot_saver.core.exceptions import (
    CopilotSaverError,
    InvalidCredentialError,
    PersistenceError,
    ScopeValidationError,
    TenantNotFoundError,
    UpstreamError,
)
from copilot_saver.core.logging import get_logger

if TYPE_CHECKING:
    from starlette.types import ExceptionHandler

log = get_logger(__name__)

_STATUS_BY_ERROR: dict[type[CopilotSaverError], int] = {
    ScopeValidationError: status.HTTP_400_BAD_REQUEST,
    InvalidCredentialError: status.HTTP_400_BAD_REQUEST,
    TenantNotFoundError: status.HTTP_404_NOT_FOUND,
    UpstreamError: status.HTTP_500_INTERNAL_SERVER_ERROR,
    PersistenceError: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def status_for(exc: CopilotSaverError) -> int:
    for error_type in type(exc).__mro__:
        code = _STATUS_BY_ERROR.get(error_type)  # type: ignore[arg-type]
        if code is not None:
            return code
    return status.HTTP_500_INTERNAL_SERVER_ERROR


async def copilot_saver_error_handler(
    request: Request, exc: CopilotSaverError,
) -> JSONResponse:
    code = status_for(exc)
    log_method = log.error if code >= 500 else log.warning
    log_method(
        "request_failed",
        path=str(request.url.path),
        status_code=code,
        error_type=type(exc).__name__,
        error=exc.message,
    )
    return JSONResponse(status_code=code, content={"detail": exc.message})


async def validation_error_handler(
    request: Request, exc: RequestValidationError,
) -> JSONResponse:
    """Malformed bodies and query strings are client errors: 400."""
    messages: list[str] = []
    for error in exc.errors():
        field = ".".join(str(p) for p in error.get("loc", ()) if p not in ("body", "query"))
        msg = str(error.get("msg", "Invalid value")).removeprefix("Value error, ")
        messages.append(f"{field}: {msg}" if field and field not in msg else msg)

    log.warning("validation_error", path=str(request.url.path), errors=messages)
    return JSONResponse(
        status_code=status.HTTP_400_BAD_REQUEST,
        content={"detail": "; ".join(messages) or "Invalid request"},
    )


def register_exception_handlers(app: FastAPI) -> None:
    app.add_exception_handler(
        CopilotSaverError, cast("ExceptionHandler", copilot_saver_error_handler)
    )
    app.add_exception_handler(
        RequestValidationError, cast("ExceptionHandler", validation_error_handler)
    )
