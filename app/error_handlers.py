"""Exception handlers keeping malformed requests on the auth result contract."""

from __future__ import annotations

import structlog
from fastapi import FastAPI, Request
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse

from social_auth.types import AuthResult

logger = structlog.get_logger(__name__)


def _error_fields(exc: RequestValidationError) -> list[str]:
    """Return dotted locations of invalid fields without their values."""
    return [".".join(str(part) for part in error.get("loc", ())) for error in exc.errors()]


def register_exception_handlers(app: FastAPI) -> None:
    """Register handlers mapping request errors to the failure result."""

    @app.exception_handler(RequestValidationError)
    async def handle_validation_exception(
        request: Request, exc: RequestValidationError
    ) -> JSONResponse:
        """Answer invalid request bodies with the generic authentication failure."""
        result = AuthResult.failure()
        logger.warning(
            "social_auth_request_invalid",
            correlation_id=request.headers.get("x-correlation-id", "unknown"),
            path=request.url.path,
            method=request.method,
            error_code="invalid_request",
            fields=_error_fields(exc),
        )
        return JSONResponse(status_code=result.status_code, content=result.to_response())
