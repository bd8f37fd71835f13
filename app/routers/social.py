"""Google and Apple social login routes."""

from __future__ import annotations

from typing import Annotated, Any

import structlog
from fastapi import APIRouter, Depends, Request
from fastapi.responses import JSONResponse

from app.dependencies import get_authentication_orchestrator
from app.schemas.social import AppleFullName, AppleLoginRequest, GoogleLoginRequest
from social_auth.orchestrator import AuthenticationOrchestrator
from social_auth.types import AuthResult, ClientContext

router = APIRouter(prefix="/auth", tags=["social"])

CORRELATION_ID_HEADER = "x-correlation-id"
COUNTRY_HEADER = "cf-ipcountry"


def _extract_client_ip(request: Request) -> str:
    """Extract client IP using forwarding headers when present."""
    forwarded_for = request.headers.get("x-forwarded-for", "").strip()
    if forwarded_for:
        return forwarded_for.split(",")[0].strip()
    client = request.client
    return client.host if client else "unknown"


def _client_context(request: Request) -> ClientContext:
    """Build per-request client context from transport metadata."""
    country = request.headers.get(COUNTRY_HEADER, "").strip() or "Unknown"
    return ClientContext(source_ip=_extract_client_ip(request), country=country)


def _to_response(result: AuthResult) -> JSONResponse:
    """Map the auth result contract straight onto the HTTP response."""
    return JSONResponse(status_code=result.status_code, content=result.to_response())


def _full_name(value: AppleFullName | str | None) -> dict[str, Any] | str | None:
    if isinstance(value, AppleFullName):
        return value.model_dump(by_alias=True, exclude_none=True)
    return value


@router.post("/google")
async def google_login(
    payload: GoogleLoginRequest,
    request: Request,
    orchestrator: Annotated[AuthenticationOrchestrator, Depends(get_authentication_orchestrator)],
) -> JSONResponse:
    """Authenticate with a Google authorization code."""
    correlation_id = request.headers.get(CORRELATION_ID_HEADER, "unknown")
    with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
        result = await orchestrator.authenticate_with_google(
            code=payload.code,
            client_context=_client_context(request),
            platform=payload.platform,
            ads_id=payload.ads_id,
        )
    return _to_response(result)


@router.post("/apple")
async def apple_login(
    payload: AppleLoginRequest,
    request: Request,
    orchestrator: Annotated[AuthenticationOrchestrator, Depends(get_authentication_orchestrator)],
) -> JSONResponse:
    """Authenticate with an Apple identity token."""
    correlation_id = request.headers.get(CORRELATION_ID_HEADER, "unknown")
    with structlog.contextvars.bound_contextvars(correlation_id=correlation_id):
        result = await orchestrator.authenticate_with_apple(
            identity_token=payload.identity_token,
            client_context=_client_context(request),
            full_name=_full_name(payload.full_name),
            ads_id=payload.ads_id,
        )
    return _to_response(result)
