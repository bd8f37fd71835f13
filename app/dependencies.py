"""Shared FastAPI dependency helpers."""

from fastapi import Request

from social_auth.orchestrator import AuthenticationOrchestrator


def get_authentication_orchestrator(request: Request) -> AuthenticationOrchestrator:
    """Expose the orchestrator created during application startup."""
    return request.app.state.auth_orchestrator
