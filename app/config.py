"""Application settings and logging configuration."""

from __future__ import annotations

import logging
from functools import lru_cache
from typing import Any, Literal

import httpx
import structlog
from pydantic import AnyHttpUrl, BaseModel, Field, SecretStr
from pydantic_settings import BaseSettings, SettingsConfigDict

from social_auth.apple import APPLE_ISSUER, APPLE_JWKS_URI
from social_auth.google import GOOGLE_TOKEN_URL, GOOGLE_USERINFO_URL

_LOG_CONTEXT: dict[str, str] = {"environment": "development", "service": "social-auth"}


class AppSettings(BaseModel):
    """Application identity and runtime settings."""

    environment: Literal["development", "staging", "production"] = "development"
    service: str = "social-auth"
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = "INFO"


class GoogleSettings(BaseModel):
    """Google OAuth client credentials and endpoints."""

    client_id: str
    client_secret: SecretStr
    redirect_uri: str = ""
    token_url: AnyHttpUrl = Field(default=GOOGLE_TOKEN_URL, validate_default=True)
    userinfo_url: AnyHttpUrl = Field(default=GOOGLE_USERINFO_URL, validate_default=True)


class AppleSettings(BaseModel):
    """Sign in with Apple audiences and key-set endpoint."""

    audiences: list[str] = Field(min_length=1)
    issuer: str = APPLE_ISSUER
    jwks_uri: AnyHttpUrl = Field(default=APPLE_JWKS_URI, validate_default=True)


class HTTPSettings(BaseModel):
    """Outbound provider request timeouts."""

    connect_timeout_seconds: float = Field(default=2.0, gt=0)
    read_timeout_seconds: float = Field(default=5.0, gt=0)

    def timeout(self) -> httpx.Timeout:
        """Build the httpx timeout applied to every provider request."""
        return httpx.Timeout(
            connect=self.connect_timeout_seconds,
            read=self.read_timeout_seconds,
            write=self.read_timeout_seconds,
            pool=self.read_timeout_seconds,
        )


class VerificationSettings(BaseModel):
    """Identity token claim validation settings."""

    leeway_seconds: int = Field(default=0, ge=0, le=300)


class Settings(BaseSettings):
    """Root application settings loaded from environment variables."""

    model_config = SettingsConfigDict(
        env_nested_delimiter="__",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    app: AppSettings = AppSettings()
    google: GoogleSettings
    apple: AppleSettings
    http: HTTPSettings = HTTPSettings()
    verification: VerificationSettings = VerificationSettings()


def _service_context(_: Any, __: str, event_dict: dict[str, Any]) -> dict[str, Any]:
    """Stamp every event with the deployment identity and request correlation id."""
    event_dict.setdefault("correlation_id", "unknown")
    event_dict.setdefault("service", _LOG_CONTEXT["service"])
    event_dict.setdefault("environment", _LOG_CONTEXT["environment"])
    return event_dict


def configure_structlog(settings: Settings) -> None:
    """Configure JSON event logging for the service."""
    _LOG_CONTEXT.update(environment=settings.app.environment, service=settings.app.service)

    structlog.configure(
        processors=[
            structlog.contextvars.merge_contextvars,
            structlog.processors.add_log_level,
            structlog.processors.TimeStamper(fmt="iso", utc=True, key="timestamp"),
            _service_context,
            structlog.processors.format_exc_info,
            structlog.processors.JSONRenderer(sort_keys=True),
        ],
        context_class=dict,
        wrapper_class=structlog.make_filtering_bound_logger(
            logging.getLevelName(settings.app.log_level)
        ),
        logger_factory=structlog.PrintLoggerFactory(),
        cache_logger_on_first_use=True,
    )


@lru_cache
def get_settings() -> Settings:
    """Load and cache application settings from environment variables."""
    return Settings()
