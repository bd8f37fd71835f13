"""Capability interfaces implemented by the host application."""

from __future__ import annotations

from collections.abc import Mapping
from typing import Any, Protocol

from social_auth.types import LoginUpdate, NewUserRecord, NormalizedUser, SessionTokens


class UserRecord(Protocol):
    """Minimal shape of a persisted user as seen by the orchestrator."""

    id: Any
    email: str


class UserRepository(Protocol):
    """Persistent user storage keyed by email."""

    async def find_one(self, email: str, is_deleted: bool = False) -> UserRecord | None: ...

    async def find_by_id(self, user_id: Any) -> UserRecord | None: ...

    async def create(self, record: NewUserRecord) -> UserRecord: ...

    async def update_login(self, user: UserRecord, update: LoginUpdate) -> UserRecord: ...


class TokenIssuer(Protocol):
    """Mints application session tokens for a resolved user."""

    async def generate_auth_tokens(self, user: UserRecord) -> SessionTokens: ...


class ProfileFormatter(Protocol):
    """Produces the public user shape returned to clients."""

    def format_user(self, user: UserRecord) -> NormalizedUser: ...


class FormatResponseFormatter:
    """Formatter delegating to the user record's own ``format_response``."""

    def format_user(self, user: UserRecord) -> NormalizedUser:
        """Return the record's public representation."""
        return user.format_response()  # type: ignore[attr-defined]


class ResponseExtrasProvider(Protocol):
    """Supplies host data, such as ad configuration, for successful logins."""

    async def __call__(self) -> Mapping[str, Any]: ...
