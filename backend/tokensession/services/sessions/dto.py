# tokensession/services/sessions/dto.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from tokensession.services._shared.ports import AccessToken, RefreshTokenRecord

# ---------------------------- Policy -------------------------------------- #


@dataclass(frozen=True, slots=True)
class SessionPolicy:
    """
    Lifetimes applied to every session.

    :param access_ttl: Lifetime of an access token.
    :type access_ttl: timedelta
    :param refresh_ttl: Lifetime of each refresh token from its issue time.
    :type refresh_ttl: timedelta
    :param max_lifetime: Absolute cap on a family, measured from login.
        ``None`` lets a session be refreshed forever.
    :type max_lifetime: timedelta | None
    """

    access_ttl: timedelta = timedelta(minutes=15)
    refresh_ttl: timedelta = timedelta(days=14)
    max_lifetime: timedelta | None = timedelta(days=90)

    def __post_init__(self) -> None:
        if self.access_ttl <= timedelta(0) or self.refresh_ttl <= timedelta(0):
            raise ValueError("Token lifetimes must be positive.")
        if self.max_lifetime is not None and self.max_lifetime <= timedelta(0):
            raise ValueError("max_lifetime must be positive or None.")

    def refresh_expiry(self, *, now: datetime, created_at: datetime) -> datetime:
        """Expiry of a refresh token issued at ``now`` for a family created at ``created_at``."""
        expires_at = now + self.refresh_ttl
        if self.max_lifetime is not None:
            expires_at = min(expires_at, created_at + self.max_lifetime)
        return expires_at

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SessionPolicy:
        max_lifetime = int(config.get("SESSION_MAX_LIFETIME_SECONDS", 7_776_000))
        return cls(
            access_ttl=timedelta(seconds=int(config.get("ACCESS_TOKEN_TTL_SECONDS", 900))),
            refresh_ttl=timedelta(seconds=int(config.get("REFRESH_TOKEN_TTL_SECONDS", 1_209_600))),
            max_lifetime=timedelta(seconds=max_lifetime) if max_lifetime > 0 else None,
        )


# --------------------------- Internal DTOs -------------------------------- #


@dataclass(frozen=True, slots=True)
class IssuedSession:
    """Result of opening or rotating a session (internal to the services)."""

    family_id: str
    principal_id: str
    access: AccessToken
    refresh: RefreshTokenRecord


# --------------------------- Output DTOs ---------------------------------- #


@dataclass(frozen=True, slots=True)
class TokenPair:
    """
    Output DTO with access and refresh tokens.

    The refresh token is the opaque id of the live record; it is only valid
    together with ``family_id``.

    :param access_token: Signed access token.
    :type access_token: str
    :param access_expires_at: Expiry of the access token (UTC).
    :type access_expires_at: datetime
    :param refresh_token: Opaque refresh token.
    :type refresh_token: str
    :param refresh_expires_at: Expiry of the refresh token (UTC).
    :type refresh_expires_at: datetime
    :param family_id: Session identifier.
    :type family_id: str
    :param token_type: Always ``"bearer"``.
    :type token_type: str
    """

    access_token: str
    access_expires_at: datetime
    refresh_token: str
    refresh_expires_at: datetime
    family_id: str
    token_type: str = "bearer"

    @classmethod
    def from_issued(cls, issued: IssuedSession) -> TokenPair:
        return cls(
            access_token=issued.access.token,
            access_expires_at=issued.access.expires_at,
            refresh_token=issued.refresh.token_id,
            refresh_expires_at=issued.refresh.expires_at,
            family_id=issued.family_id,
        )


@dataclass(frozen=True, slots=True)
class SessionPrincipal:
    """Who an access token speaks for."""

    principal_id: str
    family_id: str


@dataclass(frozen=True, slots=True)
class SessionView:
    """
    One signed-in session as shown to its owner.

    :param family_id: Session identifier.
    :param created_at: Login time.
    :param last_refreshed_at: Issue time of the live refresh token.
    :param expires_at: Expiry of the live refresh token.
    """

    family_id: str
    created_at: datetime
    last_refreshed_at: datetime
    expires_at: datetime
