"""
tokensession.services._shared.ports
===================================

Collection of *ports* (hexagonal interfaces) that define the contracts the
session services depend on.

Modules
-------
- :mod:`token_codec`:
    Defines :class:`~.TokenCodec` with :class:`~.AccessToken` and
    :class:`~.AccessClaims`: signed, stateless access tokens.

- :mod:`session_store`:
    Defines :class:`~.SessionStore`, :class:`~.TokenFamily` and
    :class:`~.RefreshTokenRecord`: refresh-token lineage and atomic rotation.

- :mod:`principal_directory`:
    Defines :class:`~.PrincipalDirectory`: existence check on principals.

- :mod:`clock`:
    Defines :class:`~.Clock`: source of the current UTC time.

Concrete adapters (in-memory, Redis, SQLAlchemy, PyJWT) live under
``tokensession.infra``.
"""

from __future__ import annotations

from .clock import Clock, SystemClock
from .principal_directory import (
    InMemoryPrincipalDirectory,
    PermissivePrincipalDirectory,
    PrincipalDirectory,
)
from .session_store import FamilyStatus, RefreshTokenRecord, SessionStore, TokenFamily
from .token_codec import AccessClaims, AccessToken, TokenCodec

__all__ = [
    "AccessClaims",
    "AccessToken",
    "Clock",
    "FamilyStatus",
    "InMemoryPrincipalDirectory",
    "PermissivePrincipalDirectory",
    "PrincipalDirectory",
    "RefreshTokenRecord",
    "SessionStore",
    "SystemClock",
    "TokenCodec",
    "TokenFamily",
]
