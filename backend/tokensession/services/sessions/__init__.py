"""
Session services: rotation engine, revocation manager and the facade.

:func:`build_session_facade` wires a :class:`SessionFacade` from a Flask-style
configuration mapping, choosing the store backend named by
``SESSION_STORE_BACKEND``.
"""

from __future__ import annotations

from collections.abc import Mapping
from datetime import timedelta
from typing import Any

from tokensession.services._shared.ports import (
    Clock,
    PrincipalDirectory,
    SessionStore,
    SystemClock,
)

from .dto import IssuedSession, SessionPolicy, SessionPrincipal, SessionView, TokenPair
from .facade import SessionFacade
from .revocation import RevocationManager
from .rotation import RotationEngine

STORE_BACKENDS = ("sqlalchemy", "memory", "redis")


def build_session_store(
    config: Mapping[str, Any], *, clock: Clock, redis_client: Any | None = None
) -> SessionStore:
    """
    Instantiate the store named by ``SESSION_STORE_BACKEND``.

    :param config: Flask config mapping.
    :param clock: Time source shared with the services.
    :param redis_client: Required for the ``redis`` backend.
    :raises ValueError: On an unknown backend or a missing Redis client.
    """
    backend = str(config.get("SESSION_STORE_BACKEND", "sqlalchemy")).strip().lower()
    retention = timedelta(seconds=int(config.get("REFRESH_RETENTION_SECONDS", 604_800)))

    if backend == "memory":
        from tokensession.infra.memory import InMemorySessionStore

        return InMemorySessionStore(clock=clock, retention=retention)
    if backend == "redis":
        if redis_client is None:
            raise ValueError("SESSION_STORE_BACKEND=redis requires REDIS_URL.")
        from tokensession.infra.redis import RedisSessionStore

        return RedisSessionStore(redis_client, clock=clock, retention=retention)
    if backend == "sqlalchemy":
        from tokensession.infra.sqlalchemy import SQLAlchemySessionStore

        return SQLAlchemySessionStore(clock=clock, retention=retention)
    raise ValueError(
        f"Unknown SESSION_STORE_BACKEND {backend!r}; expected one of {STORE_BACKENDS}."
    )


def build_session_facade(
    config: Mapping[str, Any],
    *,
    principals: PrincipalDirectory,
    clock: Clock | None = None,
    store: SessionStore | None = None,
    redis_client: Any | None = None,
) -> SessionFacade:
    """Assemble keyring, codec, store and policy into a :class:`SessionFacade`."""
    from tokensession.infra.jwt import JWTTokenCodec, SigningKeyring

    clock = clock or SystemClock()
    codec = JWTTokenCodec(
        SigningKeyring.from_config(config),
        clock=clock,
        algorithm=str(config.get("TOKEN_ALGORITHM", "HS256")),
        issuer=str(config.get("TOKEN_ISSUER", "tokensession")),
        leeway=timedelta(seconds=int(config.get("TOKEN_LEEWAY_SECONDS", 0))),
    )
    return SessionFacade(
        store=store or build_session_store(config, clock=clock, redis_client=redis_client),
        codec=codec,
        principals=principals,
        policy=SessionPolicy.from_config(config),
        clock=clock,
    )


__all__ = [
    "IssuedSession",
    "RevocationManager",
    "RotationEngine",
    "SessionFacade",
    "SessionPolicy",
    "SessionPrincipal",
    "SessionView",
    "TokenPair",
    "build_session_facade",
    "build_session_store",
]
