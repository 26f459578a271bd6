"""Fixtures wiring the session services to in-memory doubles."""

from __future__ import annotations

import pytest
from tokensession.infra.jwt import JWTTokenCodec, SigningKey, SigningKeyring
from tokensession.infra.memory import InMemorySessionStore
from tokensession.services._shared.ports import InMemoryPrincipalDirectory
from tokensession.services.sessions import SessionFacade, SessionPolicy

SECRET = "unit-test-signing-secret-with-enough-entropy"


@pytest.fixture
def store(clock) -> InMemorySessionStore:
    return InMemorySessionStore(clock=clock)


@pytest.fixture
def codec(clock) -> JWTTokenCodec:
    return JWTTokenCodec(SigningKeyring(SigningKey("k1", SECRET)), clock=clock)


@pytest.fixture
def policy() -> SessionPolicy:
    return SessionPolicy()


@pytest.fixture
def facade(store, codec, policy, clock) -> SessionFacade:
    """Build a SessionFacade wired to in-memory doubles."""
    return SessionFacade(
        store=store,
        codec=codec,
        principals=InMemoryPrincipalDirectory(["P1", "P2"]),
        policy=policy,
        clock=clock,
    )
