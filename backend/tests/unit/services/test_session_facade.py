# tests/unit/services/test_session_facade.py
from __future__ import annotations

from datetime import timedelta

import pytest
from tokensession.services._shared.errors import (
    Expired,
    InvalidSignature,
    NotFoundError,
    SessionEnded,
    Unauthorized,
)
from tokensession.services._shared.ports import FamilyStatus
from tokensession.services.sessions import SessionPrincipal, TokenPair


# -------------------------------- Login ----------------------------------- #
def test_login_returns_token_pair(facade, clock):
    pair = facade.login("P1")

    assert isinstance(pair, TokenPair)
    assert pair.token_type == "bearer"
    assert pair.access_expires_at == clock.now() + timedelta(minutes=15)
    assert pair.refresh_expires_at == clock.now() + timedelta(days=14)
    assert not hasattr(pair, "generation")


def test_login_unknown_principal(facade):
    with pytest.raises(NotFoundError):
        facade.login("stranger")


# ------------------------------ Scenarios --------------------------------- #
def test_replayed_refresh_ends_the_session(facade, store):
    """login -> refresh(T0) ok -> refresh(T0) again -> SessionEnded, family revoked."""
    pair = facade.login("P1")
    facade.refresh(pair.family_id, pair.refresh_token)

    with pytest.raises(SessionEnded):
        facade.refresh(pair.family_id, pair.refresh_token)

    assert store.get_family(pair.family_id).status is FamilyStatus.REVOKED


def test_successive_refreshes_walk_generations(facade, store, codec):
    """login -> refresh(T0) -> refresh(T1): generations 0, 1, 2."""
    t0 = facade.login("P1")
    t1 = facade.refresh(t0.family_id, t0.refresh_token)
    t2 = facade.refresh(t1.family_id, t1.refresh_token)

    generations = [store.get_record(p.refresh_token).generation for p in (t0, t1, t2)]
    assert generations == [0, 1, 2]
    assert [codec.verify(p.access_token).generation for p in (t0, t1, t2)] == [0, 1, 2]
    assert t0.family_id == t1.family_id == t2.family_id


def test_logout_all_ends_every_session(facade):
    """logout_all with two active families -> refresh on either fails."""
    first = facade.login("P1")
    second = facade.login("P1")

    assert facade.logout_all("P1") == 2

    for pair in (first, second):
        with pytest.raises(SessionEnded):
            facade.refresh(pair.family_id, pair.refresh_token)


def test_refresh_unknown_family_is_not_found_and_mutates_nothing(facade, store):
    pair = facade.login("P1")
    before = store.get_family(pair.family_id)

    with pytest.raises(NotFoundError) as exc_info:
        facade.refresh("no-such-family", pair.refresh_token)

    assert isinstance(exc_info.value, SessionEnded)
    assert store.get_family(pair.family_id) == before
    assert store.get_live_record(pair.family_id).token_id == pair.refresh_token


# ------------------------------- Logout ----------------------------------- #
def test_logout_is_idempotent_and_ignores_unknown(facade, store):
    pair = facade.login("P1")

    facade.logout(pair.family_id)
    facade.logout(pair.family_id)
    facade.logout("missing")

    assert store.get_family(pair.family_id).status is FamilyStatus.REVOKED


# ---------------------------- Access checks ------------------------------- #
def test_authorize_and_authenticate(facade):
    pair = facade.login("P2")

    assert facade.authorize(pair.access_token) == "P2"
    assert facade.authenticate(pair.access_token) == SessionPrincipal("P2", pair.family_id)


def test_authorize_rejects_tampered_token(facade):
    pair = facade.login("P1")
    head, payload, signature = pair.access_token.split(".")
    tampered = ".".join([head, payload, signature[::-1]])

    with pytest.raises(InvalidSignature):
        facade.authorize(tampered)


def test_authorize_rejects_expired_token(facade, clock):
    pair = facade.login("P1")
    clock.advance(minutes=15)

    with pytest.raises(Expired):
        facade.authorize(pair.access_token)


def test_authenticate_requires_a_token(facade):
    with pytest.raises(Unauthorized):
        facade.authenticate("")


def test_access_token_survives_logout_until_expiry(facade):
    pair = facade.login("P1")
    facade.logout(pair.family_id)

    assert facade.authorize(pair.access_token) == "P1"


# ------------------------------ Read model -------------------------------- #
def test_sessions_lists_live_families_only(facade, clock):
    first = facade.login("P1")
    clock.advance(minutes=1)
    second = facade.login("P1")
    clock.advance(minutes=1)
    rotated = facade.refresh(second.family_id, second.refresh_token)
    third = facade.login("P1")
    facade.logout(third.family_id)

    views = facade.sessions("P1")

    assert [v.family_id for v in views] == [first.family_id, second.family_id]
    assert views[1].last_refreshed_at == clock.now()
    assert views[1].expires_at == rotated.refresh_expires_at
    assert facade.sessions("P2") == []


def test_purge_expired_delegates_to_store(facade, clock):
    facade.login("P1")
    clock.advance(days=30)

    assert facade.purge_expired() == 1
