"""Tests for the PyJWT access token codec."""

from __future__ import annotations

from datetime import timedelta

import jwt
import pytest
from tokensession.infra.jwt import JWTTokenCodec, SigningKey, SigningKeyring
from tokensession.services._shared.errors import Expired, InvalidSignature

SECRET = "codec-test-signing-secret-0123456789abcdef"
OTHER_SECRET = "another-signing-secret-0123456789abcdefgh"
TTL = timedelta(minutes=15)


@pytest.fixture
def keyring() -> SigningKeyring:
    return SigningKeyring(SigningKey("k1", SECRET))


@pytest.fixture
def codec(keyring, clock) -> JWTTokenCodec:
    return JWTTokenCodec(keyring, clock=clock)


def test_round_trip_before_expiry(codec, clock):
    token = codec.issue("P", "F", 7, TTL)
    clock.advance(TTL - timedelta(seconds=1))

    claims = codec.verify(token.token)

    assert (claims.principal_id, claims.family_id, claims.generation) == ("P", "F", 7)
    assert claims.expires_at == token.expires_at


def test_expired_after_ttl(codec, clock):
    token = codec.issue("P", "F", 0, TTL)
    clock.advance(TTL)

    with pytest.raises(Expired):
        codec.verify(token.token)


def test_leeway_tolerates_small_skew(keyring, clock):
    codec = JWTTokenCodec(keyring, clock=clock, leeway=timedelta(seconds=30))
    token = codec.issue("P", "F", 0, TTL)
    clock.advance(TTL + timedelta(seconds=10))

    assert codec.verify(token.token).principal_id == "P"


def test_token_layout(codec, clock):
    token = codec.issue("P", "F", 3, TTL)

    header = jwt.get_unverified_header(token.token)
    payload = jwt.decode(token.token, options={"verify_signature": False})
    assert header["kid"] == "k1"
    assert header["alg"] == "HS256"
    assert payload["typ"] == "access"
    assert payload["iss"] == "tokensession"
    assert payload["iat"] == int(clock.now().timestamp())
    assert payload["jti"]


def test_jti_is_unique_per_token(codec):
    first = jwt.decode(codec.issue("P", "F", 0, TTL).token, options={"verify_signature": False})
    second = jwt.decode(codec.issue("P", "F", 0, TTL).token, options={"verify_signature": False})

    assert first["jti"] != second["jti"]


@pytest.mark.parametrize("garbage", ["", "not-a-jwt", "a.b.c", "e30.e30."])
def test_malformed_tokens_are_invalid(codec, garbage):
    with pytest.raises(InvalidSignature):
        codec.verify(garbage)


def test_wrong_secret_is_invalid(codec, clock):
    forged = JWTTokenCodec(SigningKeyring(SigningKey("k1", OTHER_SECRET)), clock=clock)

    with pytest.raises(InvalidSignature):
        codec.verify(forged.issue("P", "F", 0, TTL).token)


def test_unknown_kid_is_invalid(codec, clock):
    stranger = JWTTokenCodec(SigningKeyring(SigningKey("k9", SECRET)), clock=clock)

    with pytest.raises(InvalidSignature):
        codec.verify(stranger.issue("P", "F", 0, TTL).token)


def test_wrong_issuer_is_invalid(keyring, codec, clock):
    other = JWTTokenCodec(keyring, clock=clock, issuer="someone-else")

    with pytest.raises(InvalidSignature):
        codec.verify(other.issue("P", "F", 0, TTL).token)


def test_wrong_type_or_missing_claims_are_invalid(codec, clock):
    now = int(clock.now().timestamp())
    base = {"iss": "tokensession", "sub": "P", "fam": "F", "gen": 0, "iat": now, "exp": now + 60}

    refresh_like = jwt.encode({**base, "typ": "refresh"}, SECRET, headers={"kid": "k1"})
    missing_fam = jwt.encode(
        {k: v for k, v in base.items() if k != "fam"} | {"typ": "access"},
        SECRET,
        headers={"kid": "k1"},
    )
    bad_gen = jwt.encode({**base, "gen": "1", "typ": "access"}, SECRET, headers={"kid": "k1"})

    for token in (refresh_like, missing_fam, bad_gen):
        with pytest.raises(InvalidSignature):
            codec.verify(token)


def test_previous_key_verifies_within_overlap_only(keyring, clock):
    old_codec = JWTTokenCodec(keyring, clock=clock)
    token = old_codec.issue("P", "F", 0, timedelta(hours=2))

    rotated = keyring.rotated(SigningKey("k2", OTHER_SECRET), at=clock.now())
    codec = JWTTokenCodec(rotated, clock=clock)

    assert jwt.get_unverified_header(codec.issue("P", "F", 0, TTL).token)["kid"] == "k2"
    assert codec.verify(token.token).principal_id == "P"

    clock.advance(rotated.overlap)
    with pytest.raises(InvalidSignature):
        codec.verify(token.token)
