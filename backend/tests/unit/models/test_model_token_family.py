"""Constraint tests for the token session models."""

from __future__ import annotations

import pytest
from sqlalchemy.exc import IntegrityError
from tokensession.models import RefreshTokenModel, TokenFamilyModel

from tests.factories.refresh_token import RefreshTokenFactory
from tests.factories.token_family import TokenFamilyFactory


def test_family_defaults_and_repr(session):
    family = TokenFamilyFactory()

    assert family.status == "active"
    assert family.version == 0
    assert repr(family) == f"<TokenFamilyModel family_id={family.family_id}>"


def test_family_rejects_unknown_status(session):
    with pytest.raises(IntegrityError):
        TokenFamilyFactory(status="paused")


def test_family_rejects_negative_generation(session):
    with pytest.raises(IntegrityError):
        TokenFamilyFactory(generation=-1)


def test_generation_is_unique_per_family(session):
    family = TokenFamilyFactory()
    RefreshTokenFactory(family=family, generation=0)

    with pytest.raises(IntegrityError):
        RefreshTokenFactory(family=family, generation=0)


def test_same_generation_in_different_families(session):
    RefreshTokenFactory(generation=0)
    RefreshTokenFactory(generation=0)

    assert session.query(RefreshTokenModel).count() == 2


def test_family_orders_tokens_by_generation(session):
    family = TokenFamilyFactory(generation=2)
    RefreshTokenFactory(family=family, generation=2)
    RefreshTokenFactory(family=family, generation=0, consumed=True)
    RefreshTokenFactory(family=family, generation=1, consumed=True)
    session.expire(family)

    assert [t.generation for t in family.refresh_tokens] == [0, 1, 2]
    assert session.get(TokenFamilyModel, family.family_id) is family
