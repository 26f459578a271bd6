from __future__ import annotations

import pytest
from tokensession.services._shared.ports import FamilyStatus
from tokensession.services.sessions import RevocationManager

from tests.helpers.utils import not_raises


@pytest.fixture()
def revocation(store, clock) -> RevocationManager:
    return RevocationManager(store=store, clock=clock)


def _open(store, clock, principal_id="P1"):
    family, _ = store.create_family(principal_id, expires_at=clock.now().replace(year=2030))
    return family.family_id


def test_revoke_family_twice_is_a_noop(revocation, store, clock):
    family_id = _open(store, clock)

    assert revocation.revoke_family(family_id) is True
    end_state = store.get_family(family_id)
    with not_raises(Exception):
        assert revocation.revoke_family(family_id) is False

    assert store.get_family(family_id) == end_state
    assert end_state.status is FamilyStatus.REVOKED


def test_revoke_unknown_family(revocation):
    with not_raises(Exception):
        assert revocation.revoke_family("missing") is False


def test_revoke_principal_counts_changed_families(revocation, store, clock):
    _open(store, clock)
    _open(store, clock)
    other = _open(store, clock, "P2")

    assert revocation.revoke_principal("P1", reason="password_change") == 2
    assert revocation.revoke_principal("P1") == 0
    assert store.get_family(other).is_active


def test_events_carry_ids_but_no_tokens(revocation, store, clock, caplog):
    family_id = _open(store, clock)
    live = store.get_live_record(family_id)

    with caplog.at_level("INFO"):
        revocation.revoke_on_reuse(family_id)

    events = [(r.levelname, getattr(r, "event", None), getattr(r, "reason", None)) for r in caplog.records]
    assert ("WARNING", "session.reuse_detected", "reuse") in events
    assert ("INFO", "session.revoked", "reuse") in events
    assert all(r.family_id == family_id for r in caplog.records)
    assert live.token_id not in caplog.text
