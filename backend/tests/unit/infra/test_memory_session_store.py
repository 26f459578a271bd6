"""Concurrency tests for InMemorySessionStore."""

from __future__ import annotations

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import timedelta

import pytest
from tokensession.infra.memory import InMemorySessionStore, StripedLock
from tokensession.services._shared.errors import StaleToken

REFRESH_TTL = timedelta(days=14)
RACERS = 16


@pytest.fixture
def store(clock):
    return InMemorySessionStore(clock=clock)


def _race(store, clock, family_id: str, token_id: str, racers: int = RACERS):
    """Present the same token from ``racers`` threads released together."""
    barrier = threading.Barrier(racers)

    def attempt():
        barrier.wait()
        try:
            return store.advance(family_id, token_id, expires_at=clock.now() + REFRESH_TTL)
        except StaleToken as exc:
            return exc

    with ThreadPoolExecutor(max_workers=racers) as pool:
        return [f.result() for f in [pool.submit(attempt) for _ in range(racers)]]


def test_concurrent_advance_has_exactly_one_winner(store, clock):
    family, root = store.create_family("alice", expires_at=clock.now() + REFRESH_TTL)

    outcomes = _race(store, clock, family.family_id, root.token_id)

    winners = [o for o in outcomes if not isinstance(o, StaleToken)]
    assert len(winners) == 1
    assert sum(isinstance(o, StaleToken) for o in outcomes) == RACERS - 1
    assert store.get_live_record(family.family_id) == winners[0]
    assert store.get_family(family.family_id).generation == 1


def test_repeated_races_keep_one_live_record(store, clock):
    family, record = store.create_family("alice", expires_at=clock.now() + REFRESH_TTL)
    seen = [record.token_id]
    for _ in range(10):
        outcomes = _race(store, clock, family.family_id, record.token_id, racers=4)
        (record,) = [o for o in outcomes if not isinstance(o, StaleToken)]
        seen.append(record.token_id)

    unconsumed = [t for t in seen if not store.get_record(t).consumed]
    assert unconsumed == [record.token_id]
    assert store.get_family(family.family_id).generation == 10


def test_families_rotate_independently_under_load(store, clock):
    roots = [
        store.create_family(f"user-{i}", expires_at=clock.now() + REFRESH_TTL) for i in range(32)
    ]

    def rotate(pair):
        family, root = pair
        return store.advance(family.family_id, root.token_id, expires_at=clock.now() + REFRESH_TTL)

    with ThreadPoolExecutor(max_workers=8) as pool:
        results = list(pool.map(rotate, roots))

    assert all(r.generation == 1 for r in results)


def test_striped_lock_is_stable_per_key():
    locks = StripedLock(stripes=8)

    assert locks.for_key("family-a") is locks.for_key("family-a")
    with pytest.raises(ValueError):
        StripedLock(stripes=0)
