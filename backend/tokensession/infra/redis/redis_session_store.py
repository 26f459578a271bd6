from __future__ import annotations

import math
from dataclasses import dataclass, field, replace
from datetime import UTC, datetime, timedelta
from uuid import uuid4

import redis  # type: ignore[import-untyped]
from redis.exceptions import RedisError, WatchError  # type: ignore[import-untyped]

from tokensession.services._shared.errors import (
    Expired,
    FamilyRevoked,
    NotFoundError,
    StaleToken,
    StoreUnavailable,
)
from tokensession.services._shared.ports import (
    Clock,
    FamilyStatus,
    RefreshTokenRecord,
    SessionStore,
    SystemClock,
    TokenFamily,
)


def _b(s: bytes | None, default: str = "") -> str:
    return s.decode() if s is not None else default


@dataclass(slots=True)
class RedisSessionStore(SessionStore):
    """
    Redis-backed session store with atomic, per-family rotation.

    Layout::

        ts:fam:{family_id}        hash  principal_id, status, created_at,
                                        generation, live_token_id, revoked_at
        ts:fam:{family_id}:rts    set   token ids of the family
        ts:rt:{token_id}          hash  family_id, generation, issued_at,
                                        expires_at, consumed, replaced_by
        ts:p:{principal_id}       set   family ids of the principal

    Every rotation or revocation of a family is an optimistic transaction
    (``WATCH``/``MULTI``/``EXEC``) on its family hash, so contention is scoped to
    one family. Keys carry a TTL of ``expires_at + retention``; Redis expiry is
    the garbage collector.

    :param r: A Redis client (already connected).
    :param clock: Time source for issue/expiry checks.
    :param retention: How long consumed records stay around for replay detection.
    """

    r: redis.Redis
    clock: Clock = field(default_factory=SystemClock)
    retention: timedelta = timedelta(days=7)

    # -------------------- helpers --------------------

    @staticmethod
    def _kf(family_id: str) -> str:
        return f"ts:fam:{family_id}"

    @staticmethod
    def _kft(family_id: str) -> str:
        return f"ts:fam:{family_id}:rts"

    @staticmethod
    def _kr(token_id: str) -> str:
        return f"ts:rt:{token_id}"

    @staticmethod
    def _kp(principal_id: str) -> str:
        return f"ts:p:{principal_id}"

    @staticmethod
    def _to_ts(dt: datetime) -> int:
        return int(dt.astimezone(UTC).timestamp())

    @staticmethod
    def _expiry_ts(dt: datetime) -> int:
        # Rounded up so a token is never reported expired early.
        return math.ceil(dt.astimezone(UTC).timestamp())

    @staticmethod
    def _from_ts(raw: str) -> datetime:
        return datetime.fromtimestamp(int(raw), tz=UTC)

    def _ttl(self, expires_at: datetime) -> int:
        keep_until = expires_at + self.retention
        return max(1, self._to_ts(keep_until) - self._to_ts(self.clock.now()))

    def _family_view(self, family_id: str, h: dict[bytes, bytes]) -> TokenFamily:
        revoked_at = _b(h.get(b"revoked_at"))
        return TokenFamily(
            family_id=family_id,
            principal_id=_b(h.get(b"principal_id")),
            created_at=self._from_ts(_b(h.get(b"created_at"), "0")),
            generation=int(_b(h.get(b"generation"), "0")),
            status=FamilyStatus(_b(h.get(b"status"), FamilyStatus.ACTIVE.value)),
            revoked_at=self._from_ts(revoked_at) if revoked_at else None,
        )

    def _record_view(self, token_id: str, h: dict[bytes, bytes]) -> RefreshTokenRecord:
        return RefreshTokenRecord(
            token_id=token_id,
            family_id=_b(h.get(b"family_id")),
            generation=int(_b(h.get(b"generation"), "0")),
            issued_at=self._from_ts(_b(h.get(b"issued_at"), "0")),
            expires_at=self._from_ts(_b(h.get(b"expires_at"), "0")),
            consumed=_b(h.get(b"consumed"), "0") == "1",
            replaced_by=_b(h.get(b"replaced_by")) or None,
        )

    def _record_mapping(self, record: RefreshTokenRecord) -> dict[str, str]:
        return {
            "family_id": record.family_id,
            "generation": str(record.generation),
            "issued_at": str(self._to_ts(record.issued_at)),
            "expires_at": str(self._expiry_ts(record.expires_at)),
            "consumed": "0",
            "replaced_by": "",
        }

    # -------------------- API ------------------------

    def create_family(
        self, principal_id: str, *, expires_at: datetime
    ) -> tuple[TokenFamily, RefreshTokenRecord]:
        """
        Insert the family and its root record *before* tokens reach the client.

        This ensures there is no timing window where a refresh token exists
        without a server-side record.
        """
        now = self.clock.now()
        family_id = uuid4().hex
        record = RefreshTokenRecord(
            token_id=self.new_token_id(),
            family_id=family_id,
            generation=0,
            issued_at=now,
            expires_at=expires_at,
        )
        ttl = self._ttl(expires_at)
        k_fam = self._kf(family_id)
        k_rt = self._kr(record.token_id)
        try:
            pipe = self.r.pipeline(transaction=True)
            pipe.hset(
                k_fam,
                mapping={
                    "principal_id": principal_id,
                    "status": FamilyStatus.ACTIVE.value,
                    "created_at": str(self._to_ts(now)),
                    "generation": "0",
                    "live_token_id": record.token_id,
                    "revoked_at": "",
                },
            )
            pipe.expire(k_fam, ttl)
            pipe.hset(k_rt, mapping=self._record_mapping(record))
            pipe.expire(k_rt, ttl)
            pipe.sadd(self._kft(family_id), record.token_id)
            pipe.expire(self._kft(family_id), ttl)
            pipe.sadd(self._kp(principal_id), family_id)
            pipe.execute()
        except RedisError as exc:
            raise StoreUnavailable() from exc

        family = TokenFamily(
            family_id=family_id,
            principal_id=principal_id,
            created_at=self._truncate(now),
            generation=0,
            status=FamilyStatus.ACTIVE,
        )
        return family, self._stored(record)

    def _truncate(self, dt: datetime) -> datetime:
        return self._from_ts(str(self._to_ts(dt)))

    def _stored(self, record: RefreshTokenRecord) -> RefreshTokenRecord:
        # Callers observe second-resolution timestamps, same as on read.
        return replace(
            record,
            issued_at=self._truncate(record.issued_at),
            expires_at=self._from_ts(str(self._expiry_ts(record.expires_at))),
        )

    def get_family(self, family_id: str) -> TokenFamily | None:
        try:
            h = self.r.hgetall(self._kf(family_id))
        except RedisError as exc:
            raise StoreUnavailable() from exc
        if not h:
            return None
        return self._family_view(family_id, h)

    def get_record(self, token_id: str) -> RefreshTokenRecord | None:
        try:
            h = self.r.hgetall(self._kr(token_id))
        except RedisError as exc:
            raise StoreUnavailable() from exc
        if not h:
            return None
        return self._record_view(token_id, h)

    def get_live_record(self, family_id: str) -> RefreshTokenRecord | None:
        family = self.get_family(family_id)
        if family is None or not family.is_active:
            return None
        try:
            live_id = _b(self.r.hget(self._kf(family_id), "live_token_id"))
        except RedisError as exc:
            raise StoreUnavailable() from exc
        record = self.get_record(live_id) if live_id else None
        if record is None or record.consumed or record.is_expired(self.clock.now()):
            return None
        return record

    def advance(
        self, family_id: str, presented_token_id: str, *, expires_at: datetime
    ) -> RefreshTokenRecord:
        """
        Atomically consume ``presented_token_id`` and create its successor.

        Uses Redis WATCH/MULTI/EXEC (optimistic locking) on the family hash:
        - Check existence and state of the family and the presented record.
        - Reject if revoked / not live / expired.
        - Mark the presented record consumed, create generation+1 and move the
          family's live pointer in one transaction.
        A concurrent writer on the same family aborts the EXEC; the retry then
        observes the new live pointer and reports :class:`StaleToken`.
        """
        k_fam = self._kf(family_id)
        k_old = self._kr(presented_token_id)

        # Retry loop for optimistic locking in case of concurrent modifications
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(k_fam)

                    fam = p.hgetall(k_fam)
                    if not fam:
                        raise NotFoundError("TokenFamily", family_id)
                    old = p.hgetall(k_old)
                    if not old or _b(old.get(b"family_id")) != family_id:
                        raise NotFoundError("RefreshToken", family_id)
                    if _b(fam.get(b"status")) == FamilyStatus.REVOKED.value:
                        raise FamilyRevoked(family_id)
                    if (
                        _b(old.get(b"consumed"), "0") == "1"
                        or _b(fam.get(b"live_token_id")) != presented_token_id
                    ):
                        raise StaleToken(family_id)

                    now = self.clock.now()
                    if int(_b(old.get(b"expires_at"), "0")) <= now.timestamp():
                        raise Expired("Refresh token has expired.")

                    successor = RefreshTokenRecord(
                        token_id=self.new_token_id(),
                        family_id=family_id,
                        generation=int(_b(fam.get(b"generation"), "0")) + 1,
                        issued_at=now,
                        expires_at=expires_at,
                    )
                    ttl = self._ttl(expires_at)
                    k_new = self._kr(successor.token_id)

                    # Start the transactional block
                    p.multi()
                    p.hset(
                        k_old, mapping={"consumed": "1", "replaced_by": successor.token_id}
                    )
                    p.hset(k_new, mapping=self._record_mapping(successor))
                    p.expire(k_new, ttl)
                    p.hset(
                        k_fam,
                        mapping={
                            "generation": str(successor.generation),
                            "live_token_id": successor.token_id,
                        },
                    )
                    p.expire(k_fam, ttl)
                    p.sadd(self._kft(family_id), successor.token_id)
                    p.expire(self._kft(family_id), ttl)
                    p.execute()

                return self._stored(successor)

            except WatchError:
                # Concurrent modification detected; retry loop
                continue
            except RedisError as exc:
                raise StoreUnavailable() from exc

    def revoke_family(self, family_id: str) -> bool:
        k_fam = self._kf(family_id)
        while True:
            try:
                with self.r.pipeline() as p:
                    p.watch(k_fam)
                    fam = p.hgetall(k_fam)
                    if not fam or _b(fam.get(b"status")) == FamilyStatus.REVOKED.value:
                        return False
                    # Only touch records that still exist; HSET would
                    # resurrect an expired key without a TTL.
                    live_keys = [
                        key
                        for key in (
                            self._kr(m.decode() if isinstance(m, bytes | bytearray) else str(m))
                            for m in p.smembers(self._kft(family_id))
                        )
                        if p.exists(key)
                    ]
                    p.multi()
                    p.hset(
                        k_fam,
                        mapping={
                            "status": FamilyStatus.REVOKED.value,
                            "live_token_id": "",
                            "revoked_at": str(self._to_ts(self.clock.now())),
                        },
                    )
                    for key in live_keys:
                        p.hset(key, "consumed", "1")
                    p.execute()
                return True
            except WatchError:
                continue
            except RedisError as exc:
                raise StoreUnavailable() from exc

    def revoke_all_for_principal(self, principal_id: str) -> int:
        return sum(
            1 for family in self.list_families(principal_id) if self.revoke_family(family.family_id)
        )

    def list_families(self, principal_id: str) -> list[TokenFamily]:
        key_p = self._kp(principal_id)
        try:
            members = sorted(
                m.decode() if isinstance(m, bytes | bytearray) else str(m)
                for m in self.r.smembers(key_p)
            )
        except RedisError as exc:
            raise StoreUnavailable() from exc

        families: list[TokenFamily] = []
        stale: list[str] = []
        for family_id in members:
            view = self.get_family(family_id)
            if view is not None:
                families.append(view)
            else:
                # Underlying hash expired -> mark for cleanup
                stale.append(family_id)

        if stale:
            try:
                self.r.srem(key_p, *stale)
            except RedisError as exc:
                raise StoreUnavailable() from exc
        return families

    def purge_expired(self) -> int:
        """
        Delete records past ``expires_at + retention`` and families left empty.

        Key TTLs already collect most of this; the sweep also honours the
        injected clock and drops index entries whose hashes Redis expired.
        """
        cutoff = self._to_ts(self.clock.now() - self.retention)
        removed = 0
        try:
            for raw_key in self.r.scan_iter(match="ts:fam:*:rts"):
                key = _b(raw_key) if isinstance(raw_key, bytes | bytearray) else str(raw_key)
                family_id = key[len("ts:fam:") : -len(":rts")]
                members = [_b(m) for m in self.r.smembers(key)]
                gone: list[str] = []
                for token_id in members:
                    expires_at = self.r.hget(self._kr(token_id), "expires_at")
                    if expires_at is None or int(_b(expires_at)) <= cutoff:
                        gone.append(token_id)
                if not gone:
                    continue
                pipe = self.r.pipeline(transaction=True)
                pipe.delete(*(self._kr(t) for t in gone))
                pipe.srem(key, *gone)
                pipe.execute()
                removed += len(gone)
                if len(gone) == len(members):
                    self._drop_family(family_id)
        except RedisError as exc:
            raise StoreUnavailable() from exc
        return removed

    def _drop_family(self, family_id: str) -> None:
        principal_id = self.r.hget(self._kf(family_id), "principal_id")
        pipe = self.r.pipeline(transaction=True)
        pipe.delete(self._kf(family_id), self._kft(family_id))
        if principal_id is not None:
            pipe.srem(self._kp(_b(principal_id)), family_id)
        pipe.execute()
