from __future__ import annotations

import threading
import zlib
from dataclasses import dataclass, replace
from datetime import datetime, timedelta
from uuid import uuid4

from tokensession.services._shared.errors import (
    Expired,
    FamilyRevoked,
    NotFoundError,
    StaleToken,
)
from tokensession.services._shared.ports import (
    Clock,
    FamilyStatus,
    RefreshTokenRecord,
    SessionStore,
    SystemClock,
    TokenFamily,
)


class StripedLock:
    """
    Fixed pool of locks selected by key hash.

    Two keys only contend when they hash to the same stripe, so unrelated
    families are not serialized behind one process-wide lock.
    """

    def __init__(self, stripes: int = 64) -> None:
        if stripes < 1:
            raise ValueError("stripes must be >= 1")
        self._locks = [threading.Lock() for _ in range(stripes)]

    def for_key(self, key: str) -> threading.Lock:
        return self._locks[zlib.crc32(key.encode()) % len(self._locks)]


@dataclass(slots=True)
class _FamilyRow:
    principal_id: str
    created_at: datetime
    generation: int
    status: FamilyStatus
    live_token_id: str | None
    token_ids: list[str]
    revoked_at: datetime | None = None


class InMemorySessionStore(SessionStore):
    """
    Process-local session store with per-family atomic rotation.

    .. note::
       Rotation and revocation of a family run under that family's lock
       stripe. The principal index has its own small lock that ``advance``
       never takes.
    """

    def __init__(
        self,
        *,
        clock: Clock | None = None,
        retention: timedelta = timedelta(days=7),
        stripes: int = 64,
    ) -> None:
        self.clock = clock or SystemClock()
        self.retention = retention
        self._families: dict[str, _FamilyRow] = {}
        self._records: dict[str, RefreshTokenRecord] = {}
        self._by_principal: dict[str, set[str]] = {}
        self._family_locks = StripedLock(stripes)
        self._index_lock = threading.Lock()

    # ------------------------- helpers -------------------------

    def _view(self, family_id: str, row: _FamilyRow) -> TokenFamily:
        return TokenFamily(
            family_id=family_id,
            principal_id=row.principal_id,
            created_at=row.created_at,
            generation=row.generation,
            status=row.status,
            revoked_at=row.revoked_at,
        )

    # -------------------------- API ----------------------------

    def create_family(
        self, principal_id: str, *, expires_at: datetime
    ) -> tuple[TokenFamily, RefreshTokenRecord]:
        now = self.clock.now()
        family_id = uuid4().hex
        record = RefreshTokenRecord(
            token_id=self.new_token_id(),
            family_id=family_id,
            generation=0,
            issued_at=now,
            expires_at=expires_at,
        )
        row = _FamilyRow(
            principal_id=principal_id,
            created_at=now,
            generation=0,
            status=FamilyStatus.ACTIVE,
            live_token_id=record.token_id,
            token_ids=[record.token_id],
        )
        with self._family_locks.for_key(family_id):
            self._records[record.token_id] = record
            self._families[family_id] = row
        with self._index_lock:
            self._by_principal.setdefault(principal_id, set()).add(family_id)
        return self._view(family_id, row), record

    def get_family(self, family_id: str) -> TokenFamily | None:
        row = self._families.get(family_id)
        if row is None:
            return None
        return self._view(family_id, row)

    def get_live_record(self, family_id: str) -> RefreshTokenRecord | None:
        row = self._families.get(family_id)
        if row is None or row.status is not FamilyStatus.ACTIVE or not row.live_token_id:
            return None
        record = self._records.get(row.live_token_id)
        if record is None or record.consumed or record.is_expired(self.clock.now()):
            return None
        return record

    def get_record(self, token_id: str) -> RefreshTokenRecord | None:
        return self._records.get(token_id)

    def advance(
        self, family_id: str, presented_token_id: str, *, expires_at: datetime
    ) -> RefreshTokenRecord:
        with self._family_locks.for_key(family_id):
            row = self._families.get(family_id)
            if row is None:
                raise NotFoundError("TokenFamily", family_id)
            presented = self._records.get(presented_token_id)
            if presented is None or presented.family_id != family_id:
                raise NotFoundError("RefreshToken", family_id)
            if row.status is FamilyStatus.REVOKED:
                raise FamilyRevoked(family_id)
            if presented.consumed or row.live_token_id != presented_token_id:
                raise StaleToken(family_id)

            now = self.clock.now()
            if presented.is_expired(now):
                raise Expired("Refresh token has expired.")

            successor = RefreshTokenRecord(
                token_id=self.new_token_id(),
                family_id=family_id,
                generation=row.generation + 1,
                issued_at=now,
                expires_at=expires_at,
            )
            self._records[presented_token_id] = replace(
                presented, consumed=True, replaced_by=successor.token_id
            )
            self._records[successor.token_id] = successor
            row.generation = successor.generation
            row.live_token_id = successor.token_id
            row.token_ids.append(successor.token_id)
            return successor

    def revoke_family(self, family_id: str) -> bool:
        with self._family_locks.for_key(family_id):
            row = self._families.get(family_id)
            if row is None or row.status is FamilyStatus.REVOKED:
                return False
            row.status = FamilyStatus.REVOKED
            row.revoked_at = self.clock.now()
            row.live_token_id = None
            for token_id in row.token_ids:
                record = self._records.get(token_id)
                if record is not None and not record.consumed:
                    self._records[token_id] = replace(record, consumed=True)
            return True

    def revoke_all_for_principal(self, principal_id: str) -> int:
        with self._index_lock:
            family_ids = sorted(self._by_principal.get(principal_id, set()))
        return sum(1 for family_id in family_ids if self.revoke_family(family_id))

    def list_families(self, principal_id: str) -> list[TokenFamily]:
        with self._index_lock:
            family_ids = sorted(self._by_principal.get(principal_id, set()))
        views = (self.get_family(family_id) for family_id in family_ids)
        return [v for v in views if v is not None]

    def purge_expired(self) -> int:
        cutoff = self.clock.now() - self.retention
        removed = 0
        for family_id in list(self._families):
            with self._family_locks.for_key(family_id):
                row = self._families.get(family_id)
                if row is None:
                    continue
                kept: list[str] = []
                for token_id in row.token_ids:
                    record = self._records.get(token_id)
                    if record is None:
                        continue
                    if record.expires_at <= cutoff:
                        del self._records[token_id]
                        removed += 1
                    else:
                        kept.append(token_id)
                row.token_ids = kept
                if kept:
                    continue
                del self._families[family_id]
            with self._index_lock:
                owned = self._by_principal.get(row.principal_id)
                if owned is not None:
                    owned.discard(family_id)
                    if not owned:
                        del self._by_principal[row.principal_id]
        return removed
