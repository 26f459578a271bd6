from __future__ import annotations

from collections.abc import Callable, Iterator
from contextlib import contextmanager
from datetime import timedelta
from uuid import uuid4

from sqlalchemy.exc import IntegrityError, InterfaceError, OperationalError

from tokensession.models import RefreshTokenModel, TokenFamilyModel
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
from tokensession.services._shared.ports.clock import as_utc
from tokensession.uow.sqlalchemy_uow import SQLAlchemyUnitOfWork


def _family_view(row: TokenFamilyModel) -> TokenFamily:
    return TokenFamily(
        family_id=row.family_id,
        principal_id=row.principal_id,
        created_at=as_utc(row.created_at),
        generation=row.generation,
        status=FamilyStatus(row.status),
        revoked_at=as_utc(row.revoked_at) if row.revoked_at is not None else None,
    )


def _record_view(row: RefreshTokenModel) -> RefreshTokenRecord:
    return RefreshTokenRecord(
        token_id=row.token_id,
        family_id=row.family_id,
        generation=row.generation,
        issued_at=as_utc(row.issued_at),
        expires_at=as_utc(row.expires_at),
        consumed=bool(row.consumed),
        replaced_by=row.replaced_by,
    )


class SQLAlchemySessionStore(SessionStore):
    """
    Relational session store (``token_families`` / ``refresh_tokens``).

    Each call runs in its own Unit of Work. ``advance`` is an optimistic
    compare-and-set: the family row is updated ``WHERE version = :seen`` and the
    presented record ``WHERE consumed = false``; losing either race (zero rows)
    or colliding on the ``(family_id, generation)`` unique key rolls the whole
    transaction back and reports :class:`StaleToken`. Rows of different
    families never share a lock.

    :param uow_factory: Callable returning a fresh Unit of Work.
    :param clock: Time source for issue/expiry checks.
    :param retention: How long records are kept past expiry for replay detection.
    """

    def __init__(
        self,
        *,
        uow_factory: Callable[[], SQLAlchemyUnitOfWork] = SQLAlchemyUnitOfWork,
        clock: Clock | None = None,
        retention: timedelta = timedelta(days=7),
    ) -> None:
        self.uow_factory = uow_factory
        self.clock = clock or SystemClock()
        self.retention = retention

    @contextmanager
    def _backend_errors(self, family_id: str | None = None) -> Iterator[None]:
        """Translate driver failures into domain errors."""
        try:
            yield
        except IntegrityError as exc:
            if family_id is None:
                raise
            # Another rotation already created this generation.
            raise StaleToken(family_id) from exc
        except (OperationalError, InterfaceError) as exc:
            raise StoreUnavailable() from exc

    # -------------------------- API ----------------------------

    def create_family(
        self, principal_id: str, *, expires_at
    ) -> tuple[TokenFamily, RefreshTokenRecord]:
        now = self.clock.now()
        with self._backend_errors(), self.uow_factory() as uow:
            family = uow.families.add(
                TokenFamilyModel(
                    family_id=uuid4().hex,
                    principal_id=principal_id,
                    status=FamilyStatus.ACTIVE.value,
                    generation=0,
                    created_at=now,
                    version=0,
                )
            )
            record = uow.refresh_tokens.add(
                RefreshTokenModel(
                    token_id=self.new_token_id(),
                    family_id=family.family_id,
                    generation=0,
                    issued_at=now,
                    expires_at=expires_at,
                    consumed=False,
                )
            )
            views = _family_view(family), _record_view(record)
        return views

    def get_family(self, family_id: str) -> TokenFamily | None:
        with self._backend_errors(), self.uow_factory() as uow:
            row = uow.families.get(family_id)
            return _family_view(row) if row is not None else None

    def get_record(self, token_id: str) -> RefreshTokenRecord | None:
        with self._backend_errors(), self.uow_factory() as uow:
            row = uow.refresh_tokens.get(token_id)
            return _record_view(row) if row is not None else None

    def get_live_record(self, family_id: str) -> RefreshTokenRecord | None:
        with self._backend_errors(), self.uow_factory() as uow:
            family = uow.families.get(family_id)
            if family is None or family.status != FamilyStatus.ACTIVE.value:
                return None
            row = uow.refresh_tokens.get_unconsumed(family_id)
            if row is None:
                return None
            record = _record_view(row)
        if record.is_expired(self.clock.now()):
            return None
        return record

    def advance(self, family_id: str, presented_token_id: str, *, expires_at) -> RefreshTokenRecord:
        with self._backend_errors(family_id), self.uow_factory() as uow:
            family = uow.families.get(family_id)
            if family is None:
                raise NotFoundError("TokenFamily", family_id)
            presented = uow.refresh_tokens.get(presented_token_id)
            if presented is None or presented.family_id != family_id:
                raise NotFoundError("RefreshToken", family_id)
            if family.status == FamilyStatus.REVOKED.value:
                raise FamilyRevoked(family_id)
            if presented.consumed or presented.generation != family.generation:
                raise StaleToken(family_id)

            now = self.clock.now()
            if as_utc(presented.expires_at) <= now:
                raise Expired("Refresh token has expired.")

            successor_id = self.new_token_id()
            generation = family.generation + 1
            if not uow.families.advance_generation(
                family_id, seen_version=family.version, generation=generation
            ):
                raise StaleToken(family_id)
            if not uow.refresh_tokens.consume(presented_token_id, replaced_by=successor_id):
                raise StaleToken(family_id)

            successor = uow.refresh_tokens.add(
                RefreshTokenModel(
                    token_id=successor_id,
                    family_id=family_id,
                    generation=generation,
                    issued_at=now,
                    expires_at=expires_at,
                    consumed=False,
                )
            )
            view = _record_view(successor)
        return view

    def revoke_family(self, family_id: str) -> bool:
        now = self.clock.now()
        with self._backend_errors(), self.uow_factory() as uow:
            changed = uow.families.mark_revoked(family_id, revoked_at=now)
            if changed:
                uow.refresh_tokens.consume_family(family_id)
        return changed

    def revoke_all_for_principal(self, principal_id: str) -> int:
        now = self.clock.now()
        revoked = 0
        with self._backend_errors(), self.uow_factory() as uow:
            for family_id in uow.families.active_ids_for_principal(principal_id):
                if uow.families.mark_revoked(family_id, revoked_at=now):
                    uow.refresh_tokens.consume_family(family_id)
                    revoked += 1
        return revoked

    def list_families(self, principal_id: str) -> list[TokenFamily]:
        with self._backend_errors(), self.uow_factory() as uow:
            return [_family_view(row) for row in uow.families.list_for_principal(principal_id)]

    def purge_expired(self) -> int:
        cutoff = self.clock.now() - self.retention
        with self._backend_errors(), self.uow_factory() as uow:
            removed = uow.refresh_tokens.delete_expired_before(cutoff)
            uow.families.delete_empty()
        return removed
