from __future__ import annotations

import secrets
from dataclasses import dataclass
from datetime import datetime
from enum import Enum
from typing import Protocol


class FamilyStatus(str, Enum):
    """Lifecycle state of a token family."""

    ACTIVE = "active"
    REVOKED = "revoked"


@dataclass(frozen=True, slots=True)
class TokenFamily:
    """
    Read-model for one login session lineage (one device or browser).

    :ivar family_id: Family identifier.
    :ivar principal_id: Owner principal id.
    :ivar created_at: Login time (UTC).
    :ivar generation: Generation of the newest record in the chain.
    :ivar status: ``ACTIVE`` or ``REVOKED``.
    :ivar revoked_at: Revocation time, when revoked.
    """

    family_id: str
    principal_id: str
    created_at: datetime
    generation: int
    status: FamilyStatus
    revoked_at: datetime | None = None

    @property
    def is_active(self) -> bool:
        return self.status is FamilyStatus.ACTIVE


@dataclass(frozen=True, slots=True)
class RefreshTokenRecord:
    """
    Read-model for one link in a family's refresh-token chain.

    :ivar token_id: Opaque, unguessable refresh token value.
    :ivar family_id: Owning family.
    :ivar generation: Position in the chain, starting at 0.
    :ivar issued_at: Issue time (UTC).
    :ivar expires_at: Absolute expiration (UTC).
    :ivar consumed: Set once, by the rotation that replaced it or a revocation.
    :ivar replaced_by: Successor token id, when rotated.
    """

    token_id: str
    family_id: str
    generation: int
    issued_at: datetime
    expires_at: datetime
    consumed: bool = False
    replaced_by: str | None = None

    def is_expired(self, now: datetime) -> bool:
        return self.expires_at <= now


class SessionStore(Protocol):
    """
    Durable record of refresh-token lineage per principal device.

    ``advance`` MUST be a single atomic check-live-and-replace step, serialized
    per family only. Revocations MUST be idempotent. Backend failures surface as
    :class:`~tokensession.services._shared.errors.StoreUnavailable`.
    """

    def create_family(
        self, principal_id: str, *, expires_at: datetime
    ) -> tuple[TokenFamily, RefreshTokenRecord]:
        """Open a new family and its generation-0 record."""

    def get_family(self, family_id: str) -> TokenFamily | None:
        """Fetch a family snapshot (if present)."""

    def get_live_record(self, family_id: str) -> RefreshTokenRecord | None:
        """Return the unconsumed, unexpired record of an active family."""

    def get_record(self, token_id: str) -> RefreshTokenRecord | None:
        """Fetch a single record snapshot (if present)."""

    def advance(
        self, family_id: str, presented_token_id: str, *, expires_at: datetime
    ) -> RefreshTokenRecord:
        """
        Atomically consume ``presented_token_id`` and create its successor.

        :raises NotFoundError: Unknown family, or token unknown to that family.
        :raises FamilyRevoked: The family is revoked.
        :raises StaleToken: The token is not the live one.
        :raises Expired: The live token is past its expiry.
        """

    def revoke_family(self, family_id: str) -> bool:
        """Revoke a family. :returns: True if this call changed its state."""

    def revoke_all_for_principal(self, principal_id: str) -> int:
        """Revoke every family of a principal. :returns: Families revoked now."""

    def list_families(self, principal_id: str) -> list[TokenFamily]:
        """List the families (active and revoked) still held for a principal."""

    def purge_expired(self) -> int:
        """Drop records past expiry plus retention. :returns: Records removed."""

    def new_token_id(self) -> str:
        """Generate a new random refresh token identifier."""
        return secrets.token_urlsafe(32)
