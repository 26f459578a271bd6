# tokensession/services/sessions/rotation.py
from __future__ import annotations

from tokensession.services._shared.base import BaseService
from tokensession.services._shared.errors import (
    Expired,
    FamilyRevoked,
    NotFoundError,
    SessionExpired,
    SessionNotFound,
    SessionRevoked,
    StaleToken,
)
from tokensession.services._shared.ports import Clock, SessionStore, TokenCodec
from tokensession.services.sessions.dto import IssuedSession, SessionPolicy
from tokensession.services.sessions.revocation import RevocationManager


class RotationEngine(BaseService):
    """
    Drives the per-family state machine.

    ``ACTIVE(n) -> ACTIVE(n+1)`` on a successful refresh; ``-> REVOKED`` on
    logout, admin action or a replayed refresh token.

    Security
    --------
    - Any :class:`StaleToken` from the store is a reuse signal. The whole
      family is revoked before the caller hears anything, even when the
      "replay" was a benign double submit; callers only ever see
      :class:`SessionRevoked`.
    - Expired and unknown sessions end without any revocation.
    - :class:`StoreUnavailable` propagates untouched and is never retried here.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        codec: TokenCodec,
        revocation: RevocationManager,
        policy: SessionPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        super().__init__(clock=clock)
        self.store = store
        self.codec = codec
        self.revocation = revocation
        self.policy = policy or SessionPolicy()

    # ------------------------------------------------------------------ #
    # Chain root
    # ------------------------------------------------------------------ #

    def start(self, principal_id: str) -> IssuedSession:
        """Create a family at generation 0 and mint its first access token."""
        now = self.now_utc()
        family, record = self.store.create_family(
            principal_id,
            expires_at=self.policy.refresh_expiry(now=now, created_at=now),
        )
        access = self.codec.issue(
            principal_id, family.family_id, record.generation, self.policy.access_ttl
        )
        self.log.info(
            "session.started",
            extra={
                "event": "session.started",
                "family_id": family.family_id,
                "principal_id": principal_id,
            },
        )
        return IssuedSession(
            family_id=family.family_id,
            principal_id=principal_id,
            access=access,
            refresh=record,
        )

    # ------------------------------------------------------------------ #
    # Rotation
    # ------------------------------------------------------------------ #

    def rotate(self, family_id: str, presented_token_id: str) -> IssuedSession:
        """
        Exchange the live refresh token for generation ``n+1``.

        :raises SessionRevoked: Reuse detected (family now revoked) or family
            already revoked.
        :raises SessionExpired: Refresh token or absolute lifetime ran out.
        :raises SessionNotFound: Unknown family or token.
        :raises StoreUnavailable: Backend failure; state is unchanged.
        """
        family = self.store.get_family(family_id)
        if family is None:
            raise SessionNotFound(family_id)

        now = self.now_utc()
        expires_at = self.policy.refresh_expiry(now=now, created_at=family.created_at)

        # The store sees every presented token so a replay is caught even at
        # the end of the session's lifetime.
        try:
            record = self.store.advance(family_id, presented_token_id, expires_at=expires_at)
        except FamilyRevoked:
            raise SessionRevoked(family_id) from None
        except StaleToken:
            self.revocation.revoke_on_reuse(family_id)
            raise SessionRevoked(family_id) from None
        except Expired:
            raise SessionExpired(family_id) from None
        except NotFoundError:
            raise SessionNotFound(family_id) from None

        if expires_at <= now:
            self.log.info(
                "session.lifetime_exhausted",
                extra={"event": "session.lifetime_exhausted", "family_id": family_id},
            )
            raise SessionExpired(family_id)

        access = self.codec.issue(
            family.principal_id, family_id, record.generation, self.policy.access_ttl
        )
        self.log.info(
            "session.rotated",
            extra={
                "event": "session.rotated",
                "family_id": family_id,
                "principal_id": family.principal_id,
            },
        )
        return IssuedSession(
            family_id=family_id,
            principal_id=family.principal_id,
            access=access,
            refresh=record,
        )
