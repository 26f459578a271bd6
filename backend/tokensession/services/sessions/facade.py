# tokensession/services/sessions/facade.py
from __future__ import annotations

from tokensession.services._shared.base import BaseService
from tokensession.services._shared.errors import NotFoundError, Unauthorized
from tokensession.services._shared.ports import (
    Clock,
    PrincipalDirectory,
    SessionStore,
    TokenCodec,
)
from tokensession.services.sessions.dto import (
    SessionPolicy,
    SessionPrincipal,
    SessionView,
    TokenPair,
)
from tokensession.services.sessions.revocation import RevocationManager
from tokensession.services.sessions.rotation import RotationEngine


class SessionFacade(BaseService):
    """
    The only surface the rest of the application calls.

    Exposes login / refresh / logout / logout_all plus access-token checks.
    Generation counters and store records never leave this class; callers
    get :class:`TokenPair`, :class:`SessionPrincipal` or :class:`SessionView`.
    A failed refresh is never retried here.
    """

    def __init__(
        self,
        *,
        store: SessionStore,
        codec: TokenCodec,
        principals: PrincipalDirectory,
        policy: SessionPolicy | None = None,
        clock: Clock | None = None,
    ) -> None:
        """
        :param store: Session store backend.
        :param codec: Access token codec.
        :param principals: Directory used to vet principals at login.
        :param policy: Token lifetimes.
        :param clock: Time source shared by engine and revocation.
        """
        super().__init__(clock=clock)
        self.store = store
        self.codec = codec
        self.principals = principals
        self.policy = policy or SessionPolicy()
        self.revocation = RevocationManager(store=store, clock=self.clock)
        self.rotation = RotationEngine(
            store=store,
            codec=codec,
            revocation=self.revocation,
            policy=self.policy,
            clock=self.clock,
        )

    # ------------------------------------------------------------------ #
    # Session lifecycle
    # ------------------------------------------------------------------ #

    def login(self, principal_id: str) -> TokenPair:
        """
        Open a new session for an already authenticated principal.

        :raises NotFoundError: When the directory does not know the principal.
        """
        principal_id = str(principal_id)
        if not self.principals.principal_exists(principal_id):
            raise NotFoundError("Principal", principal_id)
        return TokenPair.from_issued(self.rotation.start(principal_id))

    def refresh(self, family_id: str, refresh_token: str) -> TokenPair:
        """
        Rotate the refresh token of ``family_id``.

        :raises SessionEnded: Any terminal outcome; sign in again.
        :raises StoreUnavailable: Transient backend failure.
        """
        return TokenPair.from_issued(self.rotation.rotate(family_id, refresh_token))

    def logout(self, family_id: str) -> None:
        """Sign out one session; unknown or already ended sessions are ignored."""
        self.revocation.revoke_family(family_id, reason="logout")

    def logout_all(self, principal_id: str) -> int:
        """Sign out every session of ``principal_id``; returns how many ended."""
        return self.revocation.revoke_principal(str(principal_id), reason="logout_all")

    # ------------------------------------------------------------------ #
    # Access token checks
    # ------------------------------------------------------------------ #

    def authorize(self, access_token: str) -> str:
        """
        Return the principal an access token speaks for.

        Pure signature and expiry check; the store is not consulted, so a
        revoked session's access token stays valid until it expires.

        :raises Unauthorized: ``InvalidSignature`` or ``Expired``.
        """
        return self.codec.verify(access_token).principal_id

    def authenticate(self, access_token: str) -> SessionPrincipal:
        """Like :meth:`authorize` but also returns the session the token belongs to."""
        if not access_token:
            raise Unauthorized("Missing access token.")
        claims = self.codec.verify(access_token)
        return SessionPrincipal(principal_id=claims.principal_id, family_id=claims.family_id)

    # ------------------------------------------------------------------ #
    # Read model
    # ------------------------------------------------------------------ #

    def sessions(self, principal_id: str) -> list[SessionView]:
        """List the live sessions ("signed-in devices") of a principal, oldest first."""
        views: list[SessionView] = []
        for family in self.store.list_families(str(principal_id)):
            if not family.is_active:
                continue
            live = self.store.get_live_record(family.family_id)
            if live is None:
                continue
            views.append(
                SessionView(
                    family_id=family.family_id,
                    created_at=family.created_at,
                    last_refreshed_at=live.issued_at,
                    expires_at=live.expires_at,
                )
            )
        views.sort(key=lambda v: v.created_at)
        return views

    # ------------------------------------------------------------------ #
    # Maintenance
    # ------------------------------------------------------------------ #

    def purge_expired(self) -> int:
        """Drop refresh records past their retention window; returns how many."""
        removed = self.store.purge_expired()
        self.log.info("session.purged", extra={"event": "session.purged", "count": removed})
        return removed
