# tokensession/services/sessions/revocation.py
from __future__ import annotations

from tokensession.services._shared.base import BaseService
from tokensession.services._shared.ports import Clock, SessionStore


class RevocationManager(BaseService):
    """
    Ends sessions: one device, every device of a principal, or a family caught
    replaying a refresh token.

    All operations are idempotent; revoking an already revoked or unknown
    family is a no-op. Each call emits one structured log event carrying ids
    only, never token values.
    """

    def __init__(self, *, store: SessionStore, clock: Clock | None = None) -> None:
        super().__init__(clock=clock)
        self.store = store

    def revoke_family(self, family_id: str, *, reason: str = "logout") -> bool:
        """
        Revoke one family ("sign out this device").

        :returns: ``True`` when this call changed the family's state.
        """
        changed = self.store.revoke_family(family_id)
        self.log.info(
            "session.revoked",
            extra={
                "event": "session.revoked",
                "family_id": family_id,
                "reason": reason,
                "count": int(changed),
            },
        )
        return changed

    def revoke_principal(self, principal_id: str, *, reason: str = "logout_all") -> int:
        """
        Revoke every active family of ``principal_id`` (password change,
        security event, "log out everywhere").

        :returns: Number of families revoked by this call.
        """
        count = self.store.revoke_all_for_principal(principal_id)
        self.log.info(
            "session.revoked_all",
            extra={
                "event": "session.revoked_all",
                "principal_id": principal_id,
                "reason": reason,
                "count": count,
            },
        )
        return count

    def revoke_on_reuse(self, family_id: str) -> bool:
        """Burn a family after a consumed refresh token was presented again."""
        self.log.warning(
            "session.reuse_detected",
            extra={"event": "session.reuse_detected", "family_id": family_id, "reason": "reuse"},
        )
        return self.revoke_family(family_id, reason="reuse")
