from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Protocol


@dataclass(frozen=True, slots=True)
class AccessToken:
    """
    Signed, self-contained access credential.

    :ivar token: Compact serialized token handed to the client.
    :ivar expires_at: Absolute expiration (UTC).
    """

    token: str
    expires_at: datetime


@dataclass(frozen=True, slots=True)
class AccessClaims:
    """
    Verified content of an access token.

    :ivar principal_id: Owner of the session.
    :ivar family_id: Token family the token was minted for.
    :ivar generation: Family generation at minting time.
    :ivar expires_at: Absolute expiration (UTC).
    """

    principal_id: str
    family_id: str
    generation: int
    expires_at: datetime


class TokenCodec(Protocol):
    """
    Port for minting and verifying access tokens.

    Implementations are stateless: they depend only on an injected signing
    keyring and clock, never on the session store.
    """

    def issue(
        self,
        principal_id: str,
        family_id: str,
        generation: int,
        ttl: timedelta,
    ) -> AccessToken:
        """Mint a signed access token valid for ``ttl``."""

    def verify(self, token: str) -> AccessClaims:
        """
        Check signature and expiry.

        :raises InvalidSignature: On any signature or format problem.
        :raises Expired: When the token is past its ``exp``.
        """
