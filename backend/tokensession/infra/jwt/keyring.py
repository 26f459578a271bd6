"""
Signing keys for access tokens and the overlap rule used when rotating them.

A keyring is immutable: rotating the signing key builds a new keyring which is
then swapped in by the host. Tokens are always signed with ``current``; a
retired key keeps verifying tokens until ``retired_at + overlap`` so that
tokens minted just before a rotation stay valid for their remaining lifetime.
"""

from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any

from tokensession.services._shared.ports.clock import as_utc


@dataclass(frozen=True, slots=True)
class SigningKey:
    """
    One HMAC signing secret.

    :param kid: Key identifier written to the token header.
    :param secret: Shared secret; never logged.
    :param retired_at: When the key stopped signing (``None`` while current).
    """

    kid: str
    secret: str
    retired_at: datetime | None = None

    def __repr__(self) -> str:
        return f"<SigningKey kid={self.kid!r} retired_at={self.retired_at!r}>"


@dataclass(frozen=True, slots=True)
class SigningKeyring:
    """
    Current signing key plus the retired keys still accepted for verification.

    :param current: Key used to sign new tokens.
    :param previous: Retired keys, each carrying ``retired_at``.
    :param overlap: How long a retired key keeps verifying tokens.
    """

    current: SigningKey
    previous: tuple[SigningKey, ...] = ()
    overlap: timedelta = timedelta(hours=1)

    def __post_init__(self) -> None:
        if not self.current.kid or not self.current.secret:
            raise ValueError("The current signing key needs a kid and a secret.")
        kids = [self.current.kid, *(k.kid for k in self.previous)]
        if len(kids) != len(set(kids)):
            raise ValueError("Signing key ids must be unique.")
        if any(k.retired_at is None for k in self.previous):
            raise ValueError("Previous signing keys must carry retired_at.")
        if self.overlap < timedelta(0):
            raise ValueError("overlap must not be negative.")

    def resolve(self, kid: str, now: datetime) -> SigningKey | None:
        """Return the key able to verify ``kid`` at ``now``, if any."""
        if kid == self.current.kid:
            return self.current
        for key in self.previous:
            if key.kid == kid and now < as_utc(key.retired_at) + self.overlap:
                return key
        return None

    def rotated(self, new_key: SigningKey, *, at: datetime) -> SigningKeyring:
        """
        Return a keyring signing with ``new_key``.

        The old current key is retired at ``at``; previous keys whose overlap
        window has already closed are dropped.
        """
        retired = SigningKey(self.current.kid, self.current.secret, retired_at=at)
        still_open = tuple(k for k in self.previous if at < as_utc(k.retired_at) + self.overlap)
        return SigningKeyring(
            current=SigningKey(new_key.kid, new_key.secret),
            previous=(retired, *still_open),
            overlap=self.overlap,
        )

    @classmethod
    def from_config(cls, config: Mapping[str, Any]) -> SigningKeyring:
        """
        Build a keyring from Flask-style configuration.

        Reads ``TOKEN_SIGNING_KEY``, ``TOKEN_SIGNING_KEY_ID``,
        ``TOKEN_PREVIOUS_SIGNING_KEYS`` (``kid:secret`` pairs separated by
        commas), ``TOKEN_KEY_ROTATED_AT`` (ISO-8601) and
        ``TOKEN_KEY_OVERLAP_SECONDS``.

        :raises ValueError: On missing or malformed values.
        """
        secret = config.get("TOKEN_SIGNING_KEY")
        if not secret:
            raise ValueError("TOKEN_SIGNING_KEY is not configured.")
        current = SigningKey(str(config.get("TOKEN_SIGNING_KEY_ID") or "primary"), str(secret))
        overlap = timedelta(seconds=int(config.get("TOKEN_KEY_OVERLAP_SECONDS", 3600)))

        raw_previous = str(config.get("TOKEN_PREVIOUS_SIGNING_KEYS") or "").strip()
        if not raw_previous:
            return cls(current=current, overlap=overlap)

        rotated_at_raw = config.get("TOKEN_KEY_ROTATED_AT")
        if not rotated_at_raw:
            raise ValueError("TOKEN_KEY_ROTATED_AT is required when previous keys are set.")
        rotated_at = (
            rotated_at_raw
            if isinstance(rotated_at_raw, datetime)
            else datetime.fromisoformat(str(rotated_at_raw))
        )
        rotated_at = as_utc(rotated_at)

        previous: list[SigningKey] = []
        for pair in raw_previous.split(","):
            kid, sep, prev_secret = pair.strip().partition(":")
            if not sep or not kid or not prev_secret:
                raise ValueError("TOKEN_PREVIOUS_SIGNING_KEYS entries must look like 'kid:secret'.")
            previous.append(SigningKey(kid, prev_secret, retired_at=rotated_at))
        return cls(current=current, previous=tuple(previous), overlap=overlap)
