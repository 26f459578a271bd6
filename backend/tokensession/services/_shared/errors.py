"""
Domain-level exceptions used within the service layer.

These exceptions are **framework-agnostic** and should never import or depend
on Flask, HTTP, Redis or SQLAlchemy directly. They serve as stable contracts
between the session stores, the token codec and the session services.

The translation to HTTP responses (RFC 7807) is handled by
``tokensession/core/errors.py``.

Taxonomy
--------
- :class:`NotFoundError`: unknown family or refresh token.
- :class:`Unauthorized`: access token rejected; specialised by
  :class:`InvalidSignature` and :class:`Expired`.
- :class:`StaleToken`: a refresh token that is not the live one was presented
  (the replay signal); :class:`FamilyRevoked` when the whole family is gone.
- :class:`SessionEnded`: terminal outcome surfaced to callers as
  "please sign in again".
- :class:`StoreUnavailable`: transient infrastructure failure.
"""

from __future__ import annotations

# --------------------------------------------------------------------------- #
# Base types
# --------------------------------------------------------------------------- #


class ServiceError(Exception):
    """
    Base class for all service-level errors.

    Notes
    -----
    - These are *not* HTTP errors.
    - They can be safely raised from stores, codecs or services.
    - ``core.errors`` translates them to problem+json responses.
    """

    pass


# --------------------------------------------------------------------------- #
# Specific domain-level errors
# --------------------------------------------------------------------------- #


class NotFoundError(ServiceError):
    """
    Raised when an entity is not found in the store.

    :param entity: Entity name (e.g., "TokenFamily").
    :type entity: str
    :param key: Identifier or search key.
    :type key: str | int
    """

    def __init__(self, entity: str, key: str | int) -> None:
        super().__init__(f"{entity} not found: {key}")
        self.entity = entity
        self.key = key


class Unauthorized(ServiceError):
    """Raised when an access token cannot be accepted."""


class InvalidSignature(Unauthorized):
    """Raised when a token is malformed, forged, or signed with an unknown key."""

    def __init__(self, message: str = "Token signature is invalid.") -> None:
        super().__init__(message)


class Expired(Unauthorized):
    """Raised when an access or refresh token is past its lifetime."""

    def __init__(self, message: str = "Token has expired.") -> None:
        super().__init__(message)


class StaleToken(ServiceError):
    """
    Raised when the presented refresh token is not the family's live token.

    This is the replay signal: the token was already consumed by an earlier
    rotation (or lost a race against one).

    :param family_id: Family the token was presented for.
    :type family_id: str
    """

    def __init__(self, family_id: str, message: str = "Refresh token is no longer live.") -> None:
        super().__init__(message)
        self.family_id = family_id


class FamilyRevoked(StaleToken):
    """Raised when a refresh token is presented for an already revoked family."""

    def __init__(self, family_id: str) -> None:
        super().__init__(family_id, "Token family has been revoked.")


class SessionEnded(ServiceError):
    """
    Terminal outcome of a refresh: the caller must re-authenticate.

    Replay details are deliberately not carried; ``reason`` is one of
    ``"revoked"``, ``"expired"`` or ``"not_found"``.

    :param family_id: Family whose session ended.
    :type family_id: str
    """

    reason = "ended"

    def __init__(
        self,
        family_id: str,
        message: str = "Session has ended. Please sign in again.",
    ) -> None:
        super().__init__(message)
        self.family_id = family_id


class SessionRevoked(SessionEnded):
    """The family was revoked (logout, admin action or detected reuse)."""

    reason = "revoked"


class SessionExpired(SessionEnded, Expired):
    """The refresh token, or the session's absolute lifetime, has run out."""

    reason = "expired"

    def __init__(self, family_id: str) -> None:
        SessionEnded.__init__(self, family_id, "Session has expired. Please sign in again.")


class SessionNotFound(SessionEnded, NotFoundError):
    """The family or the presented refresh token is unknown."""

    reason = "not_found"

    def __init__(self, family_id: str) -> None:
        NotFoundError.__init__(self, "TokenFamily", family_id)
        self.family_id = family_id


class StoreUnavailable(ServiceError):
    """
    Raised when the session store backend cannot be reached.

    Callers retry with backoff; the core never retries internally because a
    transport failure may hide whether a write committed.
    """

    def __init__(self, message: str = "Session store is temporarily unavailable.") -> None:
        super().__init__(message)
