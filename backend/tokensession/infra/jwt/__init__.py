"""PyJWT adapter for the access token codec."""

from __future__ import annotations

from .jwt_token_codec import JWTTokenCodec
from .keyring import SigningKey, SigningKeyring

__all__ = ["JWTTokenCodec", "SigningKey", "SigningKeyring"]
