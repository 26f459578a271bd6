from __future__ import annotations

from datetime import UTC, datetime, timedelta
from uuid import uuid4

import jwt

from tokensession.infra.jwt.keyring import SigningKeyring
from tokensession.services._shared.errors import Expired, InvalidSignature
from tokensession.services._shared.ports import (
    AccessClaims,
    AccessToken,
    Clock,
    SystemClock,
    TokenCodec,
)

ACCESS_TOKEN_TYPE = "access"
REQUIRED_CLAIMS = ["exp", "iat", "iss", "sub", "fam", "gen"]


class JWTTokenCodec(TokenCodec):
    """
    PyJWT-backed access token codec.

    Tokens carry ``sub`` (principal), ``fam`` (family), ``gen`` (generation),
    ``iat``/``exp``/``iss``/``jti`` and ``typ = "access"``; the header carries
    the ``kid`` of the signing key. Expiry is checked against the injected
    clock rather than PyJWT's wall clock so tests can move time.

    :param keyring: Signing keys (current plus retired ones within overlap).
    :param clock: Time source.
    :param algorithm: HMAC algorithm (``HS256`` by default).
    :param issuer: Value of the ``iss`` claim written and required.
    :param leeway: Tolerance for clock skew when checking ``exp``.
    """

    def __init__(
        self,
        keyring: SigningKeyring,
        *,
        clock: Clock | None = None,
        algorithm: str = "HS256",
        issuer: str = "tokensession",
        leeway: timedelta = timedelta(0),
    ) -> None:
        self.keyring = keyring
        self.clock = clock or SystemClock()
        self.algorithm = algorithm
        self.issuer = issuer
        self.leeway = leeway

    def issue(
        self,
        principal_id: str,
        family_id: str,
        generation: int,
        ttl: timedelta,
    ) -> AccessToken:
        now = self.clock.now()
        exp = int((now + ttl).timestamp())
        key = self.keyring.current
        payload = {
            "iss": self.issuer,
            "sub": str(principal_id),
            "fam": family_id,
            "gen": int(generation),
            "iat": int(now.timestamp()),
            "exp": exp,
            "jti": uuid4().hex,
            "typ": ACCESS_TOKEN_TYPE,
        }
        token = jwt.encode(payload, key.secret, algorithm=self.algorithm, headers={"kid": key.kid})
        return AccessToken(token=token, expires_at=datetime.fromtimestamp(exp, UTC))

    def verify(self, token: str) -> AccessClaims:
        now = self.clock.now()
        try:
            header = jwt.get_unverified_header(token)
        except jwt.InvalidTokenError as exc:
            raise InvalidSignature("Malformed token.") from exc

        kid = header.get("kid")
        key = self.keyring.resolve(kid, now) if isinstance(kid, str) else None
        if key is None:
            raise InvalidSignature("Unknown or retired signing key.")

        try:
            payload = jwt.decode(
                token,
                key.secret,
                algorithms=[self.algorithm],
                issuer=self.issuer,
                options={
                    "verify_exp": False,
                    "verify_iat": False,
                    "verify_nbf": False,
                    "require": REQUIRED_CLAIMS,
                },
            )
        except jwt.InvalidTokenError as exc:
            raise InvalidSignature() from exc

        exp = payload["exp"]
        generation = payload["gen"]
        if (
            payload.get("typ") != ACCESS_TOKEN_TYPE
            or not isinstance(exp, int | float)
            or isinstance(generation, bool)
            or not isinstance(generation, int)
            or not isinstance(payload["fam"], str)
        ):
            raise InvalidSignature("Unexpected token claims.")

        if exp <= (now - self.leeway).timestamp():
            raise Expired("Access token has expired.")

        return AccessClaims(
            principal_id=str(payload["sub"]),
            family_id=payload["fam"],
            generation=generation,
            expires_at=datetime.fromtimestamp(exp, UTC),
        )
