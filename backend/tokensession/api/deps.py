"""Request guards and helpers for hosts exposing the session core over HTTP."""

from __future__ import annotations

import functools
from collections.abc import Callable
from typing import Any, TypeVar

from flask import Response, g, jsonify, request

from tokensession.factory import get_sessions
from tokensession.services._shared.errors import Unauthorized
from tokensession.services.sessions import SessionPrincipal

F = TypeVar("F", bound=Callable[..., Any])

BEARER_PREFIX = "bearer "


def bearer_token() -> str:
    """
    Extract the token from ``Authorization: Bearer <token>``.

    :raises Unauthorized: When the header is missing or not a bearer credential.
    """
    header = request.headers.get("Authorization", "")
    if not header.lower().startswith(BEARER_PREFIX):
        raise Unauthorized("Missing bearer token.")
    token = header[len(BEARER_PREFIX) :].strip()
    if not token:
        raise Unauthorized("Missing bearer token.")
    return token


def require_session(func: F) -> F:
    """Ensure the request carries a valid access token; exposes it on ``g.session_principal``."""

    @functools.wraps(func)
    def wrapper(*args: Any, **kwargs: Any):
        g.session_principal = get_sessions().authenticate(bearer_token())
        return func(*args, **kwargs)

    return wrapper  # type: ignore[return-value]


def current_principal() -> SessionPrincipal:
    """Return the principal set by :func:`require_session`."""
    principal = getattr(g, "session_principal", None)
    if principal is None:
        raise Unauthorized("No authenticated session in this request.")
    return principal


def json_response(payload: Any, *, status: int = 200) -> Response:
    """Return a JSON response enforcing a consistent MIME type."""

    response = jsonify(payload)
    response.status_code = status
    return response
