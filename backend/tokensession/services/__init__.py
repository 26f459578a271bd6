"""Service layer public API.

Re-exports
----------
- :class:`SessionFacade` and its DTOs (:class:`TokenPair`,
  :class:`SessionPrincipal`, :class:`SessionView`, :class:`SessionPolicy`).
- :func:`build_session_facade` for wiring from configuration.
"""

from __future__ import annotations

from .sessions import (
    SessionFacade,
    SessionPolicy,
    SessionPrincipal,
    SessionView,
    TokenPair,
    build_session_facade,
)

__all__ = [
    "SessionFacade",
    "SessionPolicy",
    "SessionPrincipal",
    "SessionView",
    "TokenPair",
    "build_session_facade",
]
