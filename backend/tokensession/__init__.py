"""Token session core.

Issues short-lived signed access tokens backed by rotating refresh tokens,
detects refresh-token replay and revokes sessions. Exposes the application
factory and the facade accessor at package level so hosts can
``from tokensession import create_app``.
"""

from __future__ import annotations

from .factory import create_app, get_sessions

__all__ = ["create_app", "get_sessions"]
