"""Persistence-only repositories for the relational session store."""

from __future__ import annotations

from .refresh_token import RefreshTokenRepository
from .token_family import TokenFamilyRepository

__all__ = ["RefreshTokenRepository", "TokenFamilyRepository"]
