"""SQLAlchemy models backing the relational session store."""

from __future__ import annotations

from .refresh_token import RefreshTokenModel
from .token_family import TokenFamilyModel

__all__ = ["RefreshTokenModel", "TokenFamilyModel"]
