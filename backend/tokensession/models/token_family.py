"""Token family model: one continuous login session lineage."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import CheckConstraint, DateTime, Index, Integer, String
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tokensession.core.extensions import db
from tokensession.services._shared.ports import FamilyStatus

from .base import ReprMixin, VersionMixin

if TYPE_CHECKING:
    from .refresh_token import RefreshTokenModel


class TokenFamilyModel(VersionMixin, ReprMixin, db.Model):
    """
    Persisted lineage of refresh tokens for one device or browser.

    Fields
    ------
    family_id : str
        Opaque identifier handed to the client next to the refresh token.
    principal_id : str
        External principal reference (not a foreign key; the user directory
        lives elsewhere).
    status : str
        ``"active"`` or ``"revoked"``. Revocation is a tombstone; rows are only
        deleted by the retention purge.
    generation : int
        Generation of the newest record in the chain.
    version : int
        Optimistic concurrency counter (from mixin).
    """

    __tablename__ = "token_families"
    __repr_key__ = "family_id"

    family_id: Mapped[str] = mapped_column(String(64), primary_key=True)
    principal_id: Mapped[str] = mapped_column(String(128), nullable=False)
    status: Mapped[str] = mapped_column(
        String(16), nullable=False, default=FamilyStatus.ACTIVE.value
    )
    generation: Mapped[int] = mapped_column(Integer, nullable=False, default=0)
    created_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    revoked_at: Mapped[datetime | None] = mapped_column(DateTime(timezone=True), nullable=True)

    refresh_tokens: Mapped[list[RefreshTokenModel]] = relationship(
        back_populates="family",
        cascade="all, delete-orphan",
        passive_deletes=True,
        order_by="RefreshTokenModel.generation",
    )

    __table_args__ = (
        CheckConstraint("status IN ('active', 'revoked')", name="status_valid"),
        CheckConstraint("generation >= 0", name="generation_non_negative"),
        Index("ix_token_families_principal_id", "principal_id"),
    )
