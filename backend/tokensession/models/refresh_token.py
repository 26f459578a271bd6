"""Refresh token model: one link in a token family chain."""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from sqlalchemy import (
    Boolean,
    DateTime,
    ForeignKey,
    Index,
    Integer,
    String,
    UniqueConstraint,
)
from sqlalchemy.orm import Mapped, mapped_column, relationship

from tokensession.core.extensions import db

from .base import ReprMixin

if TYPE_CHECKING:
    from .token_family import TokenFamilyModel


class RefreshTokenModel(ReprMixin, db.Model):
    """
    Persisted refresh token record.

    Fields
    ------
    token_id : str
        Opaque, unguessable token value (primary key).
    family_id : str
        Owning family.
    generation : int
        Position in the chain; unique per family so that two rotations can
        never both create the same successor.
    consumed : bool
        Set once, by the rotation that replaced the token or by revocation.
    replaced_by : str | None
        Successor token id.
    """

    __tablename__ = "refresh_tokens"
    __repr_key__ = "token_id"

    token_id: Mapped[str] = mapped_column(String(128), primary_key=True)
    family_id: Mapped[str] = mapped_column(
        String(64),
        ForeignKey("token_families.family_id", ondelete="CASCADE"),
        nullable=False,
    )
    generation: Mapped[int] = mapped_column(Integer, nullable=False)
    issued_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    expires_at: Mapped[datetime] = mapped_column(DateTime(timezone=True), nullable=False)
    consumed: Mapped[bool] = mapped_column(Boolean, nullable=False, default=False)
    replaced_by: Mapped[str | None] = mapped_column(String(128), nullable=True)

    family: Mapped[TokenFamilyModel] = relationship(back_populates="refresh_tokens")

    __table_args__ = (
        UniqueConstraint("family_id", "generation", name="uq_refresh_tokens_family_generation"),
        Index("ix_refresh_tokens_family_id", "family_id"),
        Index("ix_refresh_tokens_expires_at", "expires_at"),
    )
