"""Refresh token repository."""

from __future__ import annotations

from datetime import datetime

from sqlalchemy import delete, select, update

from tokensession.models import RefreshTokenModel
from tokensession.repositories.base import BaseRepository, affected_rows


class RefreshTokenRepository(BaseRepository[RefreshTokenModel]):
    """Persistence-only repository for :class:`RefreshTokenModel`."""

    model = RefreshTokenModel

    def get_unconsumed(self, family_id: str) -> RefreshTokenModel | None:
        """Return the family's live record, if any.

        :param family_id: Owning family.
        :type family_id: str
        :returns: The single unconsumed record or ``None``.
        :rtype: RefreshTokenModel | None
        """
        stmt = (
            select(RefreshTokenModel)
            .where(
                RefreshTokenModel.family_id == family_id,
                RefreshTokenModel.consumed.is_(False),
            )
            .order_by(RefreshTokenModel.generation.desc())
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalars().first()

    def consume(self, token_id: str, *, replaced_by: str) -> bool:
        """Mark a live record consumed. :returns: ``False`` if it already was."""
        stmt = (
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.token_id == token_id,
                RefreshTokenModel.consumed.is_(False),
            )
            .values(consumed=True, replaced_by=replaced_by)
            .execution_options(synchronize_session=False)
        )
        return affected_rows(self.session.execute(stmt)) == 1

    def consume_family(self, family_id: str) -> int:
        """Mark every pending record of a family consumed."""
        stmt = (
            update(RefreshTokenModel)
            .where(
                RefreshTokenModel.family_id == family_id,
                RefreshTokenModel.consumed.is_(False),
            )
            .values(consumed=True)
            .execution_options(synchronize_session=False)
        )
        return affected_rows(self.session.execute(stmt))

    def delete_expired_before(self, cutoff: datetime) -> int:
        """Delete records whose expiry is at or before ``cutoff``."""
        stmt = (
            delete(RefreshTokenModel)
            .where(RefreshTokenModel.expires_at <= cutoff)
            .execution_options(synchronize_session=False)
        )
        return affected_rows(self.session.execute(stmt))
