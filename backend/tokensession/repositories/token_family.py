"""Token family repository."""

from __future__ import annotations

from collections.abc import Sequence
from datetime import datetime

from sqlalchemy import delete, exists, select, update

from tokensession.models import RefreshTokenModel, TokenFamilyModel
from tokensession.repositories.base import BaseRepository, affected_rows
from tokensession.services._shared.ports import FamilyStatus


class TokenFamilyRepository(BaseRepository[TokenFamilyModel]):
    """Persistence-only repository for :class:`TokenFamilyModel`."""

    model = TokenFamilyModel

    def list_for_principal(self, principal_id: str) -> Sequence[TokenFamilyModel]:
        """Return every family held for a principal, oldest first.

        :param principal_id: Owner principal.
        :type principal_id: str
        :returns: Families ordered by creation time.
        :rtype: Sequence[TokenFamilyModel]
        """
        stmt = (
            select(TokenFamilyModel)
            .where(TokenFamilyModel.principal_id == principal_id)
            .order_by(TokenFamilyModel.created_at, TokenFamilyModel.family_id)
            .execution_options(populate_existing=True)
        )
        return self.session.execute(stmt).scalars().all()

    def active_ids_for_principal(self, principal_id: str) -> list[str]:
        stmt = select(TokenFamilyModel.family_id).where(
            TokenFamilyModel.principal_id == principal_id,
            TokenFamilyModel.status == FamilyStatus.ACTIVE.value,
        )
        return list(self.session.execute(stmt).scalars())

    def advance_generation(self, family_id: str, *, seen_version: int, generation: int) -> bool:
        """Compare-and-set the family generation.

        :param family_id: Family to update.
        :type family_id: str
        :param seen_version: Version observed when the family was read.
        :type seen_version: int
        :param generation: New generation number.
        :type generation: int
        :returns: ``True`` if this writer won the race.
        :rtype: bool
        """
        stmt = (
            update(TokenFamilyModel)
            .where(
                TokenFamilyModel.family_id == family_id,
                TokenFamilyModel.version == seen_version,
                TokenFamilyModel.status == FamilyStatus.ACTIVE.value,
            )
            .values(generation=generation, version=TokenFamilyModel.version + 1)
            .execution_options(synchronize_session=False)
        )
        return affected_rows(self.session.execute(stmt)) == 1

    def mark_revoked(self, family_id: str, *, revoked_at: datetime) -> bool:
        """Flip an active family to revoked. :returns: ``True`` if it changed."""
        stmt = (
            update(TokenFamilyModel)
            .where(
                TokenFamilyModel.family_id == family_id,
                TokenFamilyModel.status == FamilyStatus.ACTIVE.value,
            )
            .values(
                status=FamilyStatus.REVOKED.value,
                revoked_at=revoked_at,
                version=TokenFamilyModel.version + 1,
            )
            .execution_options(synchronize_session=False)
        )
        return affected_rows(self.session.execute(stmt)) == 1

    def delete_empty(self) -> int:
        """Delete families that no longer hold any refresh token record."""
        has_tokens = exists().where(RefreshTokenModel.family_id == TokenFamilyModel.family_id)
        stmt = (
            delete(TokenFamilyModel)
            .where(~has_tokens)
            .execution_options(synchronize_session=False)
        )
        return affected_rows(self.session.execute(stmt))
