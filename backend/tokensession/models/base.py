"""Reusable SQLAlchemy mixins shared by session models (typed 2.0)."""

from __future__ import annotations

from sqlalchemy import Integer
from sqlalchemy.orm import Mapped, mapped_column


class VersionMixin:
    """Provide an integer ``version`` column for optimistic concurrency.

    Attributes
    ----------
    version:
        Incremented by every conditional write; writers compare the value they
        read (``UPDATE ... WHERE version = :seen``) and lose the race on zero
        affected rows.
    """

    version: Mapped[int] = mapped_column(Integer, nullable=False, default=0)


class ReprMixin:
    """Provide a concise ``__repr__`` including the class name and key."""

    __repr_key__ = "id"

    def __repr__(self) -> str:
        """Return a short and useful string representation.

        :returns: Debug-friendly ``<ClassName key=...>``.
        :rtype: str
        """
        cls = self.__class__.__name__
        key = getattr(self, self.__repr_key__, None)
        return f"<{cls} {self.__repr_key__}={key}>"
