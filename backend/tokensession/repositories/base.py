"""Generic repository base for SQLAlchemy 2.x.

This module centralizes persistence-only concerns shared by all repositories:
- Session resolution (injected Unit of Work session, else the Flask-scoped one).
- Primary-key lookup, staging and deletion.
- No business logic and no commit/rollback; the store owns transactions.

Design decisions
----------------
* Repositories MUST remain thin and persistence-focused:
  - They never implement rotation or revocation policy.
  - They never call commit/rollback; the Unit of Work does.
* Conditional writes return the affected row count so callers can detect a
  lost optimistic-concurrency race.
"""

from __future__ import annotations

from typing import Any, Generic, TypeVar, cast

from sqlalchemy.engine import CursorResult
from sqlalchemy.orm import Session

from tokensession.core.extensions import db

E = TypeVar("E")  # SQLAlchemy mapped entity type


def affected_rows(result: Any) -> int:
    """Return ``rowcount`` of a DML result (``0`` when unavailable).

    :param result: Result returned by ``Session.execute`` for UPDATE/DELETE.
    :type result: Any
    :returns: Number of matched rows.
    :rtype: int
    """
    return int(getattr(cast(CursorResult[Any], result), "rowcount", 0) or 0)


class BaseRepository(Generic[E]):
    """Generic, persistence-only repository for a single aggregate.

    Subclasses MUST define:

    * ``model``: the SQLAlchemy mapped class.

    This class NEVER:

    * opens/commits/rolls back transactions,
    * implements business rules or cross-aggregate coordination.
    """

    #: SQLAlchemy mapped model (must be set by subclasses)
    model: type[E]

    def __init__(self, session: Session | None = None) -> None:
        """Initialise the repository with an optional SQLAlchemy session.

        When no explicit session is provided the repository falls back to the
        Flask-scoped session exposed by ``tokensession.core.extensions``.

        :param session: Session shared across the Unit of Work scope.
        :type session: :class:`sqlalchemy.orm.Session` | None
        """
        self._session: Session | None = session

    @property
    def session(self) -> Session:
        """Return the active SQLAlchemy session.

        :returns: Active session bound to the current Unit of Work.
        :rtype: :class:`sqlalchemy.orm.Session`
        """
        if self._session is not None:
            return self._session
        return cast(Session, db.session)

    def add(self, instance: E) -> E:
        """Stage a new entity for persistence and flush it.

        :param instance: New entity instance.
        :type instance: E
        :returns: The same instance after ``flush()``.
        :rtype: E
        """
        self.session.add(instance)
        self.flush()
        return instance

    def get(self, entity_id: Any) -> E | None:
        """Retrieve a single entity by primary key, bypassing stale identity-map state.

        :param entity_id: Primary-key value.
        :type entity_id: Any
        :returns: Entity or ``None``.
        :rtype: E | None
        """
        return self.session.get(self.model, entity_id, populate_existing=True)

    def delete(self, instance: E) -> None:
        """Mark an entity for deletion.

        :param instance: Entity to delete.
        :type instance: E
        """
        self.session.delete(instance)

    def flush(self) -> None:
        """Flush pending changes to the database."""
        self.session.flush()
