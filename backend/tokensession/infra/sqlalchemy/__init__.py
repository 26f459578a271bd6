from .sqlalchemy_session_store import SQLAlchemySessionStore

__all__ = ["SQLAlchemySessionStore"]
