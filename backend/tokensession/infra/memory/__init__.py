from .memory_session_store import InMemorySessionStore, StripedLock

__all__ = ["InMemorySessionStore", "StripedLock"]
