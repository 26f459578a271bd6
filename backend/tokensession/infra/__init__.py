"""Concrete adapters for the session ports (stores and token codec)."""
