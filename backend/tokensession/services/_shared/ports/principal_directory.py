from __future__ import annotations

from collections.abc import Iterable
from typing import Protocol


class PrincipalDirectory(Protocol):
    """
    Port onto the user directory that owns principals.

    The session core never reads principal details; it only asks whether an
    identifier refers to an existing principal before opening a session.
    """

    def principal_exists(self, principal_id: str) -> bool: ...


class InMemoryPrincipalDirectory(PrincipalDirectory):
    """Set-backed directory used in unit tests and local development."""

    def __init__(self, principal_ids: Iterable[str] = ()) -> None:
        self._ids: set[str] = {str(p) for p in principal_ids}

    def add(self, principal_id: str) -> None:
        self._ids.add(str(principal_id))

    def remove(self, principal_id: str) -> None:
        self._ids.discard(str(principal_id))

    def principal_exists(self, principal_id: str) -> bool:
        return str(principal_id) in self._ids


class PermissivePrincipalDirectory(PrincipalDirectory):
    """
    Accept any non-empty principal id.

    .. note::
       Only meant for hosts that validate principals before calling ``login``.
       The application factory logs a warning when it falls back to it.
    """

    def principal_exists(self, principal_id: str) -> bool:
        return bool(str(principal_id).strip())
