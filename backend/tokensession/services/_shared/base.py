from __future__ import annotations

import logging
from datetime import datetime

from tokensession.services._shared.ports import Clock, SystemClock


class BaseService:
    """
    Base class for session services.

    Responsibilities
    ----------------
    * Hold the injected :class:`~tokensession.services._shared.ports.Clock`
      so every service reads time from the same source.
    * Provide a per-class logger for structured events.

    Notes
    -----
    - Services never touch Flask, HTTP or a database session directly; they
      only talk to ports.
    """

    def __init__(self, *, clock: Clock | None = None) -> None:
        """
        Initialize the base service.

        :param clock: Optional time source; defaults to the system clock.
        :type clock: Clock | None
        """
        self.clock = clock or SystemClock()
        self.log = logging.getLogger(type(self).__module__)

    def now_utc(self) -> datetime:
        """Return the current aware UTC time from the injected clock."""
        return self.clock.now()
