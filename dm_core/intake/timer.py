# backend/dm_core/intake/timer.py
from __future__ import annotations

import logging
import threading

from dm_core.intake.constants import AUTO_SAVE_INTERVAL_SECONDS

logger = logging.getLogger(__name__)


class AutoSaveTimer:
    """
    Calls `session.autosave(force=True)` every `interval` seconds until stopped.

    Fire-and-forget: a tick does not wait for the previous save, so two
    overlapping saves of the same draft are possible.
    """

    def __init__(self, session, *, interval: float = AUTO_SAVE_INTERVAL_SECONDS):
        self.session = session
        self.interval = interval
        self._timer: threading.Timer | None = None
        self._stopped = threading.Event()

    @property
    def running(self) -> bool:
        return self._timer is not None and not self._stopped.is_set()

    def start(self) -> None:
        self._stopped.clear()
        self._schedule()

    def stop(self) -> None:
        self._stopped.set()
        if self._timer is not None:
            self._timer.cancel()
            self._timer = None

    def _schedule(self) -> None:
        if self._stopped.is_set():
            return
        self._timer = threading.Timer(self.interval, self._tick)
        self._timer.daemon = True
        self._timer.start()

    def _tick(self) -> None:
        # reschedule first so a slow save does not delay the next tick
        self._schedule()
        self.session.autosave(force=True)
