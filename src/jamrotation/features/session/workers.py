from __future__ import annotations

import logging
import threading
from collections.abc import Callable

__all__ = ["PeriodicWorker"]

logger = logging.getLogger(__name__)


class PeriodicWorker:
    """Run ``action`` every ``interval`` seconds on a daemon thread.

    Used for the countdown tick and the autosave snapshot.  Errors raised by
    the action are logged and the worker keeps running.
    """

    def __init__(self, name: str, interval: float, action: Callable[[], object]) -> None:
        if interval <= 0:
            raise ValueError("interval must be positive")
        self.name = name
        self.interval = interval
        self._action = action
        self._stop = threading.Event()
        self._thread: threading.Thread | None = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=f"jam-{self.name}", daemon=True)
        self._thread.start()

    def stop(self, timeout: float | None = None) -> None:
        self._stop.set()
        thread = self._thread
        if thread is not None and thread is not threading.current_thread():
            thread.join(timeout)
        self._thread = None

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            try:
                self._action()
            except Exception:
                logger.exception("periodic worker action failed", extra={"worker": self.name})
