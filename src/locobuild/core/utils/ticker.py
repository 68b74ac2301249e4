# src/locobuild/core/utils/ticker.py
import logging
import threading
from typing import Callable, Optional

logger = logging.getLogger(__name__)


class Ticker:
    """
    Calls a function at a fixed interval on a background thread until cancelled.

    The next tick is only scheduled after the current one returns, so ticks of
    one Ticker never overlap. ``tick()`` runs the function once on the calling
    thread, which lets tests step time without sleeping.
    """

    def __init__(self, interval: float, fn: Callable[[], None], name: str = "ticker"):
        if interval <= 0:
            raise ValueError("Ticker interval must be positive")
        self.interval = interval
        self._fn = fn
        self._name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None

    def tick(self) -> None:
        """Runs one tick. Errors are logged and don't stop the ticker."""
        try:
            self._fn()
        except Exception as e:
            logger.error("%s: tick failed: %s", self._name, e, exc_info=True)

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.tick()

    def start(self) -> None:
        if self._thread is not None:
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self._name, daemon=True)
        self._thread.start()
        logger.debug("%s started (every %.2fs)", self._name, self.interval)

    def cancel(self) -> None:
        self._stop.set()
        if self._thread is not None and self._thread is not threading.current_thread():
            self._thread.join()
        self._thread = None
        logger.debug("%s cancelled", self._name)

    @property
    def running(self) -> bool:
        return self._thread is not None and not self._stop.is_set()
