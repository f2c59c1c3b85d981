# re-runs the fetch pipeline on a fixed interval and on demand, on a daemon thread

from __future__ import annotations
import logging
import threading
from typing import Any, Callable, Optional

logger = logging.getLogger(__name__)

class Poller:
    def __init__(
        self,
        refresh: Callable[[], Any],
        interval: float = 300.0,
        on_refresh: Optional[Callable[[Any], None]] = None,
    ):
        if interval <= 0:
            raise ValueError(f"interval must be positive (got {interval})")
        self._refresh = refresh
        self.interval = interval
        self._on_refresh = on_refresh
        self._stop = threading.Event()
        self._wake = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.last_error: Optional[str] = None
        self.refresh_count = 0

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def start(self) -> None:
        if self.running:
            return
        self._stop.clear()
        self._wake.clear()
        self._thread = threading.Thread(target=self._run, name="weatherdash-poller", daemon=True)
        self._thread.start()

    def _run(self) -> None:
        while not self._stop.is_set():
            self.run_once()
            # wakes early on trigger() or stop()
            self._wake.wait(self.interval)
            self._wake.clear()

    def run_once(self) -> Any:
        try:
            result = self._refresh()
        except Exception as exc:
            # the loop outlives a failed refresh; the next tick tries again
            logger.exception("Weather refresh failed")
            self.last_error = str(exc)
            return None
        self.last_error = None
        self.refresh_count += 1
        if self._on_refresh is not None:
            self._on_refresh(result)
        return result

    def wait(self, timeout: Optional[float] = None) -> bool:
        # True once stop() has been called
        return self._stop.wait(timeout)

    def trigger(self) -> None:
        self._wake.set()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        self._wake.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None
