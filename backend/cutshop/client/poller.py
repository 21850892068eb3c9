"""
Periodic refresh.

Polling runs regardless of broadcasts, so a viewer that missed an event
still converges on server state.
"""

import logging
import threading
from typing import Callable, Optional

from ..config import JOB_DETAIL_POLL_INTERVAL, RECUT_LIST_POLL_INTERVAL
from .errors import CutshopClientError
from .session import JobViewSession

logger = logging.getLogger(__name__)


class PeriodicRefresher:
    """
    Calls a refresh function on a fixed interval in a daemon thread.

    Client errors are logged and the next tick tries again.
    """

    def __init__(self, refresh: Callable[[], None], interval: float, name: str = "refresh"):
        if interval <= 0:
            raise ValueError(f"interval must be positive, got {interval}")
        self._refresh = refresh
        self.interval = interval
        self.name = name
        self._stop = threading.Event()
        self._thread: Optional[threading.Thread] = None
        self.ticks = 0
        self.failures = 0

    def tick(self) -> bool:
        """Run one refresh. Returns False if it failed."""
        self.ticks += 1
        try:
            self._refresh()
        except CutshopClientError as e:
            self.failures += 1
            logger.warning(f"{self.name} refresh failed: {e}")
            return False
        return True

    def start(self) -> None:
        if self._thread is not None and self._thread.is_alive():
            return
        self._stop.clear()
        self._thread = threading.Thread(target=self._run, name=self.name, daemon=True)
        self._thread.start()

    def stop(self, timeout: Optional[float] = None) -> None:
        self._stop.set()
        if self._thread is not None:
            self._thread.join(timeout)
            self._thread = None

    @property
    def running(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def _run(self) -> None:
        while not self._stop.wait(self.interval):
            self.tick()


def job_detail_refresher(session: JobViewSession, interval: float = JOB_DETAIL_POLL_INTERVAL) -> PeriodicRefresher:
    return PeriodicRefresher(session.refresh, interval, name=f"job-{session.job_id}")


def recut_list_refresher(
    session: JobViewSession,
    material_id: int,
    interval: float = RECUT_LIST_POLL_INTERVAL,
) -> PeriodicRefresher:
    return PeriodicRefresher(
        lambda: session.refresh_recuts(material_id),
        interval,
        name=f"recuts-{material_id}",
    )
