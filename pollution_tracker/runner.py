"""Run a CollectionLoop on a private event loop in a daemon thread.

For hosts that are not async themselves (the streamlit dashboard).
"""

from __future__ import annotations

import asyncio
import logging
import threading
from concurrent.futures import Future
from typing import Any, Callable, Coroutine, Hashable, TypeVar

from pollution_tracker.collector import CollectionLoop

logger = logging.getLogger(__name__)

T = TypeVar("T")


class BackgroundTracker:
    """Owns a thread running an asyncio loop, and the CollectionLoop on it."""

    def __init__(self, collector: CollectionLoop, *, timeout_seconds: float = 60.0) -> None:
        self.collector = collector
        self._timeout = timeout_seconds
        self._closed = False
        self._aio = asyncio.new_event_loop()
        self._thread = threading.Thread(target=self._aio.run_forever, name="pollution-tracker", daemon=True)
        self._thread.start()

    @property
    def running(self) -> bool:
        return self.collector.running

    def _call(self, coro: Coroutine[Any, Any, T]) -> T:
        fut: Future[T] = asyncio.run_coroutine_threadsafe(coro, self._aio)
        return fut.result(timeout=self._timeout)

    def start(self) -> None:
        """Start tracking; blocks until the first tick is done.

        Raises:
            LocationServiceUnavailable: Propagated from CollectionLoop.start().
        """

        self._call(self.collector.start())

    def stop(self) -> None:
        self._call(self.collector.stop())

    def toggle(self) -> bool:
        """Start if stopped, stop if running. Returns the new running state."""

        if self.running:
            self.stop()
        else:
            self.start()
        return self.running

    def close(self) -> None:
        """Stop tracking, wait for any in-flight tick, and end the thread."""

        if self._closed:
            return
        self._closed = True
        self._call(self.collector.stop())
        self._call(self.collector.drain())
        self._aio.call_soon_threadsafe(self._aio.stop)
        self._thread.join(timeout=self._timeout)
        if self._thread.is_alive():
            logger.warning("后台事件循环在 %ss 内未退出，未关闭", self._timeout)
            return
        self._aio.close()


class TrackerSlot:
    """Holds at most one BackgroundTracker, rebuilt when its config changes.

    The previous tracker is closed before the new one is built, so a config
    change never leaves a second loop ticking.
    """

    def __init__(self) -> None:
        self._key: Hashable | None = None
        self._tracker: BackgroundTracker | None = None

    @property
    def tracker(self) -> BackgroundTracker | None:
        return self._tracker

    def get(self, key: Hashable, factory: Callable[[], BackgroundTracker]) -> BackgroundTracker:
        if self._tracker is not None and key == self._key:
            return self._tracker
        if self._tracker is not None:
            self._tracker.close()
            self._tracker = None
        self._tracker = factory()
        self._key = key
        return self._tracker
