"""Periodic collection: position -> PM10 + place name -> day log.

One CollectionLoop owns one TrackingSession. Each tick is independent: a failure
aborts (or degrades) that tick only, and the next scheduled tick tries again.
"""

from __future__ import annotations

import asyncio
import logging
from datetime import datetime
from typing import Callable, Generic, TypeVar

from pollution_tracker.errors import (
    IOFailure,
    LocationFetchFailed,
    LocationServiceUnavailable,
    TrackerError,
)
from pollution_tracker.location import LocationProvider
from pollution_tracker.logstore import LogStore
from pollution_tracker.models import (
    DEFAULT_INTERVAL_SECONDS,
    LOCATION_TIMEOUT_SECONDS,
    LatestReading,
    Sample,
    TrackingSession,
)
from pollution_tracker.openweather import GeocodingClient, PollutionClient
from pollution_tracker.timeutils import local_now

logger = logging.getLogger(__name__)

T = TypeVar("T")


class Observable(Generic[T]):
    """A value slot that calls its subscribers whenever it is set."""

    def __init__(self, initial: T) -> None:
        self._value = initial
        self._subscribers: list[Callable[[T], None]] = []

    @property
    def value(self) -> T:
        return self._value

    def set(self, value: T) -> None:
        self._value = value
        for cb in list(self._subscribers):
            try:
                cb(value)
            except Exception:
                logger.exception("subscriber failed")

    def subscribe(self, callback: Callable[[T], None]) -> Callable[[], None]:
        """Register callback; returns a function that unregisters it."""

        self._subscribers.append(callback)

        def _unsubscribe() -> None:
            if callback in self._subscribers:
                self._subscribers.remove(callback)

        return _unsubscribe


class CollectionLoop:
    """Toggleable repeating collector.

    Usage:
        loop = CollectionLoop(provider, PollutionClient(cfg), GeocodingClient(cfg), LogStore())
        await loop.start()   # one immediate tick, then one every interval_seconds
        ...
        await loop.stop()
    """

    def __init__(
        self,
        provider: LocationProvider,
        pollution: PollutionClient,
        geocoding: GeocodingClient,
        store: LogStore,
        *,
        interval_seconds: float = DEFAULT_INTERVAL_SECONDS,
        location_timeout_seconds: float = LOCATION_TIMEOUT_SECONDS,
        tz_name: str | None = None,
        clock: Callable[[], datetime] | None = None,
    ) -> None:
        if interval_seconds <= 0:
            raise ValueError("interval_seconds must be positive")
        self._provider = provider
        self._pollution = pollution
        self._geocoding = geocoding
        self._store = store
        self._location_timeout = location_timeout_seconds
        self._clock = clock or (lambda: local_now(tz_name))

        self.session = TrackingSession(enabled=False, interval_seconds=interval_seconds)
        self.latest: Observable[LatestReading | None] = Observable(None)
        self.notices: Observable[TrackerError | None] = Observable(None)

        self._schedule: asyncio.Task[None] | None = None
        self._in_flight: asyncio.Task[Sample | None] | None = None

    @property
    def running(self) -> bool:
        return self.session.enabled

    @property
    def provider(self) -> LocationProvider:
        return self._provider

    async def start(self) -> None:
        """Enable tracking and run the first tick right away.

        Raises:
            LocationServiceUnavailable: The location service is off; the
                session is left disabled.
        """

        if self.session.enabled:
            return
        self.session.enabled = True

        try:
            enabled = await asyncio.to_thread(self._provider.is_service_enabled)
        except Exception:
            logger.exception("location service check failed")
            enabled = False
        if not self.session.enabled:
            # stop() was called during the service check
            return
        if not enabled:
            self.session.enabled = False
            raise LocationServiceUnavailable("Please enable GPS/Location services")

        self._schedule = asyncio.create_task(self._run_schedule())
        logger.info("tracking started (every %ss)", self.session.interval_seconds)
        self._in_flight = asyncio.create_task(self.tick())
        await self._in_flight

    async def stop(self) -> None:
        """Cancel future ticks. A tick already running is left to finish."""

        self.session.enabled = False
        schedule, self._schedule = self._schedule, None
        if schedule is None:
            return
        schedule.cancel()
        try:
            await schedule
        except asyncio.CancelledError:
            pass
        logger.info("tracking stopped")

    async def drain(self) -> None:
        """Wait for the in-flight tick, if any."""

        task = self._in_flight
        if task is not None and not task.done():
            await asyncio.wait({task})

    async def _run_schedule(self) -> None:
        while self.session.enabled:
            await asyncio.sleep(self.session.interval_seconds)
            if not self.session.enabled:
                break
            if self._in_flight is not None and not self._in_flight.done():
                logger.warning("上一次采集尚未结束，跳过本次定时采集")
                continue
            # Separate task: cancelling the schedule must not cancel a running tick.
            self._in_flight = asyncio.create_task(self.tick())

    async def tick(self) -> Sample | None:
        """Collect, log and publish one sample.

        Returns:
            The new Sample, or None if no position could be obtained.
        """

        try:
            enabled = await asyncio.to_thread(self._provider.is_service_enabled)
        except Exception:
            logger.exception("location service check failed")
            enabled = False
        if not enabled:
            self._notify(LocationServiceUnavailable("GPS is disabled. Please enable it."))
            return None

        try:
            position = await asyncio.wait_for(
                asyncio.to_thread(self._provider.current_position),
                timeout=self._location_timeout,
            )
        except asyncio.TimeoutError:
            self._notify(LocationFetchFailed(f"no position within {self._location_timeout:g}s"))
            return None
        except LocationFetchFailed as exc:
            self._notify(exc)
            return None
        except Exception as exc:
            self._notify(LocationFetchFailed(f"Error collecting data: {exc}"))
            return None

        lat, lon = position.latitude, position.longitude
        pm10 = await asyncio.to_thread(self._pollution.fetch, lat, lon)
        place = await asyncio.to_thread(self._geocoding.resolve, lat, lon)

        sample = Sample.from_position(self._clock(), position, pm10)
        try:
            await asyncio.to_thread(self._store.append, sample.day_key, sample)
        except IOFailure as exc:
            # The reading is still published below; only the durable copy is missing.
            self._notify(exc)

        self.latest.set(LatestReading(sample=sample, place_name=place))
        logger.info("sample lat=%s lon=%s pm10=%s place=%s", lat, lon, pm10, place)
        return sample

    def _notify(self, exc: TrackerError) -> None:
        logger.warning("%s: %s", type(exc).__name__, exc)
        self.notices.set(exc)
