"""Location sources for the collection loop.

A provider is anything with check_permission(), is_service_enabled() and
current_position(). All three are blocking; the collection loop runs them in a
worker thread and applies its own time limit.
"""

from __future__ import annotations

import enum
import logging
import threading
from dataclasses import dataclass
from pathlib import Path
from typing import Protocol, Sequence

import geocoder

from pollution_tracker.csv_io import load_positions
from pollution_tracker.errors import LocationFetchFailed, PermissionDenied, PermissionDeniedForever
from pollution_tracker.models import Position

logger = logging.getLogger(__name__)


class PermissionStatus(enum.Enum):
    GRANTED = "granted"
    DENIED = "denied"
    DENIED_FOREVER = "denied_forever"


class LocationProvider(Protocol):
    def check_permission(self) -> PermissionStatus: ...

    def is_service_enabled(self) -> bool: ...

    def current_position(self) -> Position: ...


def ensure_permission(provider: LocationProvider) -> None:
    """Raise if the provider may not be used.

    Raises:
        PermissionDeniedForever: Permission refused permanently.
        PermissionDenied: Permission refused.
    """

    status = provider.check_permission()
    if status is PermissionStatus.DENIED_FOREVER:
        raise PermissionDeniedForever(
            "Location permission permanently denied. Please enable it in settings."
        )
    if status is PermissionStatus.DENIED:
        raise PermissionDenied("Location permission denied")


@dataclass(slots=True)
class StaticLocationProvider:
    """Always reports the same position (fixed monitoring station, tests)."""

    position: Position
    service_enabled: bool = True
    permission: PermissionStatus = PermissionStatus.GRANTED

    def check_permission(self) -> PermissionStatus:
        return self.permission

    def is_service_enabled(self) -> bool:
        return self.service_enabled

    def current_position(self) -> Position:
        return self.position


class IpLocationProvider:
    """Coarse position from the public IP address (via the geocoder package).

    Altitude and speed are not available and are reported as 0.0.
    """

    def __init__(self, timeout_seconds: float = 10.0) -> None:
        self._timeout = timeout_seconds

    def check_permission(self) -> PermissionStatus:
        return PermissionStatus.GRANTED

    def is_service_enabled(self) -> bool:
        return True

    def current_position(self) -> Position:
        try:
            g = geocoder.ip("me", timeout=self._timeout)
        except Exception as exc:  # geocoder wraps requests; any transport error ends up here
            raise LocationFetchFailed(f"IP定位失败：{exc}") from exc
        if not g.ok or not g.latlng:
            raise LocationFetchFailed(f"IP定位失败：{g.status}")
        lat, lon = g.latlng[0], g.latlng[1]
        return Position(latitude=float(lat), longitude=float(lon))


class TrackReplayProvider:
    """Replays a recorded track one position per call.

    When the track is exhausted it raises LocationFetchFailed, unless loop=True,
    in which case it starts over.
    """

    def __init__(self, positions: Sequence[Position], *, loop: bool = False) -> None:
        self._positions = list(positions)
        self._loop = loop
        self._index = 0
        self._lock = threading.Lock()

    @classmethod
    def from_csv(cls, csv_path: str | Path, *, loop: bool = False) -> TrackReplayProvider:
        positions, summary = load_positions(csv_path)
        logger.info("回放轨迹：%s 个点（跳过 %s 行）", summary.rows_parsed, summary.rows_skipped)
        return cls(positions, loop=loop)

    @property
    def remaining(self) -> int:
        return len(self._positions) - self._index

    def check_permission(self) -> PermissionStatus:
        return PermissionStatus.GRANTED

    def is_service_enabled(self) -> bool:
        return True

    def current_position(self) -> Position:
        with self._lock:
            if self._index >= len(self._positions):
                if not self._loop or not self._positions:
                    raise LocationFetchFailed("轨迹已回放完毕")
                self._index = 0
            pos = self._positions[self._index]
            self._index += 1
            return pos
