"""Error conditions surfaced by the collection pipeline.

Pollution and geocoding failures are not listed here: those clients degrade to
a fallback value instead of raising.
"""

from __future__ import annotations


class TrackerError(Exception):
    """Base class for all tracker conditions."""


class PermissionDenied(TrackerError):
    """Location permission was refused (the user may still grant it later)."""


class PermissionDeniedForever(PermissionDenied):
    """Location permission was refused permanently; only system settings can fix it."""


class LocationServiceUnavailable(TrackerError):
    """The location service is switched off."""


class LocationFetchFailed(TrackerError):
    """No position could be obtained (timeout or provider error)."""


class IOFailure(TrackerError):
    """Creating the data directory or appending to a day log failed."""


class DayLogNotFound(TrackerError):
    """No log file exists for the requested day."""

    def __init__(self, day: str) -> None:
        super().__init__(f"No data file found for {day}")
        self.day = day
