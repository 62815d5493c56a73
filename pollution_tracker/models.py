"""Data models for position fixes, pollution samples and day logs."""

from __future__ import annotations

from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Final

from pollution_tracker.timeutils import day_key, format_timestamp, parse_timestamp

DEFAULT_INTERVAL_SECONDS: Final[int] = 5 * 60
LOCATION_TIMEOUT_SECONDS: Final[float] = 10.0
UNKNOWN_PLACE: Final[str] = "Unknown"
DATA_DIR_NAME: Final[str] = "AirPollutionData"
FIELD_SEPARATOR: Final[str] = " | "
COLUMNS: Final[tuple[str, ...]] = ("Datetime", "Lat", "Lon", "Elv", "Spd", "PM10")


@dataclass(frozen=True, slots=True)
class Position:
    """A single position fix from a location provider.

    Attributes:
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        altitude_m: Altitude in meters. 0.0 when the provider has no altitude.
        speed_mps: Speed in meters/second. 0.0 when unknown.
    """

    latitude: float
    longitude: float
    altitude_m: float = 0.0
    speed_mps: float = 0.0


@dataclass(frozen=True, slots=True)
class Sample:
    """One collected reading: where we were and how much PM10 was in the air.

    Attributes:
        timestamp: Local datetime, second precision.
        latitude: Latitude in decimal degrees.
        longitude: Longitude in decimal degrees.
        altitude_m: Altitude in meters.
        speed_mps: Speed in meters/second.
        pm10: PM10 concentration in µg/m³ (0.0 when the query degraded).
    """

    timestamp: datetime
    latitude: float
    longitude: float
    altitude_m: float
    speed_mps: float
    pm10: float

    @classmethod
    def from_position(cls, timestamp: datetime, position: Position, pm10: float) -> Sample:
        return cls(
            timestamp=timestamp.replace(microsecond=0),
            latitude=position.latitude,
            longitude=position.longitude,
            altitude_m=position.altitude_m,
            speed_mps=position.speed_mps,
            pm10=pm10,
        )

    @property
    def day_key(self) -> str:
        """ISO date (YYYY-MM-DD) of the day log this sample belongs to."""

        return day_key(self.timestamp)

    def fields(self) -> tuple[str, str, str, str, str, str]:
        """The six text fields written to the day log, in column order."""

        return (
            format_timestamp(self.timestamp),
            str(self.latitude),
            str(self.longitude),
            str(self.altitude_m),
            str(self.speed_mps),
            str(self.pm10),
        )

    def to_line(self) -> str:
        return FIELD_SEPARATOR.join(self.fields()) + "\n"


@dataclass(frozen=True, slots=True)
class LogRecord:
    """One accepted line of a day log, kept as the stored text."""

    time_local: str
    latitude: str
    longitude: str
    altitude: str
    speed: str
    pm10: str

    @classmethod
    def from_line(cls, line: str) -> LogRecord | None:
        """Split a stored line; None if it does not have exactly six fields."""

        parts = line.rstrip("\r\n").split(FIELD_SEPARATOR)
        if len(parts) != len(COLUMNS):
            return None
        return cls(*parts)

    def fields(self) -> tuple[str, str, str, str, str, str]:
        return (self.time_local, self.latitude, self.longitude, self.altitude, self.speed, self.pm10)

    def as_row(self) -> dict[str, str]:
        """Column name -> value, for table rendering."""

        return dict(zip(COLUMNS, self.fields()))

    def to_sample(self, tz_name: str | None = None) -> Sample:
        """Parse the text fields back into a Sample.

        Raises:
            ValueError: If a field is not numeric or the timestamp is invalid.
        """

        return Sample(
            timestamp=parse_timestamp(self.time_local, tz_name),
            latitude=float(self.latitude),
            longitude=float(self.longitude),
            altitude_m=float(self.altitude),
            speed_mps=float(self.speed),
            pm10=float(self.pm10),
        )


@dataclass(frozen=True, slots=True)
class LatestReading:
    """The most recent sample plus its resolved place name, for display only."""

    sample: Sample
    place_name: str


@dataclass(slots=True)
class TrackingSession:
    """Process-local tracking state. Never persisted."""

    enabled: bool = False
    interval_seconds: float = DEFAULT_INTERVAL_SECONDS


@dataclass(frozen=True, slots=True)
class ShareRequest:
    """What gets handed to an external share facility."""

    path: Path
    caption: str

    @classmethod
    def for_day(cls, path: Path, day: str) -> ShareRequest:
        return cls(path=path, caption=f"Pollution data for {day}")
