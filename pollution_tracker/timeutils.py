"""Time parsing and formatting utilities."""

from __future__ import annotations

from datetime import date, datetime, tzinfo

from zoneinfo import ZoneInfo

TIMESTAMP_FORMAT = "%Y-%m-%d %H:%M:%S"


def tzinfo_from_name(tz_name: str | None) -> tzinfo | None:
    """Create tzinfo from an IANA timezone name.

    Args:
        tz_name: Timezone name like "Asia/Shanghai". None means the system local zone.

    Returns:
        tzinfo instance, or None for the system local zone.

    Raises:
        ValueError: If timezone name is invalid on this system.
    """

    if tz_name is None:
        return None
    try:
        return ZoneInfo(tz_name)
    except Exception as exc:  # ZoneInfo raises KeyError / ZoneInfoNotFoundError (platform dependent)
        raise ValueError(f"无效时区：{tz_name!r}。例如可用：Asia/Shanghai") from exc


def local_now(tz_name: str | None = None) -> datetime:
    """Current timezone-aware time, truncated to whole seconds."""

    tz = tzinfo_from_name(tz_name)
    now = datetime.now(tz) if tz is not None else datetime.now().astimezone()
    return now.replace(microsecond=0)


def format_timestamp(dt: datetime) -> str:
    """Format as "YYYY-MM-DD HH:MM:SS" (wall clock, no offset)."""

    return dt.strftime(TIMESTAMP_FORMAT)


def day_key(dt: datetime | date) -> str:
    """ISO day key "YYYY-MM-DD" for the given local date/time."""

    if isinstance(dt, datetime):
        dt = dt.date()
    return dt.isoformat()


def parse_day_key(text: str) -> date:
    """Validate and parse a "YYYY-MM-DD" day key.

    Raises:
        ValueError: If the text is not a strict ISO date.
    """

    try:
        d = date.fromisoformat(text)
    except (TypeError, ValueError) as exc:
        raise ValueError(f"无法解析日期：{text!r}。格式应为 2025-12-18") from exc
    if d.isoformat() != text:
        raise ValueError(f"无法解析日期：{text!r}。格式应为 2025-12-18")
    return d


def parse_timestamp(text: str, tz_name: str | None = None) -> datetime:
    """Parse a stored "YYYY-MM-DD HH:MM:SS" timestamp into an aware datetime.

    The stored text carries no offset; it is interpreted in tz_name
    (or the system local zone when tz_name is None).

    Raises:
        ValueError: If cannot parse.
    """

    try:
        dt = datetime.strptime(text.strip(), TIMESTAMP_FORMAT)
    except ValueError as exc:
        raise ValueError(f"无法解析时间：{text!r}。格式应为 2025-12-18 09:30:00") from exc

    tz = tzinfo_from_name(tz_name)
    if tz is None:
        return dt.astimezone()
    return dt.replace(tzinfo=tz)
