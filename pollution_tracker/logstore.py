"""Per-day pipe-delimited pollution logs on local disk."""

from __future__ import annotations

import logging
import re
from pathlib import Path

from pollution_tracker.errors import DayLogNotFound, IOFailure
from pollution_tracker.models import DATA_DIR_NAME, LogRecord, Sample, ShareRequest
from pollution_tracker.timeutils import parse_day_key

logger = logging.getLogger(__name__)

_FILE_RE = re.compile(r"^pollution_(\d{4}-\d{2}-\d{2})\.txt$")


def default_data_root() -> Path:
    """The user's document directory (~/Documents)."""

    return Path.home() / "Documents"


def day_file_name(day: str) -> str:
    return f"pollution_{day}.txt"


class LogStore:
    """Owns the AirPollutionData directory: one append-only file per day."""

    def __init__(self, root: str | Path | None = None) -> None:
        base = Path(root) if root is not None else default_data_root()
        self._dir = base / DATA_DIR_NAME

    @property
    def directory(self) -> Path:
        return self._dir

    def path_for(self, day: str) -> Path:
        """File path for a day key.

        Raises:
            ValueError: If day is not a YYYY-MM-DD key.
        """

        parse_day_key(day)
        return self._dir / day_file_name(day)

    def append(self, day: str, sample: Sample) -> None:
        """Append one line for sample to the day's file (never truncates).

        Raises:
            IOFailure: If the directory cannot be created or the write fails.
        """

        path = self.path_for(day)
        try:
            self._dir.mkdir(parents=True, exist_ok=True)
            with path.open("a", encoding="utf-8", newline="\n") as f:
                f.write(sample.to_line())
        except OSError as exc:
            raise IOFailure(f"写入失败：{path} ({exc})") from exc
        logger.debug("appended to %s", path)

    def list_days(self) -> list[str]:
        """Day keys of the log files present, in directory-listing order.

        The order is not chronological; sort it yourself if you need that.
        """

        if not self._dir.is_dir():
            return []
        days: list[str] = []
        for entry in self._dir.iterdir():
            m = _FILE_RE.match(entry.name)
            if m and entry.is_file():
                days.append(m.group(1))
        return days

    def read_day(self, day: str) -> list[LogRecord]:
        """All well-formed records for a day, in append order.

        Lines that are not valid UTF-8 or do not split into exactly six fields
        are dropped.
        """

        path = self.path_for(day)
        if not path.exists():
            return []

        records: list[LogRecord] = []
        skipped = 0
        with path.open("rb") as f:
            for raw in f:
                try:
                    line = raw.decode("utf-8")
                except UnicodeDecodeError:
                    skipped += 1
                    continue
                rec = LogRecord.from_line(line)
                if rec is None:
                    skipped += 1
                    continue
                records.append(rec)
        if skipped:
            logger.debug("%s 中有 %s 行格式不对已跳过", path.name, skipped)
        return records

    def share_request(self, day: str) -> ShareRequest:
        """Path + caption to hand to an external share facility.

        Raises:
            DayLogNotFound: If there is no file for that day.
        """

        path = self.path_for(day)
        if not path.is_file():
            raise DayLogNotFound(day)
        return ShareRequest.for_day(path, day)
