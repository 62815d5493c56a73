from __future__ import annotations

from datetime import datetime

import pytest

from pollution_tracker.errors import DayLogNotFound, IOFailure
from pollution_tracker.logstore import LogStore
from pollution_tracker.models import Sample


def _sample(minute: int = 0, pm10: float = 12.5) -> Sample:
    return Sample(
        timestamp=datetime(2025, 3, 1, 9, minute, 30),
        latitude=30.7456421,
        longitude=103.9284974,
        altitude_m=512.3,
        speed_mps=1.25,
        pm10=pm10,
    )


def test_append_creates_directory_and_file(tmp_path):
    store = LogStore(tmp_path / "docs")
    store.append("2025-03-01", _sample())

    path = tmp_path / "docs" / "AirPollutionData" / "pollution_2025-03-01.txt"
    assert path.read_text(encoding="utf-8") == (
        "2025-03-01 09:00:30 | 30.7456421 | 103.9284974 | 512.3 | 1.25 | 12.5\n"
    )


def test_append_then_read_roundtrip(store):
    sample = _sample()
    store.append(sample.day_key, sample)

    records = store.read_day("2025-03-01")
    assert len(records) == 1
    assert records[0].fields() == sample.fields()

    parsed = records[0].to_sample()
    assert parsed.timestamp.replace(tzinfo=None) == sample.timestamp
    assert (parsed.latitude, parsed.longitude, parsed.altitude_m, parsed.speed_mps, parsed.pm10) == (
        30.7456421,
        103.9284974,
        512.3,
        1.25,
        12.5,
    )


def test_appends_keep_order_and_never_truncate(store):
    samples = [_sample(minute=m, pm10=float(m)) for m in (0, 5, 10, 15)]
    for s in samples:
        store.append(s.day_key, s)

    records = store.read_day("2025-03-01")
    assert [r.fields() for r in records] == [s.fields() for s in samples]

    # a fresh store on the same directory appends to the same file
    LogStore(store.directory.parent).append("2025-03-01", _sample(minute=20))
    assert len(store.read_day("2025-03-01")) == 5


def test_malformed_lines_are_dropped(store):
    store.append("2025-03-01", _sample(minute=0))
    path = store.path_for("2025-03-01")
    with path.open("a", encoding="utf-8") as f:
        f.write("\n")
        f.write("garbage line\n")
        f.write("2025-03-01 09:03:00 | 1 | 2 | 3 | 4\n")
        f.write("2025-03-01 09:04:00 | 1 | 2 | 3 | 4 | 5 | 6\n")
        f.write("2025-03-01 09:04:00|1|2|3|4|5\n")
    store.append("2025-03-01", _sample(minute=5))

    records = store.read_day("2025-03-01")
    assert [r.time_local for r in records] == ["2025-03-01 09:00:30", "2025-03-01 09:05:30"]


def test_undecodable_line_is_dropped(store):
    store.append("2025-03-01", _sample(minute=0))
    path = store.path_for("2025-03-01")
    with path.open("ab") as f:
        f.write(b"\xff\xfe junk\n")
        f.write(b"2025-03-01 09:02:00 | \xff | 2 | 3 | 4 | 5\n")
    store.append("2025-03-01", _sample(minute=5))

    records = store.read_day("2025-03-01")
    assert [r.time_local for r in records] == ["2025-03-01 09:00:30", "2025-03-01 09:05:30"]


def test_read_missing_day_is_empty(store):
    assert store.read_day("2025-03-02") == []


def test_list_days(store, tmp_path):
    assert store.list_days() == []

    store.append("2025-03-01", _sample())
    store.append("2025-02-28", _sample())
    (store.directory / "notes.txt").write_text("x", encoding="utf-8")
    (store.directory / "pollution_2025-03-03.txt.bak").write_text("x", encoding="utf-8")

    assert sorted(store.list_days()) == ["2025-02-28", "2025-03-01"]


@pytest.mark.parametrize("bad", ["2025-3-1", "../etc/passwd", "20250301", "2025-02-30", ""])
def test_invalid_day_key(store, bad):
    with pytest.raises(ValueError):
        store.path_for(bad)


def test_append_failure_is_io_failure(tmp_path):
    blocker = tmp_path / "blocked"
    blocker.write_text("not a directory", encoding="utf-8")
    store = LogStore(blocker)

    with pytest.raises(IOFailure):
        store.append("2025-03-01", _sample())


def test_share_request(store):
    store.append("2025-03-01", _sample())

    req = store.share_request("2025-03-01")
    assert req.path == store.path_for("2025-03-01")
    assert req.path.is_file()
    assert req.caption == "Pollution data for 2025-03-01"


def test_share_request_missing_day(store):
    with pytest.raises(DayLogNotFound) as info:
        store.share_request("2025-03-01")
    assert info.value.day == "2025-03-01"
