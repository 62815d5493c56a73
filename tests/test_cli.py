from __future__ import annotations

import json
from datetime import datetime

from pollution_tracker.cli import main
from pollution_tracker.logstore import LogStore
from pollution_tracker.models import Sample


def _seed(root) -> LogStore:
    store = LogStore(root)
    for day, minute in (("2025-03-01", 0), ("2025-03-01", 5), ("2025-02-28", 0)):
        ts = datetime.fromisoformat(f"{day} 08:{minute:02d}:00")
        store.append(day, Sample(ts, 31.23, 121.47, 10.0, 0.0, 42.0 + minute))
    return store


def test_days(tmp_path, capsys):
    _seed(tmp_path)

    assert main(["days", "--data-dir", str(tmp_path), "--sort"]) == 0
    assert capsys.readouterr().out.split() == ["2025-02-28", "2025-03-01"]


def test_days_empty(tmp_path, capsys):
    assert main(["days", "--data-dir", str(tmp_path)]) == 0
    assert "No data available" in capsys.readouterr().out


def test_show(tmp_path, capsys):
    _seed(tmp_path)

    assert main(["show", "--data-dir", str(tmp_path), "--day", "2025-03-01"]) == 0
    lines = capsys.readouterr().out.strip().splitlines()
    assert lines[0] == "Datetime | Lat | Lon | Elv | Spd | PM10"
    assert lines[1:] == [
        "2025-03-01 08:00:00 | 31.23 | 121.47 | 10.0 | 0.0 | 42.0",
        "2025-03-01 08:05:00 | 31.23 | 121.47 | 10.0 | 0.0 | 47.0",
    ]


def test_show_json(tmp_path, capsys):
    _seed(tmp_path)

    assert main(["show", "--data-dir", str(tmp_path), "--day", "2025-02-28", "--json"]) == 0
    rows = json.loads(capsys.readouterr().out)
    assert rows == [
        {"Datetime": "2025-02-28 08:00:00", "Lat": "31.23", "Lon": "121.47", "Elv": "10.0", "Spd": "0.0", "PM10": "42.0"}
    ]


def test_show_bad_day(tmp_path, capsys):
    assert main(["show", "--data-dir", str(tmp_path), "--day", "yesterday"]) == 2


def test_share(tmp_path, capsys):
    store = _seed(tmp_path / "data")
    out_dir = tmp_path / "outbox"

    assert main(["share", "--data-dir", str(tmp_path / "data"), "--day", "2025-03-01", "--out", str(out_dir)]) == 0
    out = capsys.readouterr().out
    assert "Pollution data for 2025-03-01" in out
    assert str(store.path_for("2025-03-01")) in out
    copied = out_dir / "pollution_2025-03-01.txt"
    assert copied.read_text(encoding="utf-8") == store.path_for("2025-03-01").read_text(encoding="utf-8")


def test_share_missing_day(tmp_path, capsys):
    assert main(["share", "--data-dir", str(tmp_path), "--day", "2025-03-01"]) == 1
    assert "No data file found" in capsys.readouterr().err


def test_track_once_with_static_position(tmp_path, capsys, http):
    code = main(
        [
            "track",
            "--data-dir",
            str(tmp_path),
            "--api-key",
            "k",
            "--provider",
            "static",
            "--lat",
            "30.5",
            "--lon",
            "104.0",
            "--once",
        ]
    )

    assert code == 0
    assert "City: Chengdu PM10: 12.34" in capsys.readouterr().out
    store = LogStore(tmp_path)
    (day,) = store.list_days()
    (record,) = store.read_day(day)
    assert record.fields()[1:] == ("30.5", "104.0", "0.0", "0.0", "12.34")
    assert http.params(0)["appid"] == "k"
