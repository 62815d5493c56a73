"""CSV input for recorded tracks (replayed as a location source)."""

from __future__ import annotations

import csv
import logging
from dataclasses import dataclass
from pathlib import Path

from pollution_tracker.models import Position

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class CsvSummary:
    """Quick summary of CSV parsing."""

    rows_total: int
    rows_parsed: int
    rows_skipped: int


def _parse_float(value: str) -> float:
    return float(value.strip())


def _position_from_row(row: dict[str, str]) -> Position:
    return Position(
        latitude=_parse_float(row["latitude"]),
        longitude=_parse_float(row["longitude"]),
        altitude_m=_parse_float(row.get("altitude", "0") or "0"),
        speed_mps=max(0.0, _parse_float(row.get("speed", "0") or "0")),
    )


def load_positions(csv_path: str | Path) -> tuple[list[Position], CsvSummary]:
    """Load all positions into memory.

    Args:
        csv_path: Path to the track CSV.

    Returns:
        (positions, summary)

    Notes:
        Required columns: latitude, longitude (decimal degrees).
        Optional: altitude (m), speed (m/s; negative sentinels become 0.0).
        Other columns (geoTime, horizontalAccuracy, ...) are ignored.
    """

    p = Path(csv_path)
    rows_total = 0
    parsed: list[Position] = []

    with p.open("r", encoding="utf-8", newline="") as f:
        reader = csv.DictReader(f)
        for row in reader:
            rows_total += 1
            try:
                parsed.append(_position_from_row(row))
            except (KeyError, ValueError, TypeError):
                continue

    summary = CsvSummary(
        rows_total=rows_total,
        rows_parsed=len(parsed),
        rows_skipped=rows_total - len(parsed),
    )
    if summary.rows_skipped > 0:
        logger.warning("CSV中有 %s 行解析失败已跳过", summary.rows_skipped)
    return parsed, summary
