from __future__ import annotations

import argparse
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from pathlib import Path

from pollution_tracker.logstore import LogStore
from pollution_tracker.models import DEFAULT_INTERVAL_SECONDS, Sample


@dataclass(frozen=True, slots=True)
class Station:
    name: str
    lat: float
    lon: float
    pm10_base: float


def generate_samples(
    *,
    days: int,
    seed: int,
    start_local: datetime,
    stations: list[Station],
) -> list[Sample]:
    """Generate fake 5-minute samples around a few stations (privacy-safe)."""

    rng = random.Random(seed)
    end = start_local + timedelta(days=days)
    cur = start_local
    station = rng.choice(stations)

    out: list[Sample] = []
    while cur < end:
        # Occasionally move to another station to simulate a commute
        if rng.random() < 0.02:
            station = rng.choice(stations)

        moving = rng.random() < 0.2
        # 偶尔出现 0.0：模拟接口降级
        pm10 = 0.0 if rng.random() < 0.03 else max(0.0, rng.gauss(station.pm10_base, station.pm10_base * 0.3))
        out.append(
            Sample(
                timestamp=cur,
                latitude=round(station.lat + rng.uniform(-0.0015, 0.0015), 7),
                longitude=round(station.lon + rng.uniform(-0.0015, 0.0015), 7),
                altitude_m=round(rng.uniform(0, 60), 1),
                speed_mps=round(rng.uniform(0.5, 12.0), 2) if moving else 0.0,
                pm10=round(pm10, 2),
            )
        )
        cur = cur + timedelta(seconds=DEFAULT_INTERVAL_SECONDS)
    return out


def main() -> int:
    p = argparse.ArgumentParser(description="Generate fake day logs for demo/testing (privacy-safe).")
    p.add_argument("--data-dir", type=str, default="sample_data", help="Data root (AirPollutionData/ is created inside)")
    p.add_argument("--days", type=int, default=3, help="Number of days")
    p.add_argument("--seed", type=int, default=42, help="Random seed (reproducible)")
    p.add_argument(
        "--start",
        type=str,
        default="2025-01-01 08:00:00",
        help="Start local time, e.g. '2025-01-01 08:00:00'",
    )
    args = p.parse_args()

    start_local = datetime.fromisoformat(args.start)
    stations = [
        Station("shanghai_lab", 31.2304000, 121.4737000, 45.0),
        Station("shanghai_home", 31.2222000, 121.4588000, 38.0),
        Station("beijing_trip", 39.9042000, 116.4074000, 80.0),
    ]

    samples = generate_samples(days=args.days, seed=args.seed, start_local=start_local, stations=stations)
    store = LogStore(Path(args.data_dir))
    for s in samples:
        store.append(s.day_key, s)

    print(f"Generated: {store.directory} (samples={len(samples)}, days={len(store.list_days())}, seed={args.seed})")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
