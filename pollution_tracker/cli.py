"""Command-line interface for pollution_tracker.

Run:
    python -m pollution_tracker track --provider static --lat 30.74 --lon 103.93
    python -m pollution_tracker days
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import os
import shutil
import sys
from pathlib import Path

from pollution_tracker.collector import CollectionLoop
from pollution_tracker.errors import DayLogNotFound, LocationServiceUnavailable, PermissionDenied, TrackerError
from pollution_tracker.location import (
    IpLocationProvider,
    LocationProvider,
    StaticLocationProvider,
    TrackReplayProvider,
    ensure_permission,
)
from pollution_tracker.logstore import LogStore
from pollution_tracker.models import COLUMNS, DEFAULT_INTERVAL_SECONDS, LatestReading, Position
from pollution_tracker.openweather import GeocodingClient, OpenWeatherConfig, PollutionClient
from pollution_tracker.timeutils import tzinfo_from_name

API_KEY_ENV = "OPENWEATHER_API_KEY"


def _build_provider(args: argparse.Namespace) -> LocationProvider:
    if args.provider == "static":
        if args.lat is None or args.lon is None:
            raise SystemExit("--provider static 需要同时给出 --lat 和 --lon")
        return StaticLocationProvider(
            Position(latitude=args.lat, longitude=args.lon, altitude_m=args.altitude, speed_mps=args.speed)
        )
    if args.provider == "replay":
        if not args.replay_csv:
            raise SystemExit("--provider replay 需要 --replay-csv")
        return TrackReplayProvider.from_csv(args.replay_csv, loop=args.replay_loop)
    return IpLocationProvider(timeout_seconds=args.location_timeout)


def _print_latest(reading: LatestReading | None) -> None:
    if reading is None:
        return
    s = reading.sample
    print(
        f"[{s.fields()[0]}] Lat: {s.latitude} Lon: {s.longitude} "
        f"City: {reading.place_name} PM10: {s.pm10}",
        flush=True,
    )


def _print_notice(exc: TrackerError | None) -> None:
    if exc is not None:
        print(f"提示：{exc}", file=sys.stderr, flush=True)


async def _run_tracking(args: argparse.Namespace, collector: CollectionLoop) -> int:
    collector.latest.subscribe(_print_latest)
    collector.notices.subscribe(_print_notice)
    try:
        await collector.start()
    except LocationServiceUnavailable as exc:
        print(f"无法开始采集：{exc}", file=sys.stderr)
        return 1

    if args.once:
        await collector.stop()
        await collector.drain()
        return 0

    print(f"Tracking started（每 {collector.session.interval_seconds}s 采集一次，Ctrl-C 停止）", file=sys.stderr)
    try:
        await asyncio.Event().wait()
    finally:
        await collector.stop()
        await collector.drain()
    return 0


def _cmd_track(args: argparse.Namespace) -> int:
    tzinfo_from_name(args.tz)
    provider = _build_provider(args)
    try:
        ensure_permission(provider)
    except PermissionDenied as exc:
        # 只提示一次，不阻止后续流程
        print(f"提示：{exc}", file=sys.stderr)

    cfg = OpenWeatherConfig(api_key=args.api_key or "", timeout_seconds=args.http_timeout)
    store = LogStore(args.data_dir)
    collector = CollectionLoop(
        provider,
        PollutionClient(cfg),
        GeocodingClient(cfg),
        store,
        interval_seconds=args.interval,
        location_timeout_seconds=args.location_timeout,
        tz_name=args.tz,
    )
    try:
        return asyncio.run(_run_tracking(args, collector))
    except KeyboardInterrupt:
        print("\nTracking stopped", file=sys.stderr)
        return 0


def _cmd_days(args: argparse.Namespace) -> int:
    store = LogStore(args.data_dir)
    days = store.list_days()
    if not days:
        print("No data available")
        return 0
    for d in sorted(days) if args.sort else days:
        print(d)
    return 0


def _cmd_show(args: argparse.Namespace) -> int:
    store = LogStore(args.data_dir)
    records = store.read_day(args.day)
    if args.json:
        print(json.dumps([r.as_row() for r in records], ensure_ascii=False, indent=2))
        return 0
    if not records:
        print("No data for selected date")
        return 0
    print(" | ".join(COLUMNS))
    for r in records:
        print(" | ".join(r.fields()))
    return 0


def _cmd_share(args: argparse.Namespace) -> int:
    store = LogStore(args.data_dir)
    try:
        req = store.share_request(args.day)
    except DayLogNotFound as exc:
        print(f"{exc}", file=sys.stderr)
        return 1
    if args.out:
        out_dir = Path(args.out)
        out_dir.mkdir(parents=True, exist_ok=True)
        target = out_dir / req.path.name
        shutil.copyfile(req.path, target)
        print(f"已导出：{target}")
    print(req.caption)
    print(req.path)
    return 0


def _add_data_dir(p: argparse.ArgumentParser) -> None:
    p.add_argument(
        "--data-dir",
        type=str,
        default=None,
        help="数据根目录（其下的 AirPollutionData/ 存放日志），默认 ~/Documents",
    )


def build_parser() -> argparse.ArgumentParser:
    """Build CLI parser."""

    p = argparse.ArgumentParser(prog="pollution_tracker")
    p.add_argument(
        "--log-level",
        type=str,
        default="WARNING",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        help="日志级别",
    )
    sub = p.add_subparsers(dest="cmd", required=True)

    p_tr = sub.add_parser("track", help="定时采集位置与PM10并写入当天日志")
    _add_data_dir(p_tr)
    p_tr.add_argument(
        "--api-key",
        type=str,
        default=os.environ.get(API_KEY_ENV),
        help=f"OpenWeatherMap API key（默认读环境变量 {API_KEY_ENV}）",
    )
    p_tr.add_argument(
        "--provider",
        type=str,
        default="ip",
        choices=["ip", "static", "replay"],
        help="位置来源：ip(按公网IP粗定位) / static(固定坐标) / replay(回放轨迹CSV)",
    )
    p_tr.add_argument("--lat", type=float, default=None, help="固定坐标纬度（static）")
    p_tr.add_argument("--lon", type=float, default=None, help="固定坐标经度（static）")
    p_tr.add_argument("--altitude", type=float, default=0.0, help="固定海拔，米（static）")
    p_tr.add_argument("--speed", type=float, default=0.0, help="固定速度，米/秒（static）")
    p_tr.add_argument("--replay-csv", type=str, default=None, help="回放用轨迹CSV（replay）")
    p_tr.add_argument("--replay-loop", action="store_true", help="轨迹回放完后从头开始")
    p_tr.add_argument(
        "--interval",
        type=int,
        default=DEFAULT_INTERVAL_SECONDS,
        help="采集间隔（秒），默认300",
    )
    p_tr.add_argument("--location-timeout", type=float, default=10.0, help="获取位置的超时（秒）")
    p_tr.add_argument("--http-timeout", type=float, default=20.0, help="单次HTTP请求超时（秒）")
    p_tr.add_argument("--tz", type=str, default=None, help="时区（IANA），默认系统本地时区")
    p_tr.add_argument("--once", action="store_true", help="只采集一次然后退出")
    p_tr.set_defaults(func=_cmd_track)

    p_days = sub.add_parser("days", help="列出已有数据的日期")
    _add_data_dir(p_days)
    p_days.add_argument("--sort", action="store_true", help="按日期排序（默认按目录顺序）")
    p_days.set_defaults(func=_cmd_days)

    p_show = sub.add_parser("show", help="显示某一天的记录")
    _add_data_dir(p_show)
    p_show.add_argument("--day", type=str, required=True, help="日期，例如 2025-12-18")
    p_show.add_argument("--json", action="store_true", help="输出JSON（便于后处理）")
    p_show.set_defaults(func=_cmd_show)

    p_share = sub.add_parser("share", help="给出某一天日志文件的路径（可复制到指定目录）")
    _add_data_dir(p_share)
    p_share.add_argument("--day", type=str, required=True, help="日期，例如 2025-12-18")
    p_share.add_argument("--out", type=str, default=None, help="复制到该目录")
    p_share.set_defaults(func=_cmd_share)

    return p


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint."""

    parser = build_parser()
    args = parser.parse_args(argv)
    logging.basicConfig(
        level=getattr(logging, args.log_level),
        format="%(asctime)s - %(levelname)s - %(name)s - %(message)s",
    )
    try:
        return int(args.func(args))
    except ValueError as exc:
        # 例如 --day 格式不对
        print(f"错误：{exc}", file=sys.stderr)
        return 2


if __name__ == "__main__":
    raise SystemExit(main())
