from __future__ import annotations

import os

import streamlit as st

from pollution_tracker.collector import CollectionLoop
from pollution_tracker.errors import DayLogNotFound, LocationServiceUnavailable, PermissionDenied
from pollution_tracker.location import IpLocationProvider, LocationProvider, StaticLocationProvider, ensure_permission
from pollution_tracker.logstore import LogStore, default_data_root
from pollution_tracker.models import Position
from pollution_tracker.openweather import GeocodingClient, OpenWeatherConfig, PollutionClient
from pollution_tracker.runner import BackgroundTracker, TrackerSlot


def _build_tracker(data_dir: str, api_key: str, source: str, lat: float, lon: float) -> BackgroundTracker:
    provider: LocationProvider
    if source == "static":
        provider = StaticLocationProvider(Position(latitude=lat, longitude=lon))
    else:
        provider = IpLocationProvider()
    cfg = OpenWeatherConfig(api_key=api_key)
    collector = CollectionLoop(provider, PollutionClient(cfg), GeocodingClient(cfg), LogStore(data_dir))
    return BackgroundTracker(collector)


def _slot() -> TrackerSlot:
    # 每个会话只保留一个采集器；配置变化时先关掉旧的
    if "tracker_slot" not in st.session_state:
        st.session_state["tracker_slot"] = TrackerSlot()
    return st.session_state["tracker_slot"]


def _check_permission_once(provider: LocationProvider) -> None:
    if st.session_state.get("permission_checked"):
        return
    st.session_state["permission_checked"] = True
    try:
        ensure_permission(provider)
    except PermissionDenied as exc:
        st.warning(str(exc))


def main() -> None:
    st.set_page_config(page_title="Air Pollution Tracker", layout="wide")
    st.title("Air Pollution Tracker")

    slot = _slot()
    locked = slot.tracker is not None and slot.tracker.running

    with st.sidebar:
        if locked:
            st.caption("采集中，停止后才能修改配置")
        st.subheader("数据与接口")
        data_dir = st.text_input("数据根目录", value=str(default_data_root()), disabled=locked)
        api_key = st.text_input(
            "OpenWeatherMap API key",
            value=os.environ.get("OPENWEATHER_API_KEY", ""),
            type="password",
            disabled=locked,
        )

        st.subheader("位置来源")
        source = st.radio(
            "来源",
            options=["ip", "static"],
            format_func={"ip": "公网IP粗定位", "static": "固定坐标"}.get,
            disabled=locked,
        )
        lat = st.number_input("纬度 lat", value=30.7456421, format="%.7f", disabled=locked or source != "static")
        lon = st.number_input("经度 lon", value=103.9284974, format="%.7f", disabled=locked or source != "static")

    config = (data_dir, api_key, source, float(lat), float(lon))
    tracker = slot.get(config, lambda: _build_tracker(*config))
    _check_permission_once(tracker.collector.provider)

    label = "Stop Tracking" if tracker.running else "Start Tracking"
    if st.button(label, type="primary", use_container_width=True):
        try:
            with st.spinner("正在采集……"):
                running = tracker.toggle()
        except LocationServiceUnavailable as exc:
            st.error(str(exc))
        else:
            st.toast("Tracking started" if running else "Tracking stopped")
            st.rerun()

    notice = tracker.collector.notices.value
    if notice is not None:
        st.warning(str(notice))

    st.subheader("最新读数")
    reading = tracker.collector.latest.value
    c1, c2, c3 = st.columns(3)
    if reading is None:
        c1.metric("位置", "No location data")
        c2.metric("City", "Unknown")
    else:
        c1.metric("位置", f"{reading.sample.latitude:.5f}, {reading.sample.longitude:.5f}")
        c2.metric("City", reading.place_name)
        c3.metric("PM10 (µg/m³)", f"{reading.sample.pm10:.1f}")

    st.subheader("Pollution Data")
    store = LogStore(data_dir)
    days = store.list_days()
    if not days:
        st.info("No data available")
        return

    day = st.selectbox("日期", options=days)
    rows = [r.as_row() for r in store.read_day(day)]
    if rows:
        st.dataframe(rows, use_container_width=True, height=520)
    else:
        st.info("No data for selected date")

    try:
        req = store.share_request(day)
    except DayLogNotFound as exc:
        st.error(str(exc))
        return
    st.download_button(
        "Download Data",
        data=req.path.read_bytes(),
        file_name=req.path.name,
        mime="text/plain",
    )
    st.caption(req.caption)


if __name__ == "__main__":
    main()
