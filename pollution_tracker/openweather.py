"""OpenWeatherMap clients: PM10 lookup and reverse geocoding (lat/lon -> place name).

Both clients use only the standard library HTTP stack and never raise to their
caller: a failed pollution query degrades to 0.0, a failed geocode to "Unknown".
"""

from __future__ import annotations

import http.client
import json
import logging
import urllib.error
import urllib.parse
import urllib.request
from dataclasses import dataclass
from typing import Any

from pollution_tracker.models import UNKNOWN_PLACE

logger = logging.getLogger(__name__)


@dataclass(frozen=True, slots=True)
class OpenWeatherConfig:
    """Configuration for the OpenWeatherMap endpoints."""

    api_key: str = ""
    pollution_url: str = "http://api.openweathermap.org/data/2.5/air_pollution"
    geocoding_url: str = "http://api.openweathermap.org/geo/1.0/reverse"
    timeout_seconds: float = 20.0
    user_agent: str = "pollution-tracker/0.1.0"


def get_json(url: str, params: dict[str, str], cfg: OpenWeatherConfig) -> tuple[int, Any]:
    """GET url?params and decode the JSON body.

    Args:
        url: Endpoint URL without query string.
        params: Query parameters.
        cfg: OpenWeatherConfig (timeout, User-Agent).

    Returns:
        (status, payload). status is 0 on transport failure; payload is None
        when the request failed or the body is not valid JSON.
    """

    full_url = f"{url}?{urllib.parse.urlencode(params)}"
    req = urllib.request.Request(
        full_url,
        headers={
            "User-Agent": cfg.user_agent,
            "Accept": "application/json",
        },
        method="GET",
    )
    try:
        with urllib.request.urlopen(req, timeout=cfg.timeout_seconds) as resp:  # noqa: S310
            status = int(resp.status)
            body = resp.read().decode("utf-8", errors="replace")
    except urllib.error.HTTPError as exc:
        logger.debug("GET %s -> HTTP %s", url, exc.code)
        return exc.code, None
    except (urllib.error.URLError, http.client.HTTPException, OSError, ValueError) as exc:
        # ValueError: InvalidURL; HTTPException: BadStatusLine, IncompleteRead, ...
        logger.warning("请求失败：%s (%s)", url, exc)
        return 0, None

    try:
        return status, json.loads(body)
    except json.JSONDecodeError:
        logger.warning("响应不是合法JSON：%s", url)
        return status, None


def _query(lat: float, lon: float, cfg: OpenWeatherConfig, **extra: str) -> dict[str, str]:
    return {"lat": str(lat), "lon": str(lon), **extra, "appid": cfg.api_key}


class PollutionClient:
    """Reads the current PM10 concentration for a coordinate."""

    def __init__(self, config: OpenWeatherConfig) -> None:
        self._cfg = config
        if not config.api_key:
            logger.warning("未设置 OpenWeatherMap API key：PM10 将记录为 0.0")

    def fetch(self, lat: float, lon: float) -> float:
        """Return PM10 in µg/m³ for (lat, lon), or 0.0 if the query degraded."""

        status, payload = get_json(self._cfg.pollution_url, _query(lat, lon, self._cfg), self._cfg)
        if status != 200:
            logger.warning("PM10 查询失败（HTTP %s），记录为 0.0", status)
            return 0.0
        try:
            value = payload["list"][0]["components"]["pm10"]
        except (KeyError, IndexError, TypeError):
            logger.warning("PM10 响应缺少 list[0].components.pm10，记录为 0.0")
            return 0.0
        if isinstance(value, bool) or not isinstance(value, (int, float)):
            logger.warning("PM10 不是数值：%r，记录为 0.0", value)
            return 0.0
        return float(value)


class GeocodingClient:
    """Resolves a coordinate to a human-readable place name."""

    def __init__(self, config: OpenWeatherConfig) -> None:
        self._cfg = config

    def resolve(self, lat: float, lon: float) -> str:
        """Return the first result's name, or "Unknown"."""

        status, payload = get_json(
            self._cfg.geocoding_url,
            _query(lat, lon, self._cfg, limit="1"),
            self._cfg,
        )
        if status != 200:
            logger.warning("逆地理编码失败（HTTP %s）", status)
            return UNKNOWN_PLACE
        if not isinstance(payload, list) or not payload:
            return UNKNOWN_PLACE
        first = payload[0]
        if not isinstance(first, dict):
            return UNKNOWN_PLACE
        name = first.get("name")
        if not isinstance(name, str) or not name:
            return UNKNOWN_PLACE
        return name
