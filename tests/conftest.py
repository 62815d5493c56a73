from __future__ import annotations

import json
import urllib.error
import urllib.parse
import urllib.request
from datetime import datetime

import pytest

from pollution_tracker.logstore import LogStore

POLLUTION_URL = "http://api.openweathermap.org/data/2.5/air_pollution"
GEOCODING_URL = "http://api.openweathermap.org/geo/1.0/reverse"

POLLUTION_BODY = {
    "coord": {"lon": 103.9285, "lat": 30.7456},
    "list": [
        {
            "main": {"aqi": 2},
            "components": {"co": 201.94, "no2": 0.78, "o3": 68.66, "pm2_5": 0.5, "pm10": 12.34},
            "dt": 1605182400,
        }
    ],
}
GEOCODING_BODY = [{"name": "Chengdu", "lat": 30.66, "lon": 104.06, "country": "CN"}]


class FakeResponse:
    def __init__(self, status: int, body: bytes | Exception) -> None:
        self.status = status
        self._body = body

    def read(self) -> bytes:
        if isinstance(self._body, Exception):
            raise self._body
        return self._body

    def __enter__(self) -> FakeResponse:
        return self

    def __exit__(self, *exc: object) -> bool:
        return False


class FakeHttp:
    """Routes urlopen() calls by URL prefix to (status, body).

    An Exception body is raised from urlopen() when status is 0, otherwise from
    the response's read().
    """

    def __init__(self) -> None:
        self.routes: dict[str, tuple[int, object]] = {
            POLLUTION_URL: (200, POLLUTION_BODY),
            GEOCODING_URL: (200, GEOCODING_BODY),
        }
        self.calls: list[str] = []

    def set(self, url: str, status: int, body: object = None) -> None:
        self.routes[url] = (status, body)

    def params(self, index: int = -1) -> dict[str, str]:
        query = urllib.parse.urlsplit(self.calls[index]).query
        return dict(urllib.parse.parse_qsl(query))

    def urlopen(self, req: urllib.request.Request, timeout: float | None = None) -> FakeResponse:
        url = req.full_url
        self.calls.append(url)
        for prefix, (status, body) in self.routes.items():
            if not url.startswith(prefix):
                continue
            if status == 0:
                if isinstance(body, Exception):
                    raise body
                raise urllib.error.URLError("connection refused")
            if status != 200:
                raise urllib.error.HTTPError(url, status, "error", hdrs=None, fp=None)
            raw = body if isinstance(body, (bytes, Exception)) else json.dumps(body).encode("utf-8")
            return FakeResponse(status, raw)
        raise urllib.error.URLError(f"no route for {url}")


@pytest.fixture
def http(monkeypatch: pytest.MonkeyPatch) -> FakeHttp:
    fake = FakeHttp()
    monkeypatch.setattr(urllib.request, "urlopen", fake.urlopen)
    return fake


@pytest.fixture
def store(tmp_path) -> LogStore:
    return LogStore(tmp_path)


@pytest.fixture
def fixed_clock():
    return lambda: datetime(2025, 3, 1, 12, 0, 5)
