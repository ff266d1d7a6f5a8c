from __future__ import annotations

import json
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any
from urllib.parse import parse_qs, urlsplit

import pytest
import requests
from requests.structures import CaseInsensitiveDict

from sutprobe.client import SessionClient
from sutprobe.config import Settings
from sutprobe.emails import EmailMatcher
from sutprobe.polling import PollingWaiter

ORIGIN = "http://sut.test"
HANDSHAKE_COOKIES = "XSRF-TOKEN=abc123; Path=/, dwCoSid=sid42; Path=/; HttpOnly"


def make_response(status: int = 200, body: Any = "", headers: dict[str, str] | None = None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    text = body if isinstance(body, str) else json.dumps(body)
    response._content = text.encode("utf-8")  # noqa: SLF001
    response.encoding = "utf-8"
    response.headers = CaseInsensitiveDict(headers or {})
    return response


@dataclass
class Call:
    method: str
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    json: Any = None

    @property
    def path(self) -> str:
        return urlsplit(self.url).path or "/"

    @property
    def query(self) -> dict[str, list[str]]:
        return parse_qs(urlsplit(self.url).query)


class FakeTransport:
    """Stands in for requests.Session. The last queued response for a route repeats."""

    def __init__(self) -> None:
        self.routes: dict[tuple[str, str], list[requests.Response]] = {}
        self.calls: list[Call] = []

    def queue(self, method: str, path: str, *responses: requests.Response) -> None:
        self.routes.setdefault((method, path), []).extend(responses)

    def handshake(self, cookies: str = HANDSHAKE_COOKIES) -> None:
        self.queue("GET", "/", make_response(200, "<html></html>", {"Set-Cookie": cookies}))

    def calls_to(self, method: str, path: str) -> list[Call]:
        return [call for call in self.calls if call.method == method and call.path == path]

    def _respond(self, method: str, url: str, **kwargs: Any) -> requests.Response:
        call = Call(method=method, url=url, headers=dict(kwargs.get("headers") or {}), json=kwargs.get("json"))
        self.calls.append(call)
        queue = self.routes.get((method, call.path))
        if not queue:
            raise AssertionError(f"Unexpected request: {method} {url}")
        return queue.pop(0) if len(queue) > 1 else queue[0]

    def get(self, url: str, **kwargs: Any) -> requests.Response:
        return self._respond("GET", url, **kwargs)

    def post(self, url: str, **kwargs: Any) -> requests.Response:
        return self._respond("POST", url, **kwargs)


class FakeClock:
    def __init__(self) -> None:
        self.now = 0.0
        self.sleeps: list[float] = []

    def __call__(self) -> float:
        return self.now

    def sleep(self, seconds: float) -> None:
        self.sleeps.append(seconds)
        self.now += seconds


@pytest.fixture()
def settings(monkeypatch, tmp_path: Path) -> Settings:
    monkeypatch.setenv("SUTPROBE_HOME", str(tmp_path))
    monkeypatch.setenv("SUTPROBE_ORIGIN", ORIGIN)
    monkeypatch.setenv("SUTPROBE_E2E_TEST_PASSWORD", "public")
    monkeypatch.setenv("SUTPROBE_WAITFOR_TIMEOUT_SEC", "2")
    monkeypatch.setenv("SUTPROBE_POLL_INTERVAL_MS", "500")
    monkeypatch.delenv("SUTPROBE_LOG_LEVEL", raising=False)
    monkeypatch.delenv("SUTPROBE_DELETE_OLD_SITE", raising=False)
    s = Settings.load(base_dir=tmp_path)
    s.ensure_directories()
    return s


@pytest.fixture()
def test_logger() -> logging.Logger:
    logger = logging.getLogger("sutprobe-test")
    logger.handlers.clear()
    logger.addHandler(logging.NullHandler())
    logger.setLevel(logging.INFO)
    return logger


@pytest.fixture()
def transport() -> FakeTransport:
    return FakeTransport()


@pytest.fixture()
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture()
def client(settings: Settings, transport: FakeTransport, test_logger) -> SessionClient:  # noqa: ANN001
    return SessionClient(settings, http=transport, logger=test_logger)


@pytest.fixture()
def matcher(settings: Settings, client: SessionClient, clock: FakeClock, test_logger) -> EmailMatcher:  # noqa: ANN001
    waiter = PollingWaiter(settings.poll_config(), sleep=clock.sleep, clock=clock, logger=test_logger)
    return EmailMatcher(client, settings.main_site_origin, waiter, logger=test_logger)
