from __future__ import annotations

import base64
import json
from dataclasses import dataclass, field
from typing import Any, Mapping, Union

from sutprobe.errors import BodyParseError

XSRF_COOKIE_NAME = "XSRF-TOKEN"
XSRF_HEADER_NAME = "X-XSRF-TOKEN"
API_REQUESTER_PREFIX = "talkyardId="


@dataclass(frozen=True, slots=True)
class Session:
    xsrf_token: str
    cookie_header: str


@dataclass(frozen=True, slots=True)
class CookieAuth:
    def headers(self, session: Session | None) -> dict[str, str]:
        if session is None:
            return {}
        return {XSRF_HEADER_NAME: session.xsrf_token, "Cookie": session.cookie_header}


@dataclass(frozen=True, slots=True)
class ApiKeyAuth:
    requester_id: int | str
    secret: str

    def headers(self, session: Session | None) -> dict[str, str]:
        credentials = f"{API_REQUESTER_PREFIX}{self.requester_id}:{self.secret}"
        encoded = base64.b64encode(credentials.encode("utf-8")).decode("ascii")
        return {"Authorization": f"Basic {encoded}"}


AuthStrategy = Union[CookieAuth, ApiKeyAuth]


@dataclass(frozen=True, slots=True)
class RequestOptions:
    auth: AuthStrategy = field(default_factory=CookieAuth)
    retry_if_expired: bool = True
    expect_failure: bool = False


@dataclass(frozen=True, slots=True)
class ServerResponse:
    url: str
    status_code: int
    headers: Mapping[str, str]
    body_text: str

    @property
    def ok(self) -> bool:
        return self.status_code == 200

    def json(self) -> Any:
        try:
            return json.loads(self.body_text)
        except ValueError as exc:
            raise BodyParseError(self.url, self.body_text, str(exc)) from exc
