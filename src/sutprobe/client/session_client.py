from __future__ import annotations

import json
import logging
import re
from http.cookiejar import DefaultCookiePolicy
from typing import Any
from urllib.parse import quote

import requests

from sutprobe.config import Settings
from sutprobe.core.logging import REQUESTS_LOGGER_NAME
from sutprobe.errors import (
    AuthHandshakeError,
    ConfigError,
    RequestFailedError,
    UnexpectedSuccessError,
    preview_body,
)

from .curl import render_curl
from .models import XSRF_COOKIE_NAME, RequestOptions, ServerResponse, Session

XSRF_EXPIRED_MARKER = "TyEXSRFEXP_"
PASSWORD_PARAM = "e2eTestPassword"
MAX_EXPIRY_RETRIES = 1

# Splits a folded Set-Cookie header without breaking "Expires=Wed, 21 Oct ..." dates.
SET_COOKIE_SPLIT = re.compile(r",\s*(?=[^;,\s]+=)")


def _set_cookie_values(response: requests.Response) -> list[str]:
    raw_headers = getattr(getattr(response, "raw", None), "headers", None)
    if raw_headers is not None and hasattr(raw_headers, "getlist"):
        values = raw_headers.getlist("Set-Cookie")
        if values:
            return list(values)
    header = response.headers.get("Set-Cookie")
    if not header:
        return []
    return SET_COOKIE_SPLIT.split(header)


def _without_cookie_jar(http: requests.Session) -> requests.Session:
    # Cookies travel only through Session.cookie_header, never through the transport's jar.
    jar = getattr(http, "cookies", None)
    if jar is not None and hasattr(jar, "set_policy"):
        jar.clear()
        jar.set_policy(DefaultCookiePolicy(allowed_domains=[]))
    return http


class SessionClient:
    """Talks to one system under test, keeping its xsrf token and cookies.

    Not thread safe: every browser driver gets its own client.
    """

    def __init__(
        self,
        settings: Settings,
        http: requests.Session | None = None,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.settings = settings
        self.http = _without_cookie_jar(http or requests.Session())
        self.logger = logger or logging.getLogger(REQUESTS_LOGGER_NAME)
        self._session: Session | None = None
        self._origin = settings.main_site_origin

    @property
    def session(self) -> Session | None:
        return self._session

    def init_session(self, origin: str | None = None) -> Session:
        origin = (origin or self._origin).rstrip("/")
        self.logger.info("GET %s (xsrf token handshake)", origin)
        raw = self.http.get(origin, timeout=self.settings.http_timeout_sec)
        response = self._wrap(origin, raw)
        if not response.ok:
            raise AuthHandshakeError(
                origin,
                f"Error getting xsrf token and cookies, status {response.status_code}\n"
                f"{preview_body(response.body_text)}",
            )

        name_values: list[str] = []
        xsrf_token = ""
        for cookie in _set_cookie_values(raw):
            # A Set-Cookie value looks like "name=value; options".
            name_value = cookie.split(";", 1)[0].strip()
            if not name_value:
                continue
            name_values.append(name_value)
            name, _, value = name_value.partition("=")
            if name.strip() == XSRF_COOKIE_NAME:
                xsrf_token = value.strip()

        if not xsrf_token:
            raise AuthHandshakeError(origin, "Got no xsrf token")

        session = Session(xsrf_token=xsrf_token, cookie_header="; ".join(name_values))
        self._session = session
        self._origin = origin
        return session

    def get(self, url: str, options: RequestOptions | None = None) -> ServerResponse:
        options = options or RequestOptions()
        full_url = url + self._password_param(url)
        headers = options.auth.headers(self._session)

        self.logger.info("GET %s", url)
        raw = self.http.get(full_url, headers=headers, timeout=self.settings.http_timeout_sec)
        response = self._wrap(url, raw)
        self._check_status("GET", response, options)
        return response

    def post(self, url: str, payload: Any, options: RequestOptions | None = None) -> ServerResponse:
        options = options or RequestOptions()
        full_url = url + self._password_param(url)
        retry_if_expired = options.retry_if_expired

        for _ in range(MAX_EXPIRY_RETRIES + 1):
            headers = options.auth.headers(self._session)
            self._log_post(url, headers, payload)
            raw = self.http.post(
                full_url,
                json=payload,
                headers=headers,
                timeout=self.settings.http_timeout_sec,
            )
            response = self._wrap(url, raw)
            expired = not response.ok and XSRF_EXPIRED_MARKER in response.body_text
            if not expired or not retry_if_expired:
                break
            # Happens after playing time forward too much.
            self.logger.info("Getting a new xsrf token; the old one has expired ...")
            self.init_session()
            self.logger.info("... Done getting new xsrf token.")
            retry_if_expired = False

        self._check_status("POST", response, options)
        return response

    def _password_param(self, url: str) -> str:
        password = self.settings.e2e_test_password
        if not password:
            raise ConfigError("No E2E test password specified, set SUTPROBE_E2E_TEST_PASSWORD")
        separator = "&" if "?" in url else "?"
        return f"{separator}{PASSWORD_PARAM}={quote(password, safe='')}"

    def _log_post(self, url: str, headers: dict[str, str], payload: Any) -> None:
        self.logger.info("POST %s, headers: %s ...", url, json.dumps(headers))
        curl = render_curl("POST", url, headers, payload, verbose=self.settings.verbose)
        self.logger.info("%s", curl)

    @staticmethod
    def _wrap(url: str, raw: requests.Response) -> ServerResponse:
        content = raw.content or b""
        # requests assumes ISO-8859-1 for text/* without a charset; the server sends UTF-8.
        declared = "charset=" in (raw.headers.get("Content-Type") or "").lower()
        encoding = raw.encoding if declared and raw.encoding else "utf-8"
        body_text = content.decode(encoding, errors="replace")
        return ServerResponse(
            url=url,
            status_code=raw.status_code,
            headers=raw.headers,
            body_text=body_text,
        )

    @staticmethod
    def _check_status(method: str, response: ServerResponse, options: RequestOptions) -> None:
        if options.expect_failure:
            if response.ok:
                raise UnexpectedSuccessError(method, response.url, response.status_code, response.body_text)
            return
        if not response.ok:
            raise RequestFailedError(method, response.url, response.status_code, response.body_text)
