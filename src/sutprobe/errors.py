from __future__ import annotations

from typing import Any

BODY_PREVIEW_CHARS = 2000


def preview_body(body: str | None, limit: int = BODY_PREVIEW_CHARS) -> str:
    text = body or ""
    if len(text) > limit:
        return text[:limit] + f"\n... ({len(text) - limit} more chars)"
    return text


class SutProbeError(Exception):
    """Base class for every harness failure. All of them end the running scenario."""


class ConfigError(SutProbeError):
    pass


class AuthHandshakeError(SutProbeError):
    def __init__(self, origin: str, message: str):
        super().__init__(f"{message} (origin: {origin})")
        self.origin = origin


class RequestFailedError(SutProbeError):
    def __init__(self, method: str, url: str, status_code: int, body: str, message: str | None = None):
        text = message or f"{method} request failed to {url}"
        super().__init__(
            f"{text}\nResponse status code: {status_code} (should have been 200)\n"
            f"Response body:\n{preview_body(body)}"
        )
        self.method = method
        self.url = url
        self.status_code = status_code
        self.body = body


class UnexpectedSuccessError(SutProbeError):
    def __init__(self, method: str, url: str, status_code: int, body: str):
        super().__init__(
            f"{method} request should have gotten back an error code, to {url}\n"
            f"Response status code: {status_code} (should have been *not* 200)\n"
            f"Response body:\n{preview_body(body)}"
        )
        self.method = method
        self.url = url
        self.status_code = status_code
        self.body = body


class BodyParseError(SutProbeError):
    def __init__(self, url: str, body: str, reason: str):
        super().__init__(
            f"Error parsing response json from {url}: {reason}\n"
            f"--- The server's response: ------\n{preview_body(body)}\n"
            "---------------------------------"
        )
        self.url = url
        self.body = body


class PollTimeoutError(SutProbeError):
    def __init__(self, what: str, attempts: int, last_observation: Any = None):
        super().__init__(
            f"Timed out waiting for {what} after {attempts} attempts; "
            f"last observation: {last_observation!r}"
        )
        self.what = what
        self.attempts = attempts
        self.last_observation = last_observation


class NoMatchingEmailError(SutProbeError):
    def __init__(self, address: str, unmatched: list[str], detail: str | None = None):
        if detail:
            message = detail
        elif unmatched:
            message = f"Never got any email to {address} matching {', '.join(unmatched)}"
        else:
            message = f"Never got any email to {address}"
        super().__init__(message)
        self.address = address
        self.unmatched = list(unmatched)


class TooManyEmailsError(SutProbeError):
    def __init__(self, address: str, count: int):
        super().__init__(
            f"Too many emails to {address} ({count}), the server only returns the most recent ones "
            "so the count is unreliable"
        )
        self.address = address
        self.count = count


class LinkNotFoundError(SutProbeError):
    def __init__(self, url_regex: str, address: str | None = None):
        target = f" in the last email to {address}" if address else ""
        super().__init__(f"No link matching {url_regex!r}{target}")
        self.url_regex = url_regex
        self.address = address


class ApiContractError(SutProbeError):
    def __init__(self, url: str, field: str, body: Any):
        super().__init__(f"No '{field}' in response from {url}:\n{preview_body(str(body))}")
        self.url = url
        self.field = field
        self.body = body
