from .curl import render_curl
from .models import ApiKeyAuth, AuthStrategy, CookieAuth, RequestOptions, ServerResponse, Session
from .session_client import XSRF_EXPIRED_MARKER, SessionClient

__all__ = [
    "ApiKeyAuth",
    "AuthStrategy",
    "CookieAuth",
    "RequestOptions",
    "ServerResponse",
    "Session",
    "SessionClient",
    "XSRF_EXPIRED_MARKER",
    "render_curl",
]
