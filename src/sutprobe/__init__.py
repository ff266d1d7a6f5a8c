from .api import ApiV0, ServerApi, SiteIdAddress
from .client import ApiKeyAuth, CookieAuth, RequestOptions, ServerResponse, Session, SessionClient
from .config import Settings
from .emails import EmailMatcher, EmailRecord, MatchResult
from .polling import NO_MATCH, NoMatch, PollConfig, PollingWaiter

__all__ = [
    "ApiKeyAuth",
    "ApiV0",
    "CookieAuth",
    "EmailMatcher",
    "EmailRecord",
    "MatchResult",
    "NO_MATCH",
    "NoMatch",
    "PollConfig",
    "PollingWaiter",
    "RequestOptions",
    "ServerApi",
    "ServerResponse",
    "Session",
    "SessionClient",
    "Settings",
    "SiteIdAddress",
]
