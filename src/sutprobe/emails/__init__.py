from .links import find_any_first_link_to_url_in, find_first_link_to_url_in
from .matcher import EmailMatcher
from .models import EmailRecord, EmailsSentSummary, MatchResult

__all__ = [
    "EmailMatcher",
    "EmailRecord",
    "EmailsSentSummary",
    "MatchResult",
    "find_any_first_link_to_url_in",
    "find_first_link_to_url_in",
]
