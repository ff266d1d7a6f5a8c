from .setup import (
    LOG_LEVELS,
    REQUESTS_LOGGER_NAME,
    CorrelationIdFilter,
    ServerRequestFilter,
    configure_logging,
    get_logger,
    resolve_level,
)

__all__ = [
    "LOG_LEVELS",
    "REQUESTS_LOGGER_NAME",
    "CorrelationIdFilter",
    "ServerRequestFilter",
    "configure_logging",
    "get_logger",
    "resolve_level",
]
