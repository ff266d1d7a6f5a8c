from __future__ import annotations

import logging
from datetime import datetime, timezone
from pathlib import Path

from pythonjsonlogger import jsonlogger

from sutprobe.errors import ConfigError

REQUESTS_LOGGER_NAME = "sutprobe.requests"

# "verbose" also keeps whole request bodies in the curl commands.
LOG_LEVELS = {
    "verbose": logging.DEBUG,
    "debug": logging.DEBUG,
    "info": logging.INFO,
    "warning": logging.WARNING,
    "error": logging.ERROR,
}


def resolve_level(level: int | str) -> int:
    if isinstance(level, int):
        return level
    try:
        return LOG_LEVELS[level.strip().lower()]
    except KeyError:
        raise ConfigError(f"Unknown log level {level!r}, expected one of {', '.join(LOG_LEVELS)}") from None


class CorrelationIdFilter(logging.Filter):
    def __init__(self, correlation_id: str):
        super().__init__()
        self._correlation_id = correlation_id

    def filter(self, record: logging.LogRecord) -> bool:
        if not hasattr(record, "correlation_id"):
            record.correlation_id = self._correlation_id
        return True


class ServerRequestFilter(logging.Filter):
    """Keeps server requests and curl commands off the console unless debugging.

    They always reach the files.
    """

    def __init__(self, show_requests: bool):
        super().__init__()
        self._show_requests = show_requests

    def filter(self, record: logging.LogRecord) -> bool:
        if record.name == REQUESTS_LOGGER_NAME or record.name.startswith(REQUESTS_LOGGER_NAME + "."):
            return self._show_requests or record.levelno >= logging.WARNING
        return True


def _log_paths(log_dir: Path) -> tuple[Path, Path, Path]:
    utc_day = datetime.now(timezone.utc).strftime("%Y-%m-%d")
    return (
        log_dir / f"sutprobe-{utc_day}.log",
        log_dir / f"sutprobe-{utc_day}.jsonl",
        log_dir / f"sutprobe-requests-{utc_day}.log",
    )


def configure_logging(log_dir: Path, correlation_id: str, level: int | str = logging.INFO) -> None:
    resolved = resolve_level(level)
    log_dir.mkdir(parents=True, exist_ok=True)
    text_path, json_path, requests_path = _log_paths(log_dir)
    correlation_filter = CorrelationIdFilter(correlation_id)

    root = logging.getLogger()
    root.handlers.clear()
    root.setLevel(resolved)

    console = logging.StreamHandler()
    console.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s [%(correlation_id)s] %(name)s: %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
        )
    )
    console.addFilter(correlation_filter)
    console.addFilter(ServerRequestFilter(show_requests=resolved <= logging.DEBUG))
    root.addHandler(console)

    text_handler = logging.FileHandler(text_path, encoding="utf-8")
    text_handler.setFormatter(console.formatter)
    text_handler.addFilter(correlation_filter)
    root.addHandler(text_handler)

    json_handler = logging.FileHandler(json_path, encoding="utf-8")
    json_handler.setFormatter(
        jsonlogger.JsonFormatter(fmt="%(asctime)s %(levelname)s %(name)s %(correlation_id)s %(message)s")
    )
    json_handler.addFilter(correlation_filter)
    root.addHandler(json_handler)

    # Bare messages, so logged curl commands can be pasted straight into a shell.
    requests_logger = logging.getLogger(REQUESTS_LOGGER_NAME)
    for handler in list(requests_logger.handlers):
        requests_logger.removeHandler(handler)
        handler.close()
    requests_handler = logging.FileHandler(requests_path, encoding="utf-8")
    requests_handler.setFormatter(logging.Formatter(fmt="# %(asctime)s [%(correlation_id)s]\n%(message)s\n"))
    requests_handler.addFilter(correlation_filter)
    requests_logger.addHandler(requests_handler)
    requests_logger.setLevel(logging.DEBUG if resolved <= logging.DEBUG else logging.INFO)


def get_logger(name: str, correlation_id: str) -> logging.LoggerAdapter:
    base_logger = logging.getLogger(name)
    return logging.LoggerAdapter(base_logger, extra={"correlation_id": correlation_id})
