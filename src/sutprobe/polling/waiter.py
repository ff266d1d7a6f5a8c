from __future__ import annotations

import logging
import math
import time
from dataclasses import dataclass
from typing import Any, Callable, TypeVar

from sutprobe.errors import PollTimeoutError

T = TypeVar("T")

FIRST_WARNING_AFTER_SEC = 10.0
LAST_WARNING_BEFORE_END_SEC = 3.0


@dataclass(frozen=True, slots=True)
class PollConfig:
    timeout_sec: float
    interval_ms: int = 500

    def __post_init__(self) -> None:
        if self.timeout_sec <= 0:
            raise ValueError(f"timeout_sec must be > 0, got {self.timeout_sec}")
        if self.interval_ms <= 0:
            raise ValueError(f"interval_ms must be > 0, got {self.interval_ms}")

    @property
    def attempts(self) -> int:
        return max(1, math.ceil(self.timeout_sec * 1000 / self.interval_ms))


@dataclass(frozen=True, slots=True)
class NoMatch:
    """Returned by a predicate that has nothing yet. `observation` is what it saw instead."""

    observation: Any = None


NO_MATCH = NoMatch()


class PollingWaiter:
    """Calls a predicate until it returns something other than a NoMatch.

    Sleeping goes through `sleep`, which blocks the calling thread only. Drivers
    that act in parallel each own a waiter and run on their own threads.
    """

    def __init__(
        self,
        config: PollConfig,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.config = config
        self._sleep = sleep
        self._clock = clock
        self.logger = logger or logging.getLogger(__name__)

    def wait(
        self,
        predicate: Callable[[], T | NoMatch],
        describe: Callable[[Any], str] | None = None,
        what: str = "condition",
    ) -> T:
        attempts = self.config.attempts
        interval_sec = self.config.interval_ms / 1000
        started_at = self._clock()
        first_warning_done = False
        last_warning_done = False
        last_observation: Any = None

        for attempt_nr in range(1, attempts + 1):
            result = predicate()
            if not isinstance(result, NoMatch):
                if attempt_nr > 1:
                    self.logger.debug("%s matched after %s attempts", what, attempt_nr)
                return result

            last_observation = result.observation
            elapsed = self._clock() - started_at

            near_end = elapsed > self.config.timeout_sec - LAST_WARNING_BEFORE_END_SEC
            if not first_warning_done and (elapsed > FIRST_WARNING_AFTER_SEC or near_end):
                first_warning_done = True
                last_warning_done = near_end
                self._warn(what, elapsed, last_observation, describe)
            elif first_warning_done and not last_warning_done and near_end:
                last_warning_done = True
                self._warn(what, elapsed, last_observation, describe)

            if attempt_nr < attempts:
                self._sleep(interval_sec)

        raise PollTimeoutError(what, attempts, last_observation)

    def _warn(
        self,
        what: str,
        elapsed: float,
        observation: Any,
        describe: Callable[[Any], str] | None,
    ) -> None:
        text = describe(observation) if describe else repr(observation)
        self.logger.warning(
            "Still waiting for %s after %.1fs, this test will fail? Latest observation:\n%s",
            what,
            elapsed,
            text,
        )
