from .waiter import NO_MATCH, NoMatch, PollConfig, PollingWaiter

__all__ = ["NO_MATCH", "NoMatch", "PollConfig", "PollingWaiter"]
