from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

import requests

from sutprobe.api import ApiV0, ServerApi
from sutprobe.client import SessionClient
from sutprobe.config import Settings
from sutprobe.emails import EmailMatcher
from sutprobe.polling import PollingWaiter


@dataclass(slots=True)
class ServerHarness:
    """Everything one browser driver needs to talk to the server. One per driver, never shared."""

    settings: Settings
    client: SessionClient
    waiter: PollingWaiter
    emails: EmailMatcher
    server: ServerApi
    api_v0: ApiV0

    @classmethod
    def create(
        cls,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
        request_logger: logging.Logger | logging.LoggerAdapter | None = None,
        http: requests.Session | None = None,
        sleep: Callable[[float], None] = time.sleep,
        clock: Callable[[], float] = time.monotonic,
        init_session: bool = True,
    ) -> ServerHarness:
        client = SessionClient(settings, http=http, logger=request_logger)
        if init_session:
            client.init_session()
        waiter = PollingWaiter(settings.poll_config(), sleep=sleep, clock=clock, logger=logger)
        return cls(
            settings=settings,
            client=client,
            waiter=waiter,
            emails=EmailMatcher(client, settings.main_site_origin, waiter, logger=logger),
            server=ServerApi(client, settings, logger=logger),
            api_v0=ApiV0(client, settings, logger=logger),
        )
