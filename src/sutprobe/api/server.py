from __future__ import annotations

import copy
import logging
from dataclasses import dataclass, field
from typing import Any

from sutprobe.client import SessionClient
from sutprobe.config import Settings
from sutprobe.errors import ApiContractError


@dataclass(frozen=True, slots=True)
class SiteIdAddress:
    id: int | str
    pub_id: str | None = None
    origin: str | None = None
    site_id_origin: str | None = None
    raw: dict[str, Any] = field(default_factory=dict)

    @classmethod
    def from_json(cls, url: str, data: Any) -> SiteIdAddress:
        if not isinstance(data, dict) or not data.get("id"):
            raise ApiContractError(url, "id", data)
        return cls(
            id=data["id"],
            pub_id=data.get("pubId"),
            origin=data.get("origin"),
            site_id_origin=data.get("siteIdOrigin"),
            raw=data,
        )


class ServerApi:
    """Test-only endpoints for provisioning sites and poking the server's clock and caches."""

    def __init__(
        self,
        client: SessionClient,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.client = client
        self.settings = settings
        self.logger = logger or logging.getLogger(__name__)

    @property
    def origin(self) -> str:
        return self.settings.main_site_origin

    def import_real_site_data(self, site: dict[str, Any]) -> SiteIdAddress:
        # Goes to the endpoint that works in Prod mode too.
        url = f"{self.origin}/-/import-site-json?deleteOldSite=true"
        response = self.client.post(url, {**site, "isTestSiteOkDelete": True})
        return SiteIdAddress.from_json(url, response.json())

    def import_site_data(self, site: dict[str, Any]) -> SiteIdAddress:
        site = copy.deepcopy(site)
        meta = site.setdefault("meta", {})
        meta["nextPageId"] = 100
        meta["version"] = 1

        query = "?deleteOldSite=true" if self.settings.delete_old_site else ""
        url = f"{self.origin}/-/import-test-site-json{query}"
        response = self.client.post(url, {**site, "isTestSiteOkDelete": True})
        id_address = SiteIdAddress.from_json(url, response.json())
        self.logger.info("Imported site %s at %s", id_address.id, id_address.origin)
        return id_address

    def delete_old_test_site(self, local_hostname: str) -> None:
        self.client.post(f"{self.origin}/-/delete-test-site", {"localHostname": local_hostname})

    def skip_rate_limits(self, site_id: int | str) -> None:
        self.client.post(f"{self.origin}/-/skip-rate-limits", {"siteId": site_id})

    def play_time_seconds(self, seconds: float) -> None:
        self.client.post(f"{self.origin}/-/play-time", {"seconds": seconds})

    def play_time_minutes(self, minutes: float) -> None:
        self.play_time_seconds(minutes * 60)

    def play_time_hours(self, hours: float) -> None:
        self.play_time_seconds(hours * 3600)

    def play_time_days(self, days: float) -> None:
        self.play_time_seconds(days * 3600 * 24)

    def delete_redis_key(self, key: str) -> None:
        self.client.post(f"{self.origin}/-/delete-redis-key", {"key": key})

    def get_test_counters(self) -> dict[str, Any]:
        return self.client.get(f"{self.origin}/-/test-counters").json()
