from __future__ import annotations

import logging
from typing import Any
from urllib.parse import quote

from sutprobe.client import ApiKeyAuth, RequestOptions, SessionClient
from sutprobe.config import Settings
from sutprobe.errors import ApiContractError


class ApiV0:
    """Public API endpoints, authenticated with an API secret instead of cookies."""

    def __init__(
        self,
        client: SessionClient,
        settings: Settings,
        logger: logging.Logger | logging.LoggerAdapter | None = None,
    ):
        self.client = client
        self.settings = settings
        self.logger = logger or logging.getLogger(__name__)

    def _options(self, api_secret: str, api_requester_id: int | None, fail: bool) -> RequestOptions:
        auth = ApiKeyAuth(requester_id=api_requester_id or self.settings.sysbot_user_id, secret=api_secret)
        return RequestOptions(auth=auth, expect_failure=fail)

    def upsert_user_get_login_secret(
        self,
        *,
        origin: str,
        api_secret: str,
        external_user: dict[str, Any],
        api_requester_id: int | None = None,
        fail: bool = False,
    ) -> str:
        url = f"{origin}/-/v0/sso-upsert-user-generate-login-secret"
        response = self.client.post(url, external_user, self._options(api_secret, api_requester_id, fail))
        if fail:
            return response.body_text

        data = response.json()
        login_secret = data.get("loginSecret") if isinstance(data, dict) else None
        if not login_secret:
            raise ApiContractError(url, "loginSecret", data)
        self.logger.info(
            "Now you can try:\n    %s/-/v0/login-with-secret?oneTimeSecret=%s&thenGoTo=/",
            origin,
            login_secret,
        )
        return login_secret

    def upsert_simple(
        self,
        *,
        origin: str,
        api_secret: str,
        data: dict[str, Any],
        api_requester_id: int | None = None,
        fail: bool = False,
    ) -> Any:
        url = f"{origin}/-/v0/upsert-simple"
        response = self.client.post(url, data, self._options(api_secret, api_requester_id, fail))
        return response.body_text if fail else response.json()

    def list_users(
        self,
        *,
        origin: str,
        username_prefix: str,
        api_secret: str | None = None,
        api_requester_id: int | None = None,
    ) -> dict[str, Any]:
        url = f"{origin}/-/v0/list-users?usernamePrefix={quote(username_prefix)}"
        options = self._options(api_secret, api_requester_id, False) if api_secret else None
        data = self.client.get(url, options).json()
        if not isinstance(data, dict) or "users" not in data:
            raise ApiContractError(url, "users", data)
        return data
