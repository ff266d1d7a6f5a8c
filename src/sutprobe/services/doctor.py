from __future__ import annotations

import platform
import sys

import requests

from sutprobe.client import SessionClient
from sutprobe.config import Settings
from sutprobe.errors import SutProbeError


def run_doctor_checks(settings: Settings, http: requests.Session | None = None) -> list[dict[str, str]]:
    checks: list[dict[str, str]] = []

    checks.append(
        {
            "check": "python_version",
            "status": "ok" if sys.version_info >= (3, 10) else "warn",
            "detail": platform.python_version(),
        }
    )

    checks.append(
        {
            "check": "logs_dir",
            "status": "ok" if settings.logs_dir.exists() else "warn",
            "detail": str(settings.logs_dir),
        }
    )

    checks.append(
        {
            "check": "e2e_test_password",
            "status": "ok" if settings.e2e_test_password else "warn",
            "detail": "configured" if settings.e2e_test_password else "SUTPROBE_E2E_TEST_PASSWORD is not set",
        }
    )

    try:
        session = SessionClient(settings, http=http).init_session()
        checks.append(
            {
                "check": "xsrf_handshake",
                "status": "ok",
                "detail": f"{settings.main_site_origin} (token {session.xsrf_token[:6]}...)",
            }
        )
    except (SutProbeError, requests.RequestException) as exc:
        checks.append(
            {
                "check": "xsrf_handshake",
                "status": "warn",
                "detail": str(exc),
            }
        )

    return checks
