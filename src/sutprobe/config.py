from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path

from dotenv import load_dotenv

from sutprobe.polling import PollConfig

DEFAULT_ORIGIN = "http://localhost"
DEFAULT_SYSBOT_USER_ID = 2


def _env_bool(name: str, default: bool = False) -> bool:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    return raw.strip().lower() in {"1", "true", "yes", "on"}


@dataclass(slots=True)
class Settings:
    root_dir: Path
    logs_dir: Path
    main_site_origin: str
    e2e_test_password: str | None
    waitfor_timeout_sec: float = 20.0
    poll_interval_ms: int = 500
    http_timeout_sec: float = 30.0
    log_level: str = "info"
    delete_old_site: bool = False
    sysbot_user_id: int = DEFAULT_SYSBOT_USER_ID

    @classmethod
    def load(cls, base_dir: Path | None = None) -> Settings:
        load_dotenv(override=False)

        root_env = os.getenv("SUTPROBE_HOME")
        root_dir = Path(root_env).expanduser().resolve() if root_env else (base_dir or Path.cwd()).resolve()
        logs_dir = Path(os.getenv("SUTPROBE_LOG_DIR", root_dir / "logs")).expanduser().resolve()

        origin = os.getenv("SUTPROBE_ORIGIN", DEFAULT_ORIGIN).rstrip("/")
        password = os.getenv("SUTPROBE_E2E_TEST_PASSWORD") or None

        return cls(
            root_dir=root_dir,
            logs_dir=logs_dir,
            main_site_origin=origin,
            e2e_test_password=password,
            waitfor_timeout_sec=float(os.getenv("SUTPROBE_WAITFOR_TIMEOUT_SEC", "20")),
            poll_interval_ms=int(os.getenv("SUTPROBE_POLL_INTERVAL_MS", "500")),
            http_timeout_sec=float(os.getenv("SUTPROBE_HTTP_TIMEOUT_SEC", "30")),
            log_level=os.getenv("SUTPROBE_LOG_LEVEL", "info").strip().lower(),
            delete_old_site=_env_bool("SUTPROBE_DELETE_OLD_SITE"),
            sysbot_user_id=int(os.getenv("SUTPROBE_SYSBOT_USER_ID", str(DEFAULT_SYSBOT_USER_ID))),
        )

    @property
    def verbose(self) -> bool:
        return self.log_level == "verbose"

    def poll_config(self) -> PollConfig:
        return PollConfig(timeout_sec=self.waitfor_timeout_sec, interval_ms=self.poll_interval_ms)

    def ensure_directories(self) -> None:
        for path in [self.root_dir, self.logs_dir]:
            path.mkdir(parents=True, exist_ok=True)
