# infrastructure/config/flow_settings.py
from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, Mapping, Optional

from dotenv import dotenv_values

# プロジェクトルートの .env
_env_path = Path(__file__).parent.parent.parent / ".env"

DEFAULT_BASE_URL = "https://localhost"
DEFAULT_RESOURCE_PATH = "/Home/About"


@dataclass(frozen=True)
class FlowSettings:
    """
    Settings for driving a flow against a relying party.

    Sources (later wins): defaults, .env file, process environment.
      OIDC_FLOW_BASE_URL       base URL of the relying party
      OIDC_FLOW_RESOURCE_PATH  protected resource that starts the flow
      OIDC_FLOW_TIMEOUT_SEC    per-request transport timeout
      OIDC_FLOW_USER_HINT      value of the X-Identity-Test-User-Hint header
      OIDC_FLOW_VERIFY_TLS     "false" to skip certificate checks
      OIDC_FLOW_LOG_LEVEL      loguru level
    """

    base_url: str = DEFAULT_BASE_URL
    resource_path: str = DEFAULT_RESOURCE_PATH
    timeout_sec: int = 20
    user_hint: Optional[str] = None
    verify_tls: bool = True
    log_level: str = "INFO"

    @property
    def resource_url(self) -> str:
        return self.base_url.rstrip("/") + "/" + self.resource_path.lstrip("/")

    @classmethod
    def from_env(cls, env_file: Optional[Path] = None) -> "FlowSettings":
        values: Dict[str, Optional[str]] = {}
        path = env_file or _env_path
        if path.exists():
            values.update(dotenv_values(path))
        values.update(os.environ)
        return cls.from_mapping(values)

    @classmethod
    def from_mapping(cls, values: Mapping[str, Optional[str]]) -> "FlowSettings":
        timeout_raw = values.get("OIDC_FLOW_TIMEOUT_SEC")
        try:
            timeout = int(timeout_raw) if timeout_raw else cls.timeout_sec
        except ValueError as e:
            raise ValueError(f"OIDC_FLOW_TIMEOUT_SEC must be an integer: {timeout_raw!r}") from e

        verify_raw = (values.get("OIDC_FLOW_VERIFY_TLS") or "true").strip().lower()
        return cls(
            base_url=values.get("OIDC_FLOW_BASE_URL") or DEFAULT_BASE_URL,
            resource_path=values.get("OIDC_FLOW_RESOURCE_PATH") or DEFAULT_RESOURCE_PATH,
            timeout_sec=timeout,
            user_hint=values.get("OIDC_FLOW_USER_HINT") or None,
            verify_tls=verify_raw not in ("0", "false", "no"),
            log_level=values.get("OIDC_FLOW_LOG_LEVEL") or "INFO",
        )
