# src/snagent/services/settings.py
from __future__ import annotations
from dataclasses import dataclass, replace
import os
import socket
from typing import Dict, Optional

from dotenv import dotenv_values

from snagent.config import const
from snagent.domain import parse_hb_interval


def _parse_float(raw: Optional[str], default: float) -> float:
    try:
        value = float(raw) if raw else default
    except ValueError:
        return default
    return value if value >= 0 else default


@dataclass(frozen=True, slots=True)
class Settings:
    node_name: str
    mbus_endpoint: Optional[str] = None
    grpc_endpoint: Optional[str] = None
    hb_interval: float = const.HB_INTERVAL_DEFAULT_S
    shutdown_grace: float = const.SHUTDOWN_GRACE_DEFAULT_S
    log_level: str = "INFO"
    log_file: Optional[str] = None

    @property
    def mbus_enabled(self) -> bool:
        return bool(self.mbus_endpoint)

    @property
    def registration_enabled(self) -> bool:
        return bool(self.mbus_endpoint and self.grpc_endpoint)

    @staticmethod
    def from_sources(env_file: Optional[str] = ".env") -> "Settings":
        env_file_vars: Dict[str, Optional[str]] = dotenv_values(env_file) if env_file and os.path.exists(env_file) else {}

        def pick_env(key: str, default: Optional[str] = None) -> Optional[str]:
            return os.environ.get(key) or env_file_vars.get(key) or default

        return Settings(
            node_name=pick_env(const.ENV_NODE_NAME) or socket.gethostname(),
            mbus_endpoint=pick_env(const.ENV_MBUS_ENDPOINT),
            grpc_endpoint=pick_env(const.ENV_GRPC_ENDPOINT),
            hb_interval=parse_hb_interval(pick_env(const.ENV_HB_INTERVAL)),
            shutdown_grace=_parse_float(pick_env(const.ENV_SHUTDOWN_GRACE), const.SHUTDOWN_GRACE_DEFAULT_S),
            log_level=(pick_env(const.ENV_LOG_LEVEL) or "INFO").upper(),
            log_file=pick_env(const.ENV_LOG_FILE),
        )

    def with_overrides(self, **kw) -> "Settings":
        # None означает «не переопределять»
        safe = {k: v for k, v in kw.items() if v is not None}
        return replace(self, **safe)
