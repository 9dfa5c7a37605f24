# src/snagent/domain/types.py
from __future__ import annotations
import os
from dataclasses import dataclass
from enum import Enum
from typing import Any, Mapping, Optional

from pydantic import BaseModel, ConfigDict, Field

from snagent.config import const


@dataclass(frozen=True, slots=True)
class Event:
    type: str
    payload: Mapping[str, Any]
    source: str
    ts: float


def parse_hb_interval(raw: Optional[str], default: float = const.HB_INTERVAL_DEFAULT_S) -> float:
    """Heartbeat interval from an integer number of seconds; anything else gives ``default``."""
    if raw is None:
        return default
    try:
        secs = int(raw)
    except ValueError:
        return default
    if secs <= 0:
        return default
    return float(secs)


@dataclass(frozen=True, slots=True)
class RegistrationConfig:
    # имя узла, на котором работает агент
    node_id: str
    # gRPC endpoint, который агент анонсирует
    grpc_endpoint: str
    # как часто отправляется register (секунды)
    hb_interval: float = const.HB_INTERVAL_DEFAULT_S

    @staticmethod
    def from_env(
        node_id: str,
        grpc_endpoint: str,
        environ: Optional[Mapping[str, str]] = None,
        *,
        hb_interval: Optional[float] = None,
    ) -> "RegistrationConfig":
        """
        Interval from ``hb_interval`` when it is positive, otherwise from
        SNAGENT_HB_INTERVAL, otherwise the default.
        """
        if hb_interval is not None and hb_interval > 0:
            interval = float(hb_interval)
        else:
            env = os.environ if environ is None else environ
            interval = parse_hb_interval(env.get(const.ENV_HB_INTERVAL))
        return RegistrationConfig(node_id=node_id, grpc_endpoint=grpc_endpoint, hb_interval=interval)


class RegistrationState(str, Enum):
    AWAITING_CONNECTION = "awaiting_connection"
    ACTIVE = "active"
    TERMINATING = "terminating"
    TERMINATED = "terminated"


class _Payload(BaseModel):
    model_config = ConfigDict(frozen=True, populate_by_name=True)

    def to_bytes(self) -> bytes:
        return self.model_dump_json(by_alias=True).encode("utf-8")


class RegisterPayload(_Payload):
    """Body of the ``register`` channel message."""

    id: str
    grpc_endpoint: str = Field(alias="grpcEndpoint")


class DeregisterPayload(_Payload):
    """Body of the ``deregister`` channel message."""

    id: str
