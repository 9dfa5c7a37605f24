from __future__ import annotations
import logging
from typing import Optional

import nats

from snagent.config import const
from snagent.ports.mbus import Connection
from snagent.services.mbus.errors import ConnectFailed, error_chain

_log = logging.getLogger("snagent.mbus.nats")


async def nats_connect(
    address: str,
    *,
    name: Optional[str] = None,
    connect_timeout: float = 2.0,
    retry_interval: float = const.CONNECT_RETRY_INTERVAL_S,
) -> Connection:
    """
    Open a NATS session.

    nats-py retries the initial connect itself, so the cadence is handed to
    it: a fixed ``retry_interval`` between attempts and no attempt limit.
    The first failure is logged once at WARNING, the rest at DEBUG. Once
    connected, the client handles reconnections too.
    """
    state = {"connected": False, "warned": False}

    async def _error(e: Exception) -> None:
        if state["connected"]:
            _log.warning("nats error: %s", e)
        elif not state["warned"]:
            state["warned"] = True
            err = ConnectFailed(address)
            err.__cause__ = e
            _log.warning("%s. Quietly retrying...", error_chain(err))
        else:
            _log.debug("nats connect attempt failed: %r", e)

    async def _disconnected() -> None:
        _log.warning("Disconnected from the nats server %s", address)

    async def _reconnected() -> None:
        _log.info("Reconnected to the nats server %s", address)

    nc = await nats.connect(
        servers=[address],
        name=name,
        connect_timeout=connect_timeout,
        allow_reconnect=True,
        reconnect_time_wait=retry_interval,
        max_reconnect_attempts=-1,
        error_cb=_error,
        disconnected_cb=_disconnected,
        reconnected_cb=_reconnected,
    )
    state["connected"] = True
    return nc
