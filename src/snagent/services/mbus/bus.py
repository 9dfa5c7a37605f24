# src/snagent/services/mbus/bus.py
from __future__ import annotations

import asyncio
import logging
from typing import Any, Coroutine

from snagent.config import const
from snagent.ports.mbus import MessageBus
from snagent.services.mbus.connection_manager import ConnectionManager
from snagent.services.mbus.errors import FlushError, MbusError, NotStarted, PublishError

_log = logging.getLogger("snagent.mbus")


class TransportMessageBus(MessageBus):
    """MessageBus on top of the connection held by a :class:`ConnectionManager`."""

    def __init__(self, connections: ConnectionManager, *, poll_interval: float = const.READY_POLL_INTERVAL_S) -> None:
        self._connections = connections
        self._poll_interval = poll_interval

    async def _on_transport(self, coro: Coroutine[Any, Any, Any]) -> Any:
        # соединение живёт в loop воркера транспорта
        fut = self._connections.submit(coro)
        try:
            return await asyncio.wrap_future(fut)
        except asyncio.CancelledError:
            if not self._connections.closed:
                raise
            # воркер транспорта остановлен посреди операции
            raise ConnectionAbortedError("message bus transport was closed") from None

    async def fire(self, channel: str, payload: bytes) -> None:
        conn = self._connections.get()
        if conn is None:
            raise NotStarted()
        try:
            await self._on_transport(conn.publish(channel, payload))
        except MbusError:
            raise
        except Exception as e:
            raise PublishError(channel) from e

    async def flush(self) -> None:
        conn = self._connections.get()
        if conn is None:
            raise NotStarted()
        try:
            await self._on_transport(conn.flush())
        except MbusError:
            raise
        except Exception as e:
            raise FlushError() from e

    async def wait_for_ready(self) -> None:
        log_error = True
        while not self._connections.is_ready():
            if log_error:
                _log.warning("Message bus not ready, quietly retrying...")
                log_error = False
            await self._connections.wait_connected(self._poll_interval)
        _log.info("Successfully connected to the message bus server")

    def is_ready(self) -> bool:
        return self._connections.is_ready()
