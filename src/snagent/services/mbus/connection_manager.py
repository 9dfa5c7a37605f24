# src/snagent/services/mbus/connection_manager.py
from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Coroutine, List, Optional, Tuple

from snagent.config import const
from snagent.ports.mbus import Connection, Connector
from snagent.services.mbus.errors import ConnectFailed, NotStarted, error_chain
from snagent.services.runtime.worker import BackgroundWorker

_log = logging.getLogger("snagent.mbus")


class ConnectionManager:
    """
    Owns the single broker connection of the process.

    ``init`` connects in the background (retrying forever) and publishes the
    connection into a write-once slot. The worker loop keeps running after
    that: the connection belongs to it and every publish is marshalled onto
    it through :meth:`submit`.
    """

    def __init__(self, connector: Connector, *, retry_interval: float = const.CONNECT_RETRY_INTERVAL_S) -> None:
        self._connector = connector
        self._retry_interval = retry_interval
        self._lock = threading.Lock()
        self._conn: Optional[Connection] = None
        self._address: Optional[str] = None
        self._worker: Optional[BackgroundWorker] = None
        self._closed = False
        # ожидающие соединения из других loop-ов
        self._waiters: List[Tuple[asyncio.AbstractEventLoop, asyncio.Event]] = []

    @property
    def address(self) -> Optional[str]:
        return self._address

    @property
    def closed(self) -> bool:
        return self._closed

    async def connect(self, address: str) -> Connection:
        _log.info("Connecting to the message bus server %s...", address)
        # повторяем до успеха; после подключения переподключением занимается транспорт
        log_error = True
        while True:
            try:
                conn = await self._connector(address)
            except Exception as e:
                if log_error:
                    err = ConnectFailed(address)
                    err.__cause__ = e
                    _log.warning("%s. Quietly retrying...", error_chain(err))
                    log_error = False
                await asyncio.sleep(self._retry_interval)
                continue
            _log.info("Successfully connected to the message bus server %s", address)
            return conn

    def init(self, address: str) -> bool:
        """Start connecting in the background. Returns False if already initialized."""
        with self._lock:
            if self._worker is not None:
                _log.debug("message bus already initialized for %s", self._address)
                return False
            self._address = address
            self._worker = BackgroundWorker("snagent-mbus")

        async def _establish() -> None:
            conn = await self.connect(address)
            with self._lock:
                if self._conn is None:
                    self._conn = conn
                waiters, self._waiters = self._waiters, []
            for loop, event in waiters:
                try:
                    loop.call_soon_threadsafe(event.set)
                except RuntimeError:
                    # loop ожидающего уже закрыт
                    pass

        self._worker.start(_establish, keep_alive=True)
        return True

    def get(self) -> Optional[Connection]:
        return self._conn

    def is_ready(self) -> bool:
        return self._conn is not None

    async def wait_connected(self, timeout: float) -> bool:
        """Wait up to ``timeout`` seconds for the connection; wakes as soon as it is published."""
        loop = asyncio.get_running_loop()
        event = asyncio.Event()
        entry = (loop, event)
        with self._lock:
            if self._conn is not None:
                return True
            self._waiters.append(entry)
        try:
            await asyncio.wait_for(event.wait(), timeout)
        except asyncio.TimeoutError:
            pass
        finally:
            with self._lock:
                if entry in self._waiters:
                    self._waiters.remove(entry)
        return self._conn is not None

    def submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        worker = self._worker
        if worker is None:
            coro.close()
            raise NotStarted()
        return worker.submit(coro)

    def close(self, timeout: float = 2.0) -> None:
        worker = self._worker
        if worker is None:
            return
        self._closed = True
        conn = self._conn
        if conn is not None and worker.is_alive():
            try:
                worker.submit(conn.close()).result(timeout)
            except Exception as e:
                _log.warning("Failed to close the message bus connection: %s", error_chain(e))
        worker.stop()
        if not worker.join(timeout):
            _log.warning("message bus worker did not stop within %.1fs", timeout)
