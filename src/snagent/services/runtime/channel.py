from __future__ import annotations

import asyncio
import threading
from collections import deque
from typing import Any, Deque, Optional

_CLOSED = object()


class ChannelClosed(RuntimeError):
    pass


class SignalChannel:
    """
    One-way channel between threads: any thread sends or closes, a single
    asyncio consumer receives. ``recv()`` returns ``None`` once closed.
    Items sent before the consumer's loop is known are buffered.
    """

    def __init__(self) -> None:
        self._lock = threading.Lock()
        self._closed = False
        self._backlog: Deque[Any] = deque()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._queue: Optional[asyncio.Queue] = None

    @property
    def closed(self) -> bool:
        return self._closed

    def send(self, message: Any) -> None:
        with self._lock:
            if self._closed:
                raise ChannelClosed("channel is closed")
            self._push(message)

    def close(self) -> bool:
        """Close the sending side. Only the first call returns True."""
        with self._lock:
            if self._closed:
                return False
            self._closed = True
            self._push(_CLOSED)
            return True

    def _push(self, item: Any) -> None:
        if self._queue is None or self._loop is None:
            self._backlog.append(item)
            return
        try:
            self._loop.call_soon_threadsafe(self._queue.put_nowait, item)
        except RuntimeError:
            # loop получателя уже закрыт, слушать некому
            pass

    def _bind(self) -> asyncio.Queue:
        loop = asyncio.get_running_loop()
        with self._lock:
            if self._queue is None:
                self._loop = loop
                self._queue = asyncio.Queue()
                while self._backlog:
                    self._queue.put_nowait(self._backlog.popleft())
            elif self._loop is not loop:
                raise RuntimeError("SignalChannel is bound to another event loop")
            return self._queue

    async def recv(self) -> Any:
        queue = self._bind()
        item = await queue.get()
        if item is _CLOSED:
            # закрытие видят и последующие recv()
            queue.put_nowait(_CLOSED)
            return None
        return item
