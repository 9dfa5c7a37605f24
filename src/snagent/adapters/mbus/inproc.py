from __future__ import annotations
import asyncio
import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from typing import Any, Callable, DefaultDict, Dict, List, Optional


@dataclass(frozen=True, slots=True)
class InprocMessage:
    channel: str
    data: bytes
    ts: float


class InprocBroker:
    """
    Брокер в памяти процесса (для тестов и локального запуска без NATS).
    Умеет имитировать недоступность: fail_first отклоняет первые N подключений,
    reachable=False отклоняет все.
    """

    _named: Dict[str, "InprocBroker"] = {}
    _named_lock = threading.Lock()

    def __init__(self, *, fail_first: int = 0) -> None:
        self._cond = threading.Condition()
        self._fail_remaining = fail_first
        self._messages: List[InprocMessage] = []
        self._subs: DefaultDict[str, List[Callable[[InprocMessage], Any]]] = defaultdict(list)
        self.reachable = True
        self.connect_attempts = 0
        self.publish_failures = 0
        self.flush_failures = 0
        # задержка publish, чтобы держать операцию «в полёте»
        self.publish_delay = 0.0

    @classmethod
    def named(cls, name: str) -> "InprocBroker":
        with cls._named_lock:
            broker = cls._named.get(name)
            if broker is None:
                broker = cls._named[name] = InprocBroker()
            return broker

    async def connect(self, address: str) -> "InprocConnection":
        with self._cond:
            self.connect_attempts += 1
            if self._fail_remaining > 0 or not self.reachable:
                self._fail_remaining = max(self._fail_remaining - 1, 0)
                raise ConnectionRefusedError(f"inproc broker {address} is unreachable")
        return InprocConnection(self)

    def subscribe(self, channel: str, handler: Callable[[InprocMessage], Any]) -> None:
        with self._cond:
            self._subs[channel].append(handler)

    def messages(self, channel: Optional[str] = None) -> List[InprocMessage]:
        with self._cond:
            return [m for m in self._messages if channel is None or m.channel == channel]

    def wait_for(self, count: int, channel: Optional[str] = None, timeout: float = 5.0) -> bool:
        """Block until at least ``count`` messages (on ``channel``) have been published."""

        def _enough() -> bool:
            return sum(1 for m in self._messages if channel is None or m.channel == channel) >= count

        with self._cond:
            return self._cond.wait_for(_enough, timeout)

    def _take_failure(self, attr: str) -> bool:
        with self._cond:
            left = getattr(self, attr)
            if left > 0:
                setattr(self, attr, left - 1)
                return True
            return False

    def _deliver(self, channel: str, data: bytes) -> None:
        msg = InprocMessage(channel=channel, data=bytes(data), ts=time.monotonic())
        with self._cond:
            self._messages.append(msg)
            handlers = list(self._subs.get(channel, []))
            self._cond.notify_all()
        for h in handlers:
            h(msg)


class InprocConnection:
    def __init__(self, broker: InprocBroker) -> None:
        self._broker = broker
        self._closed = False

    @property
    def is_closed(self) -> bool:
        return self._closed

    async def publish(self, subject: str, payload: bytes = b"") -> None:
        if self._closed:
            raise ConnectionResetError("inproc connection is closed")
        if self._broker.publish_delay > 0:
            await asyncio.sleep(self._broker.publish_delay)
        if self._broker._take_failure("publish_failures"):
            raise BrokenPipeError(f"publish on '{subject}' rejected")
        self._broker._deliver(subject, payload)

    async def flush(self) -> None:
        if self._closed:
            raise ConnectionResetError("inproc connection is closed")
        if self._broker._take_failure("flush_failures"):
            raise BrokenPipeError("flush rejected")

    async def close(self) -> None:
        self._closed = True
