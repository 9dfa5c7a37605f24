from __future__ import annotations
from typing import Awaitable, Callable, Protocol


class Connection(Protocol):
    """Live pub/sub transport session (e.g. ``nats.aio.client.Client``)."""

    async def publish(self, subject: str, payload: bytes = b"") -> None: ...
    async def flush(self) -> None: ...
    async def close(self) -> None: ...


# address -> established session; raises on failure
Connector = Callable[[str], Awaitable[Connection]]


class MessageBus(Protocol):
    async def fire(self, channel: str, payload: bytes) -> None:
        """Fire and forget: success means queued by the local transport."""
        ...

    async def flush(self) -> None: ...

    async def wait_for_ready(self) -> None: ...

    def is_ready(self) -> bool: ...
