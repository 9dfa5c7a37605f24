from __future__ import annotations
from typing import Any, Callable, Protocol

from snagent.domain import Event
from .mbus import Connection, Connector, MessageBus


class EventBus(Protocol):
    def subscribe(self, type_prefix: str, handler: Callable[[Event], Any]) -> None: ...
    def publish(self, event: Event) -> None: ...


__all__ = [
    "EventBus",
    "Connection",
    "Connector",
    "MessageBus",
]
