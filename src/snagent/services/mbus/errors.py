"""Error hierarchy of the control-plane message bus client.

Errors here are not meant to be parsed by machines: causes are chained with
``raise ... from`` and :func:`error_chain` unfolds them into a log line.
"""

from __future__ import annotations

from typing import Optional


class MbusError(RuntimeError):
    """Base class for all message bus errors."""


class ConnectFailed(MbusError):
    """A single attempt to connect to the broker failed."""

    def __init__(self, server: str) -> None:
        self.server = server
        super().__init__(f"Failed to connect to the message bus server {server}")


class NotStarted(MbusError):
    """The bus is used before a connection has been established."""

    def __init__(self) -> None:
        super().__init__("Cannot issue requests if message bus hasn't been started")


class PublishError(MbusError):
    def __init__(self, channel: str) -> None:
        self.channel = channel
        super().__init__(f"Failed to publish on '{channel}'")


class FlushError(MbusError):
    def __init__(self) -> None:
        super().__init__("Failed to flush the message bus")


class QueueRegister(MbusError):
    def __init__(self) -> None:
        super().__init__("Failed to queue register request")


class QueueDeregister(MbusError):
    def __init__(self) -> None:
        super().__init__("Failed to queue deregister request")


def error_chain(err: BaseException) -> str:
    """Unfold ``err`` and its causes into one line, outermost first."""
    parts = []
    seen = set()
    cur: Optional[BaseException] = err
    while cur is not None and id(cur) not in seen:
        seen.add(id(cur))
        parts.append(str(cur) or cur.__class__.__name__)
        cur = cur.__cause__ or cur.__context__
    return ": ".join(parts)


__all__ = [
    "MbusError",
    "ConnectFailed",
    "NotStarted",
    "PublishError",
    "FlushError",
    "QueueRegister",
    "QueueDeregister",
    "error_chain",
]
