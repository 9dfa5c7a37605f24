# src/snagent/services/agent_context.py
from __future__ import annotations
from contextlib import contextmanager
from contextvars import ContextVar
from dataclasses import dataclass
from typing import Optional

from snagent.services.settings import Settings
from snagent.ports import EventBus
from snagent.ports.mbus import MessageBus
from snagent.services.mbus.connection_manager import ConnectionManager
from snagent.services.mbus.registration import RegistrationSlot

_CTX: ContextVar[Optional["NodeContext"]] = ContextVar("snagent_node_ctx", default=None)


@dataclass(slots=True)
class NodeContext:
    """Everything the registration subsystem owns; one per process."""

    settings: Settings
    events: EventBus
    connections: ConnectionManager
    mbus: MessageBus
    registration: RegistrationSlot

    def close(self, timeout: float = 2.0) -> None:
        """Stop the background workers (registration first, then the transport)."""
        self.registration.fini()
        self.registration.join(timeout)
        self.connections.close(timeout)


def set_ctx(ctx: NodeContext) -> None:
    """Устанавливает текущий NodeContext (делает доступным через get_ctx)."""
    _CTX.set(ctx)


def get_ctx() -> NodeContext:
    ctx = _CTX.get()
    if ctx is None:
        raise RuntimeError("NodeContext is not initialized. Call set_ctx(...) during app bootstrap.")
    return ctx


def clear_ctx() -> None:
    _CTX.set(None)


@contextmanager
def use_ctx(ctx: NodeContext):
    """Временная подмена контекста (удобно в тестах)."""
    token = _CTX.set(ctx)
    try:
        yield ctx
    finally:
        _CTX.reset(token)
