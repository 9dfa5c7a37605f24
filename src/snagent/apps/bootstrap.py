# src/snagent/apps/bootstrap.py
from __future__ import annotations
from typing import Optional
from threading import RLock

from snagent.adapters.mbus import connector_for
from snagent.ports.mbus import Connector
from snagent.services.settings import Settings
from snagent.services.agent_context import NodeContext, set_ctx
from snagent.services.eventbus import LocalEventBus
from snagent.services.logging import setup_logging, attach_event_logger
from snagent.services.mbus import ConnectionManager, RegistrationSlot, TransportMessageBus


class _CtxHolder:
    _ctx: Optional[NodeContext] = None
    _lock = RLock()

    @classmethod
    def get(cls) -> NodeContext:
        with cls._lock:
            if cls._ctx is None:
                cls._ctx = cls._build(Settings.from_sources())
                # публикуем в ContextVar
                set_ctx(cls._ctx)
            return cls._ctx

    @classmethod
    def init(cls, settings: Optional[Settings] = None, *, connector: Optional[Connector] = None) -> NodeContext:
        with cls._lock:
            if cls._ctx is not None:
                # воркеры старого контекста не должны пережить замену
                cls._ctx.close()
            cls._ctx = cls._build(settings or Settings.from_sources(), connector=connector)
            set_ctx(cls._ctx)
            return cls._ctx

    @classmethod
    def reset(cls) -> None:
        with cls._lock:
            cls._ctx = None

    @staticmethod
    def _build(settings: Settings, *, connector: Optional[Connector] = None) -> NodeContext:
        events = LocalEventBus()
        root_logger = setup_logging(settings.log_level, settings.log_file)
        attach_event_logger(events, root_logger.getChild("events"))

        if connector is None:
            connector = connector_for(settings.mbus_endpoint or "", name=settings.node_name)
        connections = ConnectionManager(connector)
        mbus = TransportMessageBus(connections)
        registration = RegistrationSlot(mbus, events=events, hb_interval=settings.hb_interval)
        return NodeContext(
            settings=settings,
            events=events,
            connections=connections,
            mbus=mbus,
            registration=registration,
        )


def init_ctx(settings: Optional[Settings] = None, *, connector: Optional[Connector] = None) -> NodeContext:
    return _CtxHolder.init(settings, connector=connector)


def get_ctx() -> NodeContext:
    return _CtxHolder.get()


def reset_ctx() -> None:
    _CtxHolder.reset()
