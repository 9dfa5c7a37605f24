"""
Entry points for the host plugin framework.

``start`` is called once during host initialization and ``stop`` once during
host shutdown. Neither blocks on the network and neither raises because of
message bus failures.
"""

from __future__ import annotations
import logging
from typing import Optional

from snagent.services.agent_context import NodeContext, get_ctx
from snagent.services.eventbus import emit

_log = logging.getLogger("snagent.lifecycle")


def start(ctx: Optional[NodeContext] = None) -> None:
    ctx = ctx or get_ctx()
    s = ctx.settings
    _log.debug("mbus subsystem init")
    if s.mbus_endpoint:
        ctx.connections.init(s.mbus_endpoint)
    if s.registration_enabled and s.grpc_endpoint:
        ctx.registration.init(s.node_name, s.grpc_endpoint)
    emit(
        ctx.events,
        "sys.mbus.started",
        {"mbus": s.mbus_endpoint, "node": s.node_name, "grpc": s.grpc_endpoint},
        "lifecycle",
    )


def stop(ctx: Optional[NodeContext] = None) -> bool:
    """Request deregistration and wait up to ``shutdown_grace`` seconds. True if it finished."""
    ctx = ctx or get_ctx()
    s = ctx.settings
    _log.debug("mbus subsystem fini")
    if not s.registration_enabled:
        return True
    ctx.registration.fini()
    finished = ctx.registration.join(s.shutdown_grace)
    if not finished:
        _log.warning("deregistration did not finish within %.1fs", s.shutdown_grace)
    emit(ctx.events, "sys.mbus.stopped", {"deregistered": finished}, "lifecycle")
    return finished
