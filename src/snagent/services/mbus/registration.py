# src/snagent/services/mbus/registration.py
"""
Registration of the node with the control plane.

The node announces itself on the ``register`` channel right after the message
bus becomes ready and then every ``hb_interval`` seconds (kind of heart-beat).
On termination it sends a single ``deregister`` message and flushes.
"""

from __future__ import annotations

import asyncio
import logging
import threading
from typing import Any, Mapping, Optional

from snagent.config import const
from snagent.domain import DeregisterPayload, RegisterPayload, RegistrationConfig, RegistrationState
from snagent.ports import EventBus
from snagent.ports.mbus import MessageBus
from snagent.services.eventbus import emit
from snagent.services.mbus.errors import MbusError, QueueDeregister, QueueRegister, error_chain
from snagent.services.runtime.channel import SignalChannel
from snagent.services.runtime.worker import BackgroundWorker

_log = logging.getLogger("snagent.registration")


class Registration:
    def __init__(self, config: RegistrationConfig, bus: MessageBus, *, events: Optional[EventBus] = None) -> None:
        self.config = config
        self._bus = bus
        self._events = events
        # receive side: messages and termination
        self._signals = SignalChannel()
        self._state = RegistrationState.AWAITING_CONNECTION

    @property
    def state(self) -> RegistrationState:
        return self._state

    def fini(self) -> None:
        """Ask the loop to deregister and stop. Safe to call repeatedly from any thread."""
        if self._signals.close():
            _log.debug("termination of '%s' requested", self.config.node_id)

    def send(self, message: Any) -> None:
        self._signals.send(message)

    def _set_state(self, state: RegistrationState) -> None:
        self._state = state
        self._emit(f"mbus.registration.{state.value}", {})

    def _emit(self, type_: str, payload: Mapping[str, Any]) -> None:
        if self._events is not None:
            emit(self._events, type_, {"node_id": self.config.node_id, **payload}, "registration")

    async def run(self) -> None:
        """
        Wait for the message bus and emit periodic register messages.
        Runs until the sending side of the signal channel is closed.
        """
        self._set_state(RegistrationState.AWAITING_CONNECTION)
        if await self._wait_for_connection():
            _log.info("Registering '%s' and grpc server %s ...", self.config.node_id, self.config.grpc_endpoint)
            self._set_state(RegistrationState.ACTIVE)
            loop = asyncio.get_running_loop()
            while True:
                await self._register_logged()
                if not await self._wait_tick(loop.time() + self.config.hb_interval):
                    break
            _log.info("Terminating the message bus client")
        else:
            # deregister всё равно отправляется; без соединения это ошибка в логе
            _log.warning("Terminating before the message bus became ready")

        self._set_state(RegistrationState.TERMINATING)
        try:
            await self.deregister()
        except MbusError as e:
            _log.error("Deregistration failed: %s", error_chain(e))
        self._set_state(RegistrationState.TERMINATED)

    async def _wait_for_connection(self) -> bool:
        ready = asyncio.ensure_future(self._bus.wait_for_ready())
        closed = asyncio.ensure_future(self._wait_closed())
        done, _ = await asyncio.wait({ready, closed}, return_when=asyncio.FIRST_COMPLETED)
        if ready in done:
            closed.cancel()
            await asyncio.gather(closed, return_exceptions=True)
            ready.result()
            return True
        ready.cancel()
        await asyncio.gather(ready, return_exceptions=True)
        return False

    async def _wait_closed(self) -> None:
        while True:
            msg = await self._signals.recv()
            if msg is None:
                return
            self._on_message(msg)

    async def _wait_tick(self, deadline: float) -> bool:
        """True when the heartbeat timer fires, False when the channel is closed."""
        loop = asyncio.get_running_loop()
        while True:
            # закрытие важнее просроченного таймера
            if self._signals.closed:
                return False
            timeout = deadline - loop.time()
            if timeout <= 0:
                return True
            try:
                msg = await asyncio.wait_for(self._signals.recv(), timeout)
            except asyncio.TimeoutError:
                return True
            if msg is None:
                return False
            self._on_message(msg)

    def _on_message(self, msg: Any) -> None:
        _log.info("Messages have not been implemented yet, ignoring %r", msg)

    async def _register_logged(self) -> None:
        try:
            await self.register()
        except MbusError as e:
            _log.error("Registration failed: %s", error_chain(e))
            self._emit("mbus.registration.register.error", {"error": error_chain(e)})

    async def register(self) -> None:
        """Send a register message to the message bus."""
        payload = RegisterPayload(id=self.config.node_id, grpc_endpoint=self.config.grpc_endpoint)
        try:
            await self._bus.fire(const.REGISTER_CHANNEL, payload.to_bytes())
        except MbusError as e:
            raise QueueRegister() from e
        # сообщение только поставлено в очередь, доставка не гарантирована
        _log.debug("Registered '%s' and grpc server %s", self.config.node_id, self.config.grpc_endpoint)

    async def deregister(self) -> None:
        """Send a deregister message to the message bus and flush."""
        payload = DeregisterPayload(id=self.config.node_id)
        try:
            await self._bus.fire(const.DEREGISTER_CHANNEL, payload.to_bytes())
        except MbusError as e:
            raise QueueDeregister() from e
        try:
            await self._bus.flush()
        except MbusError as e:
            _log.error("Failed to explicitly flush: %s", error_chain(e))

        _log.info("Deregistered '%s' and grpc server %s", self.config.node_id, self.config.grpc_endpoint)
        self._emit("mbus.registration.deregistered", {})


class RegistrationSlot:
    """Holds the single :class:`Registration` of a node context."""

    def __init__(
        self,
        bus: MessageBus,
        *,
        events: Optional[EventBus] = None,
        hb_interval: Optional[float] = None,
    ) -> None:
        self._bus = bus
        self._events = events
        self._hb_interval = hb_interval
        self._lock = threading.Lock()
        self._reg: Optional[Registration] = None
        self._worker: Optional[BackgroundWorker] = None

    def init(self, node_id: str, grpc_endpoint: str) -> Registration:
        """Create the registration and start its loop; later calls return the existing one."""
        with self._lock:
            if self._reg is not None:
                _log.debug("registration already initialized for '%s'", self._reg.config.node_id)
                return self._reg
            config = RegistrationConfig.from_env(node_id, grpc_endpoint, hb_interval=self._hb_interval)
            reg = Registration(config, self._bus, events=self._events)
            self._reg = reg
            self._worker = BackgroundWorker("snagent-registration")
            self._worker.start(reg.run)
        return reg

    def get(self) -> Optional[Registration]:
        return self._reg

    def fini(self) -> None:
        reg = self._reg
        if reg is not None:
            reg.fini()

    def join(self, timeout: Optional[float] = None) -> bool:
        worker = self._worker
        return worker.join(timeout) if worker is not None else True
