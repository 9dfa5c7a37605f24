# src/snagent/services/runtime/worker.py
from __future__ import annotations

import asyncio
import concurrent.futures
import logging
import threading
from typing import Any, Awaitable, Callable, Coroutine, Optional

_log = logging.getLogger("snagent.runtime")


class BackgroundWorker:
    """
    Выделенный поток со своим event loop:
      - start(main) запускает корутину main() в этом loop
      - keep_alive=True оставляет loop работать после main() (для submit())
      - submit(coro) планирует корутину в loop из любого потока
    """

    def __init__(self, name: str) -> None:
        self.name = name
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._thread: Optional[threading.Thread] = None
        self._main: Optional[asyncio.Task] = None
        self._keep_alive = False
        self._ready = threading.Event()
        self.done: concurrent.futures.Future = concurrent.futures.Future()

    @property
    def loop(self) -> Optional[asyncio.AbstractEventLoop]:
        return self._loop

    def start(self, main: Callable[[], Awaitable[Any]], *, keep_alive: bool = False) -> concurrent.futures.Future:
        if self._thread is not None:
            raise RuntimeError(f"worker {self.name} already started")
        self._keep_alive = keep_alive
        self._thread = threading.Thread(target=self._run, args=(main,), name=self.name, daemon=True)
        self._thread.start()
        self._ready.wait()
        return self.done

    def is_alive(self) -> bool:
        return self._thread is not None and self._thread.is_alive()

    def submit(self, coro: Coroutine[Any, Any, Any]) -> concurrent.futures.Future:
        loop = self._loop
        if loop is None or loop.is_closed() or not self.is_alive():
            coro.close()
            raise RuntimeError(f"worker {self.name} is not running")
        return asyncio.run_coroutine_threadsafe(coro, loop)

    def stop(self) -> None:
        loop = self._loop
        if loop is None or loop.is_closed():
            return
        try:
            loop.call_soon_threadsafe(self._stop_in_loop)
        except RuntimeError:
            # loop закрылся между проверкой и вызовом
            pass

    def join(self, timeout: Optional[float] = None) -> bool:
        if self._thread is None:
            return True
        self._thread.join(timeout)
        return not self._thread.is_alive()

    # ---------- внутренняя логика ----------

    def _stop_in_loop(self) -> None:
        if self._main is not None and not self._main.done():
            self._main.cancel()
        if self._keep_alive:
            assert self._loop is not None
            self._loop.stop()

    def _run(self, main: Callable[[], Awaitable[Any]]) -> None:
        loop = asyncio.new_event_loop()
        asyncio.set_event_loop(loop)
        self._loop = loop
        try:
            self._main = loop.create_task(main(), name=self.name)
            self._main.add_done_callback(self._settle)
            self._ready.set()
            if self._keep_alive:
                loop.run_forever()
            else:
                loop.run_until_complete(asyncio.wait({self._main}))
        finally:
            self._ready.set()
            self._shutdown(loop)

    def _settle(self, task: asyncio.Task) -> None:
        if self.done.done():
            return
        if task.cancelled():
            self.done.cancel()
            return
        exc = task.exception()
        if exc is not None:
            _log.error("worker %s failed: %r", self.name, exc)
            self.done.set_exception(exc)
        else:
            self.done.set_result(task.result())

    def _shutdown(self, loop: asyncio.AbstractEventLoop) -> None:
        try:
            pending = [t for t in asyncio.all_tasks(loop) if not t.done()]
            for t in pending:
                t.cancel()
            if pending:
                loop.run_until_complete(asyncio.gather(*pending, return_exceptions=True))
            loop.run_until_complete(loop.shutdown_asyncgens())
        finally:
            loop.close()
            asyncio.set_event_loop(None)
            _log.debug("worker %s stopped", self.name)
