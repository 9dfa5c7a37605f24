# tests/conftest.py
from __future__ import annotations
import asyncio
import logging
import time

import pytest

from snagent.adapters.mbus import InprocBroker
from snagent.apps.bootstrap import init_ctx, reset_ctx
from snagent.config import const
from snagent.services.agent_context import clear_ctx
from snagent.services.settings import Settings

_ENV_KEYS = (
    const.ENV_NODE_NAME,
    const.ENV_MBUS_ENDPOINT,
    const.ENV_GRPC_ENDPOINT,
    const.ENV_HB_INTERVAL,
    const.ENV_SHUTDOWN_GRACE,
    const.ENV_LOG_LEVEL,
    const.ENV_LOG_FILE,
)


@pytest.fixture
def broker() -> InprocBroker:
    """Брокер в памяти, к которому подключается контекст теста."""
    return InprocBroker()


# ---------- автofixture: поднимаем NodeContext для каждого теста ----------
@pytest.fixture(autouse=True)
def _autocontext(tmp_path, monkeypatch, broker):
    for key in _ENV_KEYS:
        monkeypatch.delenv(key, raising=False)
    monkeypatch.chdir(tmp_path)

    settings = Settings(
        node_name="node-a",
        mbus_endpoint="inproc://test",
        grpc_endpoint="10.0.0.1:10124",
        shutdown_grace=2.0,
        log_file=str(tmp_path / "logs" / "snagent.log"),
    )
    ctx = init_ctx(settings, connector=broker.connect)
    try:
        yield ctx
    finally:
        ctx.close()
        clear_ctx()
        reset_ctx()


@pytest.fixture
def ctx(_autocontext):
    return _autocontext


@pytest.fixture
def mbus_log(caplog):
    """caplog для логгера snagent (у него propagate=False)."""
    logger = logging.getLogger("snagent")
    logger.addHandler(caplog.handler)
    caplog.set_level(logging.DEBUG, logger="snagent")
    try:
        yield caplog
    finally:
        logger.removeHandler(caplog.handler)


@pytest.fixture
def wait_until():
    def _wait(predicate, timeout: float = 2.0, step: float = 0.01) -> bool:
        deadline = time.monotonic() + timeout
        while time.monotonic() < deadline:
            if predicate():
                return True
            time.sleep(step)
        return predicate()

    return _wait


@pytest.fixture
def event_loop():
    """Локальный event loop на тест (совместимо без pytest-asyncio)."""
    loop = asyncio.new_event_loop()
    try:
        yield loop
    finally:
        loop.close()
