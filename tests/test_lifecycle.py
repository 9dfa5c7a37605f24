from __future__ import annotations
import json
import time

from snagent.agent import lifecycle
from snagent.apps.bootstrap import init_ctx
from snagent.services.settings import Settings


def test_register_heartbeat_and_deregister(ctx, broker):
    t0 = time.monotonic()
    lifecycle.start(ctx)

    assert broker.wait_for(1, "register", timeout=3)
    first = broker.messages("register")[0]
    assert first.ts - t0 < 0.1
    assert json.loads(first.data) == {"id": "node-a", "grpcEndpoint": "10.0.0.1:10124"}

    assert broker.wait_for(2, "register", timeout=4)
    second = broker.messages("register")[1]
    assert 1.8 <= second.ts - first.ts <= 2.6

    assert lifecycle.stop(ctx) is True
    assert [json.loads(m.data) for m in broker.messages("deregister")] == [{"id": "node-a"}]

    total = len(broker.messages())
    time.sleep(0.3)
    assert len(broker.messages()) == total
    assert broker.messages()[-1].channel == "deregister"


def test_no_grpc_endpoint_means_no_registration(broker, tmp_path):
    settings = Settings(node_name="node-b", mbus_endpoint="inproc://test", log_file=str(tmp_path / "b.log"))
    ctx = init_ctx(settings, connector=broker.connect)
    try:
        lifecycle.start(ctx)
        assert broker.wait_for(1, timeout=0.8) is False
        assert ctx.registration.get() is None
        # соединение всё равно устанавливается
        assert ctx.connections.address == "inproc://test"
        assert lifecycle.stop(ctx) is True
    finally:
        ctx.close()


def test_double_start_keeps_single_registration(ctx, broker):
    lifecycle.start(ctx)
    reg = ctx.registration.get()
    lifecycle.start(ctx)

    assert ctx.registration.get() is reg
    assert broker.wait_for(1, "register", timeout=3)
    assert broker.connect_attempts == 1
    assert lifecycle.stop(ctx) is True
    assert len(broker.messages("deregister")) == 1


def test_stop_before_start_is_harmless(ctx, broker):
    assert lifecycle.stop(ctx) is True
    assert broker.messages() == []


def test_lifecycle_events(ctx):
    seen = []
    ctx.events.subscribe("sys.mbus.", lambda ev: seen.append((ev.type, dict(ev.payload))))

    lifecycle.start(ctx)
    lifecycle.stop(ctx)

    assert seen[0] == ("sys.mbus.started", {"mbus": "inproc://test", "node": "node-a", "grpc": "10.0.0.1:10124"})
    assert seen[-1] == ("sys.mbus.stopped", {"deregistered": True})


def test_zero_interval_setting_still_deregisters(broker, tmp_path):
    settings = Settings(
        node_name="node-a",
        mbus_endpoint="inproc://test",
        grpc_endpoint="10.0.0.1:10124",
        hb_interval=0.0,
        shutdown_grace=2.0,
        log_file=str(tmp_path / "zero.log"),
    )
    ctx = init_ctx(settings, connector=broker.connect)
    try:
        lifecycle.start(ctx)
        assert broker.wait_for(1, "register", timeout=3)
        assert ctx.registration.get().config.hb_interval == 2.0

        assert lifecycle.stop(ctx) is True
        assert len(broker.messages("register")) == 1
        assert [json.loads(m.data) for m in broker.messages("deregister")] == [{"id": "node-a"}]
    finally:
        ctx.close()
