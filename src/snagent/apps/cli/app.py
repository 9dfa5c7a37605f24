# src/snagent/apps/cli/app.py
from __future__ import annotations

import functools
import os
import signal
import threading
import traceback
from dataclasses import asdict
from typing import Optional

from dotenv import load_dotenv, find_dotenv
import typer
from rich import print

# загружаем .env один раз (SNAGENT_* переменные)
load_dotenv(find_dotenv(usecwd=True))

from snagent.agent import lifecycle
from snagent.apps.bootstrap import init_ctx
from snagent.services.mbus.errors import MbusError, error_chain
from snagent.services.settings import Settings

app = typer.Typer(help="Storage node agent: registration with the control plane over the message bus")


def _run_safe(func):
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except MbusError as e:
            if os.getenv("SNAGENT_CLI_DEBUG") == "1":
                traceback.print_exc()
            typer.secho(error_chain(e), fg=typer.colors.RED, err=True)
            raise typer.Exit(code=1)

    return wrapper


def _settings(
    node: Optional[str] = None,
    grpc_endpoint: Optional[str] = None,
    mbus: Optional[str] = None,
    hb_interval: Optional[int] = None,
) -> Settings:
    # CLI-переопределения поверх .env/ENV
    return Settings.from_sources().with_overrides(
        node_name=node,
        grpc_endpoint=grpc_endpoint,
        mbus_endpoint=mbus,
        hb_interval=float(hb_interval) if hb_interval is not None else None,
    )


@app.command("run")
@_run_safe
def run(
    node: Optional[str] = typer.Option(None, "--node", help="Node name announced on the bus (default: hostname)"),
    grpc_endpoint: Optional[str] = typer.Option(None, "--grpc-endpoint", help="gRPC endpoint announced to the control plane"),
    mbus: Optional[str] = typer.Option(None, "--mbus", help="Message bus address, e.g. nats://127.0.0.1:4222"),
    hb_interval: Optional[int] = typer.Option(None, "--hb-interval", min=1, help="Heartbeat interval in seconds"),
):
    """Register the node and keep heart-beating until SIGINT/SIGTERM."""
    settings = _settings(node, grpc_endpoint, mbus, hb_interval)
    if not settings.mbus_endpoint:
        raise typer.BadParameter("message bus address is not configured (--mbus or SNAGENT_MBUS_ENDPOINT)")
    if not settings.grpc_endpoint:
        typer.secho("no gRPC endpoint configured, the node will not be registered", fg=typer.colors.YELLOW, err=True)

    ctx = init_ctx(settings)
    stopping = threading.Event()

    def _on_signal(signum, frame):
        stopping.set()

    signal.signal(signal.SIGINT, _on_signal)
    signal.signal(signal.SIGTERM, _on_signal)

    lifecycle.start(ctx)
    typer.echo(f"node '{settings.node_name}' started, message bus {settings.mbus_endpoint}")
    # ожидание с таймаутом, чтобы сигнал обрабатывался и на Windows
    while not stopping.wait(0.5):
        pass

    finished = lifecycle.stop(ctx)
    ctx.connections.close()
    typer.echo("stopped" if finished else "stopped (deregistration not confirmed)")


@app.command("config")
def show_config(
    node: Optional[str] = typer.Option(None, "--node"),
    grpc_endpoint: Optional[str] = typer.Option(None, "--grpc-endpoint"),
    mbus: Optional[str] = typer.Option(None, "--mbus"),
    hb_interval: Optional[int] = typer.Option(None, "--hb-interval", min=1),
):
    """Show the effective settings."""
    settings = _settings(node, grpc_endpoint, mbus, hb_interval)
    print(asdict(settings))
