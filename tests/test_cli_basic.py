# tests/test_cli_basic.py
from typer.testing import CliRunner

from snagent.apps.cli.app import app


def test_cli_help():
    r = CliRunner().invoke(app, ["--help"])
    assert r.exit_code == 0
    assert "run" in r.stdout and "config" in r.stdout


def test_config_shows_overrides():
    r = CliRunner().invoke(app, ["config", "--mbus", "nats://x:4222", "--node", "n1", "--hb-interval", "5"])
    assert r.exit_code == 0, r.stdout
    assert "nats://x:4222" in r.stdout
    assert "n1" in r.stdout
    assert "5.0" in r.stdout


def test_run_requires_message_bus_address():
    r = CliRunner().invoke(app, ["run", "--node", "n1"])
    assert r.exit_code == 2
