from __future__ import annotations

import pytest

from snagent.config import const
from snagent.domain import RegistrationConfig, parse_hb_interval
from snagent.services.settings import Settings


@pytest.mark.parametrize(
    "raw, expected",
    [
        (None, 2.0),
        ("5", 5.0),
        ("1", 1.0),
        ("abc", 2.0),
        ("", 2.0),
        ("1.5", 2.0),
        ("0", 2.0),
        ("-3", 2.0),
    ],
)
def test_parse_hb_interval(raw, expected):
    assert parse_hb_interval(raw) == expected


def test_registration_config_from_env():
    conf = RegistrationConfig.from_env("node-a", "10.0.0.1:10124", {const.ENV_HB_INTERVAL: "7"})
    assert conf == RegistrationConfig("node-a", "10.0.0.1:10124", 7.0)

    conf = RegistrationConfig.from_env("node-a", "10.0.0.1:10124", {})
    assert conf.hb_interval == const.HB_INTERVAL_DEFAULT_S


@pytest.mark.parametrize("override, expected", [(0.5, 0.5), (4, 4.0), (0, 7.0), (-1, 7.0), (None, 7.0)])
def test_registration_config_interval_override(override, expected):
    conf = RegistrationConfig.from_env("n", "e", {const.ENV_HB_INTERVAL: "7"}, hb_interval=override)
    assert conf.hb_interval == expected


def test_registration_config_reads_process_env(monkeypatch):
    monkeypatch.setenv(const.ENV_HB_INTERVAL, "3")
    assert RegistrationConfig.from_env("n", "e").hb_interval == 3.0


def test_settings_from_env_file_and_environment(tmp_path, monkeypatch):
    env_file = tmp_path / "agent.env"
    env_file.write_text(
        "SNAGENT_MBUS_ENDPOINT=nats://10.0.0.5:4222\n"
        "SNAGENT_NODE_NAME=from-file\n"
        "SNAGENT_HB_INTERVAL=4\n",
        encoding="utf-8",
    )
    monkeypatch.setenv(const.ENV_NODE_NAME, "from-env")

    s = Settings.from_sources(str(env_file))
    assert s.mbus_endpoint == "nats://10.0.0.5:4222"
    # переменная окружения важнее .env
    assert s.node_name == "from-env"
    assert s.hb_interval == 4.0
    assert s.grpc_endpoint is None
    assert s.mbus_enabled and not s.registration_enabled


def test_settings_defaults_without_env_file(tmp_path):
    s = Settings.from_sources(str(tmp_path / "missing.env"))
    assert s.node_name  # hostname
    assert s.mbus_endpoint is None
    assert s.hb_interval == const.HB_INTERVAL_DEFAULT_S
    assert s.shutdown_grace == const.SHUTDOWN_GRACE_DEFAULT_S
    assert s.log_level == "INFO"


def test_invalid_shutdown_grace_falls_back(monkeypatch):
    monkeypatch.setenv(const.ENV_SHUTDOWN_GRACE, "soon")
    assert Settings.from_sources(None).shutdown_grace == const.SHUTDOWN_GRACE_DEFAULT_S


def test_with_overrides_ignores_none():
    s = Settings(node_name="a", mbus_endpoint="nats://x:4222")
    s2 = s.with_overrides(node_name=None, grpc_endpoint="1.2.3.4:10124")
    assert s2.node_name == "a"
    assert s2.grpc_endpoint == "1.2.3.4:10124"
    assert s2.registration_enabled
    assert s.grpc_endpoint is None
