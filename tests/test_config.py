"""Tests for configuration loading and validation."""

import pytest

from sdr_monitor.common.config import MonitorConfig, load_config_file, load_monitor_config
from sdr_monitor.common.exceptions import ConfigError
from sdr_monitor.services.device.presence import ById, ByName


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("SDR_MONITOR_CLIENT_IP", "SDR_MONITOR_SESSION_KEY", "SDR_MONITOR_RELAY_COMMAND"):
        monkeypatch.delenv(name, raising=False)


class TestLoadConfigFile:

    def test_full_file(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text(
            "heartbeat:\n"
            "  client_ip: 192.168.4.2\n"
            "device:\n"
            "  index: 1\n"
            "  vendor_id: 0x0bda\n"
            "  product_id: '0x2838'\n"
            "relay:\n"
            "  command: nc collector 30005\n"
            "  port: 30005\n"
            "registry:\n"
            "  session_key: abc\n"
            "  url: https://registry.test/update\n"
            "health:\n"
            "  port: 0\n"
        )
        config = load_config_file(str(path))

        assert config.client_ip == "192.168.4.2"
        assert config.device_index == 1
        assert config.target_descriptor() == ById(0x0BDA, 0x2838)
        assert config.relay_command == "nc collector 30005"
        assert config.session_key == "abc"
        assert config.health_port == 0

    def test_missing_file_uses_defaults(self, tmp_path):
        config = load_config_file(str(tmp_path / "absent.yaml"))
        assert config == MonitorConfig()
        assert config.target_descriptor() is None

    def test_empty_file_uses_defaults(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("")
        assert load_config_file(str(path)).health_port == 8091

    def test_invalid_yaml(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("device: [unclosed\n")
        with pytest.raises(ConfigError):
            load_config_file(str(path))

    def test_non_mapping(self, tmp_path):
        path = tmp_path / "config.yaml"
        path.write_text("- just\n- a list\n")
        with pytest.raises(ConfigError):
            load_config_file(str(path))


class TestLoadMonitorConfig:

    def test_name_target(self):
        config = load_monitor_config({"device": {"name": "RTL2838"}})
        assert config.target_descriptor() == ByName("RTL2838")

    def test_env_overrides(self, monkeypatch):
        monkeypatch.setenv("SDR_MONITOR_CLIENT_IP", "10.0.0.5")
        monkeypatch.setenv("SDR_MONITOR_SESSION_KEY", "secret")
        config = load_monitor_config({
            "heartbeat": {"client_ip": "192.168.4.2"},
            "registry": {"url": "https://registry.test/update"},
        })
        assert config.client_ip == "10.0.0.5"
        assert config.session_key == "secret"

    def test_bad_integer(self):
        with pytest.raises(ConfigError):
            load_monitor_config({"device": {"vendor_id": "rtl"}})


class TestValidate:

    def test_half_an_id_pair(self):
        with pytest.raises(ConfigError):
            load_monitor_config({"device": {"vendor_id": 0x0BDA}})

    def test_id_and_name(self):
        with pytest.raises(ConfigError):
            load_monitor_config({"device": {"vendor_id": 1, "product_id": 2, "name": "rtl"}})

    def test_negative_index(self):
        with pytest.raises(ConfigError):
            load_monitor_config({"device": {"index": -1}})

    def test_port_out_of_range(self):
        with pytest.raises(ConfigError):
            load_monitor_config({"relay": {"port": 70000}})

    def test_session_key_needs_url(self):
        with pytest.raises(ConfigError) as exc_info:
            load_monitor_config({"registry": {"session_key": "abc"}})
        assert exc_info.value.recoverable is False
