"""Tests for transfer configuration."""

import pytest

from fastshare.config import DEFAULT_RELAY_URL, TransferConfig


class TestTransferConfig:
    """Tests for TransferConfig."""

    def test_defaults(self):
        config = TransferConfig()
        assert config.relay_url == DEFAULT_RELAY_URL
        assert config.handshake_timeout == 120.0
        assert config.close_grace_period == 1.0
        assert config.flow_control_window == 0
        config.validate()

    def test_from_env(self):
        config = TransferConfig.from_env({
            "FASTSHARE_RELAY_URL": "wss://relay.example/ws",
            "FASTSHARE_HANDSHAKE_TIMEOUT": "30",
            "FASTSHARE_CLOSE_GRACE": "0.5",
            "FASTSHARE_FLOW_WINDOW": "8",
        })

        assert config.relay_url == "wss://relay.example/ws"
        assert config.handshake_timeout == 30.0
        assert config.close_grace_period == 0.5
        assert config.flow_control_window == 8

    def test_from_env_keeps_defaults(self):
        assert TransferConfig.from_env({}) == TransferConfig()

    @pytest.mark.parametrize("field, value", [
        ("handshake_timeout", -1.0),
        ("close_grace_period", -0.1),
        ("flow_control_window", -1),
        ("relay_url", ""),
    ])
    def test_validate_rejects(self, field, value):
        config = TransferConfig(**{field: value})
        with pytest.raises(ValueError):
            config.validate()

    def test_from_env_rejects_invalid(self):
        with pytest.raises(ValueError):
            TransferConfig.from_env({"FASTSHARE_FLOW_WINDOW": "-2"})

    @pytest.mark.parametrize("window, interval", [(1, 1), (2, 1), (8, 4), (9, 4)])
    def test_ack_interval(self, window, interval):
        assert TransferConfig(flow_control_window=window).ack_interval == interval
