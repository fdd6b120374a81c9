"""Transfer configuration."""

import os
from dataclasses import dataclass
from typing import Mapping, Optional


DEFAULT_RELAY_URL = "ws://localhost:8080/ws"


@dataclass
class TransferConfig:
    """Configuration shared by the send and receive drivers."""

    relay_url: str = DEFAULT_RELAY_URL
    """Relay websocket endpoint."""

    handshake_timeout: float = 120.0
    """Seconds allowed for pairing before giving up (0 disables)."""

    close_grace_period: float = 1.0
    """Seconds the sender waits after the last chunk before closing."""

    flow_control_window: int = 0
    """Unacknowledged chunks the sender may have in flight (0 disables).

    Both peers must agree: a receiver with flow control enabled sends ack
    frames that a peer without it would reject.
    """

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "TransferConfig":
        """
        Build a configuration from FASTSHARE_* environment variables.

        Unset variables keep their defaults.
        """
        env = os.environ if environ is None else environ
        config = cls()

        if "FASTSHARE_RELAY_URL" in env:
            config.relay_url = env["FASTSHARE_RELAY_URL"]
        if "FASTSHARE_HANDSHAKE_TIMEOUT" in env:
            config.handshake_timeout = float(env["FASTSHARE_HANDSHAKE_TIMEOUT"])
        if "FASTSHARE_CLOSE_GRACE" in env:
            config.close_grace_period = float(env["FASTSHARE_CLOSE_GRACE"])
        if "FASTSHARE_FLOW_WINDOW" in env:
            config.flow_control_window = int(env["FASTSHARE_FLOW_WINDOW"])

        config.validate()
        return config

    def validate(self) -> None:
        """Validate the configuration, raises ValueError if invalid."""
        if not self.relay_url:
            raise ValueError("relay_url must be set")
        if self.handshake_timeout < 0:
            raise ValueError("handshake_timeout must be >= 0")
        if self.close_grace_period < 0:
            raise ValueError("close_grace_period must be >= 0")
        if self.flow_control_window < 0:
            raise ValueError("flow_control_window must be >= 0")

    @property
    def ack_interval(self) -> int:
        """Chunks the receiver decrypts between acks."""
        return max(1, self.flow_control_window // 2)
