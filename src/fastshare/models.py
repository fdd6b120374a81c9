"""Models for fastshare peers and sessions."""

from dataclasses import dataclass
from enum import Enum
from typing import Optional

from .keys import KeyMaterial


class Role(Enum):
    """Which end of the transfer a peer is."""
    SENDER = "sender"
    RECEIVER = "receiver"


class SessionState(Enum):
    """Lifecycle state of a session."""
    AWAIT_PAIR_CODE = "await_pair_code"
    AWAIT_PEER_INFO = "await_peer_info"
    AWAIT_SIZE = "await_size"
    TRANSFERRING = "transferring"
    CLOSED = "closed"
    FAILED = "failed"

    @property
    def is_terminal(self) -> bool:
        """Whether the session has ended."""
        return self in (SessionState.CLOSED, SessionState.FAILED)


@dataclass
class ClientInfo:
    """A peer's public key, salt and signature over the public key."""
    pub_key: bytes
    salt: bytes
    hmac: bytes


@dataclass
class Session:
    """Everything one peer knows about a transfer in progress."""
    role: Role
    share_code: str
    key_material: KeyMaterial
    state: SessionState
    peer_info: Optional[ClientInfo] = None
    declared_size: Optional[int] = None
    bytes_transferred: int = 0

    @property
    def is_complete(self) -> bool:
        """Whether the declared payload has been fully transferred."""
        return (
            self.declared_size is not None
            and self.bytes_transferred >= self.declared_size
        )

    @property
    def remaining(self) -> int:
        """Plaintext bytes still to transfer."""
        if self.declared_size is None:
            return 0
        return max(0, self.declared_size - self.bytes_transferred)
