"""Protocol constants and error types for fastshare."""

from typing import Optional


# Chunking
CHUNK_SIZE = 16384
AEAD_OVERHEAD = 16  # AES-GCM tag
ENCRYPTED_CHUNK_SIZE = CHUNK_SIZE + AEAD_OVERHEAD
NONCE_SIZE = 12
SESSION_KEY_SIZE = 32

# Key material
SALT_SIZE = 16
PUBLIC_KEY_SIZE = 65  # uncompressed P-256 point
HMAC_SIZE = 64

# Authentication key stretching
PBKDF2_ITERATIONS = 100_000
AUTH_KEY_SIZE = 128  # SHA-512 block size, the default HMAC key length in WebCrypto

# Pair code suffix appended by the relay
PAIR_CODE_LENGTH = 4

# Message routes
ROUTE_PAIR_CODE = "pairCode"
ROUTE_SENDER_INFO = "senderInfo"
ROUTE_RECEIVER_INFO = "receiverInfo"
ROUTE_SIZE = "size"
ROUTE_ACK = "ack"

# Close codes
CLOSE_NORMAL = 1000
CLOSE_PROTOCOL_ERROR = 1002
CLOSE_ABNORMAL = 1006
CLOSE_RELAY_TIMEOUT = 3000


# Exception types
class FastShareError(Exception):
    """Base exception for fastshare errors."""
    pass


class InvalidPairCodeError(FastShareError):
    """Combined share/pair code is too short to split."""
    pass


class ProtocolViolationError(FastShareError):
    """Unexpected message route, type or payload for the current state."""
    pass


class SignatureInvalidError(FastShareError):
    """Peer's public key signature did not verify against the share code."""
    pass


class AEADAuthenticationError(FastShareError):
    """Chunk failed AEAD authentication (tampered, lost or reordered)."""
    pass


class InvalidPublicKeyError(FastShareError):
    """Peer public key bytes are not a valid curve point."""
    pass


class SourceExhaustedError(FastShareError):
    """Byte source ended before the declared size was sent."""
    pass


class HandshakeTimeoutError(FastShareError):
    """Handshake did not complete in time."""
    pass


class NonceExhaustedError(FastShareError):
    """Every nonce for the session key has been used."""
    pass


class UnexpectedClosureError(FastShareError):
    """Connection closed with a non-normal code before the transfer completed."""

    def __init__(self, code: Optional[int], reason: str = "") -> None:
        self.code = code
        self.reason = reason
        message = f"Connection closed unexpectedly (code {code})"
        if reason:
            message += f": {reason}"
        super().__init__(message)


class ConnectionClosedError(Exception):
    """Raised by a relay connection when the peer or relay closed it."""

    def __init__(self, code: Optional[int], reason: str = "") -> None:
        self.code = code
        self.reason = reason
        super().__init__(f"Connection closed (code {code})")


class RelayRejectedError(FastShareError):
    """The relay refused the connection (e.g. no sender for the pair code)."""

    def __init__(self, status: int) -> None:
        self.status = status
        super().__init__(f"Relay rejected connection: HTTP {status}")
