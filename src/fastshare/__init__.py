"""
FastShare - End-to-end encrypted one-shot transfers through a relay

Python implementation of the fastshare protocol using P-256 ECDH + AES-256-GCM.
"""

from .keys import (
    generate_keypair,
    public_key_to_bytes,
    public_key_from_bytes,
    random_salt,
    KeyMaterial,
    KeyMaterialCache,
)
from .signature import (
    derive_auth_key,
    sign_public_key,
    verify_public_key,
    sign_client_info,
    verify_client_info,
)
from .crypto import ecdh_shared_secret, derive_session_key
from .cipher import ChunkCipher, increment_nonce, chunk_count, ciphertext_size
from .frames import (
    TextFrame,
    encode_text_frame,
    decode_text_frame,
    build_query_params,
    parse_query_params,
)
from .types import (
    CHUNK_SIZE,
    AEAD_OVERHEAD,
    PAIR_CODE_LENGTH,
    CLOSE_NORMAL,
    CLOSE_PROTOCOL_ERROR,
    CLOSE_ABNORMAL,
    CLOSE_RELAY_TIMEOUT,
    FastShareError,
    InvalidPairCodeError,
    ProtocolViolationError,
    SignatureInvalidError,
    AEADAuthenticationError,
    InvalidPublicKeyError,
    SourceExhaustedError,
    HandshakeTimeoutError,
    NonceExhaustedError,
    UnexpectedClosureError,
    ConnectionClosedError,
    RelayRejectedError,
)
from .models import (
    Role,
    SessionState,
    ClientInfo,
    Session,
)
from .handshake import (
    split_share_pair_code,
    Handshake,
    SenderHandshake,
    ReceiverHandshake,
)
from .queue import ChunkQueue, QueueClosedError
from .relay import (
    RelayConnection,
    WebSocketRelayConnection,
    build_relay_url,
)
from .streams import (
    ByteSource,
    ByteSink,
    BytesSource,
    FileSource,
    BufferSink,
    FileSink,
)
from .config import TransferConfig, DEFAULT_RELAY_URL
from .transfer import (
    SenderTransfer,
    ReceiverTransfer,
    send,
    receive,
    send_bytes,
    receive_bytes,
)
from .sharephrase import generate_share_code

__version__ = "0.1.0"

__all__ = [
    # Keys
    "generate_keypair",
    "public_key_to_bytes",
    "public_key_from_bytes",
    "random_salt",
    "KeyMaterial",
    "KeyMaterialCache",
    # Signature
    "derive_auth_key",
    "sign_public_key",
    "verify_public_key",
    "sign_client_info",
    "verify_client_info",
    # Crypto
    "ecdh_shared_secret",
    "derive_session_key",
    # Cipher
    "ChunkCipher",
    "increment_nonce",
    "chunk_count",
    "ciphertext_size",
    # Frames
    "TextFrame",
    "encode_text_frame",
    "decode_text_frame",
    "build_query_params",
    "parse_query_params",
    # Constants
    "CHUNK_SIZE",
    "AEAD_OVERHEAD",
    "PAIR_CODE_LENGTH",
    "CLOSE_NORMAL",
    "CLOSE_PROTOCOL_ERROR",
    "CLOSE_ABNORMAL",
    "CLOSE_RELAY_TIMEOUT",
    # Errors
    "FastShareError",
    "InvalidPairCodeError",
    "ProtocolViolationError",
    "SignatureInvalidError",
    "AEADAuthenticationError",
    "InvalidPublicKeyError",
    "SourceExhaustedError",
    "HandshakeTimeoutError",
    "NonceExhaustedError",
    "UnexpectedClosureError",
    "ConnectionClosedError",
    "RelayRejectedError",
    # Models
    "Role",
    "SessionState",
    "ClientInfo",
    "Session",
    # Handshake
    "split_share_pair_code",
    "Handshake",
    "SenderHandshake",
    "ReceiverHandshake",
    # Queue
    "ChunkQueue",
    "QueueClosedError",
    # Relay
    "RelayConnection",
    "WebSocketRelayConnection",
    "build_relay_url",
    # Streams
    "ByteSource",
    "ByteSink",
    "BytesSource",
    "FileSource",
    "BufferSink",
    "FileSink",
    # Config
    "TransferConfig",
    "DEFAULT_RELAY_URL",
    # Transfer
    "SenderTransfer",
    "ReceiverTransfer",
    "send",
    "receive",
    "send_bytes",
    "receive_bytes",
    # Share phrase
    "generate_share_code",
]
