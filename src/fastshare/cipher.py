"""
Chunked AES-256-GCM with an implicit counter nonce.

Every chunk of a session is sealed under the same key and associated data
(the bare share code). The 12-byte nonce starts at zero and is incremented
little-endian after each chunk, on both sides. There is no sequence number
on the wire: the nth ciphertext frame only opens under the nth nonce, so
frames must be processed in the order they were produced.
"""

import math

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from .types import (
    AEAD_OVERHEAD,
    CHUNK_SIZE,
    ENCRYPTED_CHUNK_SIZE,
    NONCE_SIZE,
    SESSION_KEY_SIZE,
    AEADAuthenticationError,
    NonceExhaustedError,
)


def increment_nonce(nonce: bytearray) -> None:
    """Increment a nonce in place, little-endian, wrapping to zero."""
    for i in range(len(nonce)):
        if nonce[i] == 0xFF:
            nonce[i] = 0
        else:
            nonce[i] += 1
            break


def chunk_count(plaintext_size: int) -> int:
    """Number of chunks needed for a payload."""
    return math.ceil(plaintext_size / CHUNK_SIZE)


def ciphertext_size(plaintext_size: int) -> int:
    """Total ciphertext bytes for a payload, tags included."""
    return plaintext_size + chunk_count(plaintext_size) * AEAD_OVERHEAD


class ChunkCipher:
    """Seals and opens a session's chunks in order."""

    def __init__(self, key: bytes, share_code: str) -> None:
        if len(key) != SESSION_KEY_SIZE:
            raise ValueError(f"Session key must be {SESSION_KEY_SIZE} bytes, got {len(key)}")

        self._key = bytearray(key)
        self._aead = AESGCM(bytes(self._key))
        self._aad = share_code.encode("utf-8")
        self._nonce = bytearray(NONCE_SIZE)
        self._chunks = 0
        self._exhausted = False

    @property
    def nonce(self) -> bytes:
        """The nonce the next chunk will use."""
        return bytes(self._nonce)

    @property
    def chunks_processed(self) -> int:
        """Chunks sealed or opened so far."""
        return self._chunks

    def encrypt_next(self, plaintext: bytes) -> bytes:
        """
        Seal the next chunk.

        Args:
            plaintext: At most CHUNK_SIZE bytes

        Returns:
            Ciphertext with the 16-byte tag appended

        Raises:
            NonceExhaustedError: If every nonce has already been used
        """
        if len(plaintext) > CHUNK_SIZE:
            raise ValueError(f"Chunk too large: {len(plaintext)} bytes (max {CHUNK_SIZE})")

        self._check_usable()
        ciphertext = self._aead.encrypt(bytes(self._nonce), plaintext, self._aad)
        self._advance()
        return ciphertext

    def decrypt_next(self, ciphertext: bytes) -> bytes:
        """
        Open the next chunk.

        The nonce only advances if the chunk authenticates.

        Raises:
            AEADAuthenticationError: If the chunk was tampered with, or is
                not the chunk this nonce belongs to
        """
        if len(ciphertext) < AEAD_OVERHEAD or len(ciphertext) > ENCRYPTED_CHUNK_SIZE:
            raise AEADAuthenticationError(f"Invalid chunk length: {len(ciphertext)} bytes")

        self._check_usable()
        try:
            plaintext = self._aead.decrypt(bytes(self._nonce), ciphertext, self._aad)
        except InvalidTag as e:
            raise AEADAuthenticationError(
                f"Chunk {self._chunks} failed authentication"
            ) from e

        self._advance()
        return plaintext

    def wipe(self) -> None:
        """Overwrite our copy of the key. The cipher is unusable afterwards."""
        for i in range(len(self._key)):
            self._key[i] = 0
        self._aead = None

    def _check_usable(self) -> None:
        if self._aead is None:
            raise RuntimeError("Cipher key has been wiped")
        if self._exhausted:
            raise NonceExhaustedError("Nonce counter wrapped; the session key cannot be reused")

    def _advance(self) -> None:
        increment_nonce(self._nonce)
        self._chunks += 1
        if not any(self._nonce):
            self._exhausted = True
