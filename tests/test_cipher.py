"""Tests for chunk encryption."""

import pytest

from fastshare.cipher import ChunkCipher, chunk_count, ciphertext_size, increment_nonce
from fastshare.types import AEAD_OVERHEAD, CHUNK_SIZE, AEADAuthenticationError, NonceExhaustedError
from .test_vectors import SHARE_CODE, PAYLOAD_CHUNKS, PAYLOAD_CIPHERTEXT_SIZE, PAYLOAD_SIZE

KEY = bytes(range(32))


def cipher_pair(share_code: str = SHARE_CODE):
    return ChunkCipher(KEY, share_code), ChunkCipher(KEY, share_code)


class TestNonce:
    """Tests for the little-endian nonce counter."""

    def test_increment_low_byte(self):
        nonce = bytearray(12)
        increment_nonce(nonce)
        assert nonce == bytearray([1] + [0] * 11)

    def test_increment_carries(self):
        """0xFF in the low byte carries into the next one."""
        nonce = bytearray([0xFF] + [0] * 11)
        increment_nonce(nonce)
        assert nonce == bytearray([0, 1] + [0] * 10)

    def test_increment_carries_across_bytes(self):
        nonce = bytearray([0xFF, 0xFF, 0x05] + [0] * 9)
        increment_nonce(nonce)
        assert nonce == bytearray([0, 0, 0x06] + [0] * 9)

    def test_increment_wraps_to_zero(self):
        nonce = bytearray([0xFF] * 12)
        increment_nonce(nonce)
        assert nonce == bytearray(12)

    def test_cipher_nonce_advances_per_chunk(self):
        sender, _ = cipher_pair()
        assert sender.nonce == bytes(12)
        for _ in range(256):
            sender.encrypt_next(b"x")
        assert sender.nonce == bytes([0, 1] + [0] * 10)
        assert sender.chunks_processed == 256


class TestSizes:
    """Tests for chunk and ciphertext size arithmetic."""

    def test_chunk_count(self):
        assert chunk_count(0) == 0
        assert chunk_count(1) == 1
        assert chunk_count(CHUNK_SIZE) == 1
        assert chunk_count(CHUNK_SIZE + 1) == 2
        assert chunk_count(PAYLOAD_SIZE) == len(PAYLOAD_CHUNKS)

    def test_ciphertext_size(self):
        assert ciphertext_size(0) == 0
        assert ciphertext_size(1) == 1 + AEAD_OVERHEAD
        assert ciphertext_size(PAYLOAD_SIZE) == PAYLOAD_CIPHERTEXT_SIZE


class TestChunkCipher:
    """Tests for sealing and opening chunks."""

    def test_roundtrip_in_order(self):
        sender, receiver = cipher_pair()
        chunks = [bytes([i]) * size for i, size in enumerate(PAYLOAD_CHUNKS)]

        sealed = [sender.encrypt_next(chunk) for chunk in chunks]
        assert [len(c) for c in sealed] == [size + AEAD_OVERHEAD for size in PAYLOAD_CHUNKS]

        opened = [receiver.decrypt_next(c) for c in sealed]
        assert opened == chunks

    def test_empty_chunk(self):
        sender, receiver = cipher_pair()
        sealed = sender.encrypt_next(b"")
        assert len(sealed) == AEAD_OVERHEAD
        assert receiver.decrypt_next(sealed) == b""

    def test_same_plaintext_differs_per_chunk(self):
        """Each chunk uses a fresh nonce."""
        sender, _ = cipher_pair()
        assert sender.encrypt_next(b"same") != sender.encrypt_next(b"same")

    def test_oversized_chunk_rejected(self):
        sender, _ = cipher_pair()
        with pytest.raises(ValueError):
            sender.encrypt_next(bytes(CHUNK_SIZE + 1))

    def test_bad_key_length(self):
        with pytest.raises(ValueError):
            ChunkCipher(bytes(16), SHARE_CODE)

    def test_tampered_chunk_fails(self):
        sender, receiver = cipher_pair()
        sealed = bytearray(sender.encrypt_next(b"hello world"))
        sealed[3] ^= 0x01

        with pytest.raises(AEADAuthenticationError):
            receiver.decrypt_next(bytes(sealed))

    def test_failed_chunk_does_not_advance_nonce(self):
        sender, receiver = cipher_pair()
        sealed = sender.encrypt_next(b"hello world")
        tampered = bytes([sealed[0] ^ 0xFF]) + sealed[1:]

        with pytest.raises(AEADAuthenticationError):
            receiver.decrypt_next(tampered)

        assert receiver.nonce == bytes(12)
        assert receiver.decrypt_next(sealed) == b"hello world"

    def test_reordered_chunks_fail(self):
        sender, receiver = cipher_pair()
        first = sender.encrypt_next(b"first")
        second = sender.encrypt_next(b"second")

        with pytest.raises(AEADAuthenticationError):
            receiver.decrypt_next(second)
        assert receiver.decrypt_next(first) == b"first"
        assert receiver.decrypt_next(second) == b"second"

    def test_dropped_chunk_fails_next(self):
        sender, receiver = cipher_pair()
        sender.encrypt_next(b"lost")
        second = sender.encrypt_next(b"second")

        with pytest.raises(AEADAuthenticationError):
            receiver.decrypt_next(second)

    def test_different_share_code_fails(self):
        """The share code is bound in as associated data."""
        sender = ChunkCipher(KEY, SHARE_CODE)
        receiver = ChunkCipher(KEY, SHARE_CODE + "x")

        with pytest.raises(AEADAuthenticationError):
            receiver.decrypt_next(sender.encrypt_next(b"data"))

    @pytest.mark.parametrize("length", [0, AEAD_OVERHEAD - 1, CHUNK_SIZE + AEAD_OVERHEAD + 1])
    def test_invalid_length_rejected(self, length):
        _, receiver = cipher_pair()
        with pytest.raises(AEADAuthenticationError):
            receiver.decrypt_next(bytes(length))

    def test_wiped_cipher_unusable(self):
        sender, _ = cipher_pair()
        sender.wipe()
        with pytest.raises(RuntimeError):
            sender.encrypt_next(b"data")


class TestNonceExhaustion:
    """A cipher never reuses a nonce once the counter wraps."""

    def test_encrypt_after_wrap_raises(self):
        sender, _ = cipher_pair()
        sender._nonce = bytearray([0xFF] * 12)
        sender.encrypt_next(b"last")
        assert sender.nonce == bytes(12)
        with pytest.raises(NonceExhaustedError):
            sender.encrypt_next(b"again")

    def test_decrypt_after_wrap_raises(self):
        sender, receiver = cipher_pair()
        sender._nonce = bytearray([0xFF] * 12)
        receiver._nonce = bytearray([0xFF] * 12)
        assert receiver.decrypt_next(sender.encrypt_next(b"last")) == b"last"
        with pytest.raises(NonceExhaustedError):
            receiver.decrypt_next(bytes(AEAD_OVERHEAD + 4))

    def test_exhausted_cipher_stays_exhausted(self):
        sender, _ = cipher_pair()
        sender._nonce = bytearray([0xFF] * 12)
        sender.encrypt_next(b"last")
        for _ in range(2):
            with pytest.raises(NonceExhaustedError):
                sender.encrypt_next(b"x")
        assert sender.chunks_processed == 1
