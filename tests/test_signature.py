"""Tests for signature module."""

import pytest

from fastshare.signature import (
    derive_auth_key,
    sign_public_key,
    verify_public_key,
    sign_client_info,
    verify_client_info,
)
from fastshare.types import AUTH_KEY_SIZE, HMAC_SIZE
from .test_vectors import SHARE_CODE, alice_key_material, bob_key_material


def flip(data: bytes, index: int) -> bytes:
    """Flip the low bit of one byte."""
    out = bytearray(data)
    out[index] ^= 0x01
    return bytes(out)


class TestAuthKey:
    """Tests for share code stretching."""

    def test_auth_key_size(self):
        key = derive_auth_key(SHARE_CODE, bytes(16))
        assert len(key) == AUTH_KEY_SIZE

    def test_auth_key_deterministic(self):
        assert derive_auth_key(SHARE_CODE, bytes(16)) == derive_auth_key(SHARE_CODE, bytes(16))

    def test_auth_key_depends_on_salt(self):
        assert derive_auth_key(SHARE_CODE, bytes(16)) != derive_auth_key(SHARE_CODE, bytes([1] * 16))


class TestSignAndVerify:
    """Tests for sign and verify roundtrip."""

    @pytest.fixture
    def material(self):
        return alice_key_material()

    @pytest.fixture
    def signature(self, material):
        return sign_public_key(SHARE_CODE, material.public_key_bytes, material.salt)

    def test_sign_and_verify_roundtrip(self, material, signature):
        """Test that signed keys can be verified."""
        assert len(signature) == HMAC_SIZE
        assert verify_public_key(SHARE_CODE, material.public_key_bytes, signature, material.salt) is True

    def test_sign_deterministic(self, material, signature):
        assert sign_public_key(SHARE_CODE, material.public_key_bytes, material.salt) == signature

    def test_wrong_share_code_fails(self, material, signature):
        """Test that a single changed share code character fails."""
        wrong_code = "BluePenguinBouncez"
        assert verify_public_key(wrong_code, material.public_key_bytes, signature, material.salt) is False

    @pytest.mark.parametrize("index", [0, 15])
    def test_flipped_salt_fails(self, material, signature, index):
        salt = flip(material.salt, index)
        assert verify_public_key(SHARE_CODE, material.public_key_bytes, signature, salt) is False

    @pytest.mark.parametrize("index", [0, 32, 64])
    def test_flipped_public_key_fails(self, material, signature, index):
        public_key = flip(material.public_key_bytes, index)
        assert verify_public_key(SHARE_CODE, public_key, signature, material.salt) is False

    @pytest.mark.parametrize("index", [0, 63])
    def test_flipped_signature_fails(self, material, signature, index):
        bad = flip(signature, index)
        assert verify_public_key(SHARE_CODE, material.public_key_bytes, bad, material.salt) is False

    def test_truncated_signature_fails(self, material, signature):
        assert verify_public_key(SHARE_CODE, material.public_key_bytes, signature[:32], material.salt) is False


class TestClientInfo:
    """Tests for ClientInfo signing."""

    def test_sign_client_info(self):
        material = bob_key_material()
        info = sign_client_info(SHARE_CODE, material)

        assert info.pub_key == material.public_key_bytes
        assert info.salt == material.salt
        assert verify_client_info(SHARE_CODE, info) is True

    def test_other_peers_key_fails(self):
        """A signature does not transfer to another peer's key."""
        alice = sign_client_info(SHARE_CODE, alice_key_material())
        bob = sign_client_info(SHARE_CODE, bob_key_material())

        alice.pub_key = bob.pub_key
        assert verify_client_info(SHARE_CODE, alice) is False
