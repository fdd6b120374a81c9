"""Tests for key material."""

import pytest

from fastshare.keys import (
    KeyMaterial,
    KeyMaterialCache,
    generate_keypair,
    public_key_from_bytes,
    public_key_to_bytes,
    random_salt,
)
from fastshare.types import PUBLIC_KEY_SIZE, SALT_SIZE, InvalidPublicKeyError
from .test_vectors import alice_key_material


class TestKeyMaterial:
    """Tests for ephemeral key material."""

    def test_public_key_encoding(self):
        """Public keys use the 65-byte uncompressed point encoding."""
        public_bytes = public_key_to_bytes(generate_keypair().public_key())
        assert len(public_bytes) == PUBLIC_KEY_SIZE
        assert public_bytes[0] == 0x04

    def test_public_key_decoding(self):
        material = alice_key_material()
        decoded = public_key_from_bytes(material.public_key_bytes)
        assert public_key_to_bytes(decoded) == material.public_key_bytes

    def test_invalid_public_key(self):
        with pytest.raises(InvalidPublicKeyError):
            public_key_from_bytes(bytes([0x04]) + bytes(64))

    def test_truncated_public_key(self):
        material = alice_key_material()
        with pytest.raises(InvalidPublicKeyError):
            public_key_from_bytes(material.public_key_bytes[:33])

    def test_random_salt(self):
        assert len(random_salt()) == SALT_SIZE
        assert random_salt() != random_salt()

    def test_create_is_fresh(self):
        first = KeyMaterial.create()
        second = KeyMaterial.create()
        assert first.public_key_bytes != second.public_key_bytes
        assert first.salt != second.salt


class TestKeyMaterialCache:
    """Tests for process-wide key material reuse."""

    def test_cache_returns_same_material(self):
        cache = KeyMaterialCache()
        assert cache.get() is cache.get()

    def test_caches_are_independent(self):
        assert KeyMaterialCache().get().public_key_bytes != KeyMaterialCache().get().public_key_bytes
