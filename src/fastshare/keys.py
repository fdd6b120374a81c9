"""Ephemeral key material for fastshare sessions."""

import os
from dataclasses import dataclass
from typing import Optional

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.serialization import Encoding, PublicFormat

from .types import SALT_SIZE, InvalidPublicKeyError


def generate_keypair() -> ec.EllipticCurvePrivateKey:
    """
    Generate a fresh P-256 key pair for ECDH.

    The private key is only ever used for key agreement and is never
    serialized.

    Returns:
        The private key; the public half is available via ``public_key()``
    """
    return ec.generate_private_key(ec.SECP256R1())


def public_key_to_bytes(public_key: ec.EllipticCurvePublicKey) -> bytes:
    """Export a P-256 public key as a raw uncompressed point (65 bytes)."""
    return public_key.public_bytes(Encoding.X962, PublicFormat.UncompressedPoint)


def public_key_from_bytes(data: bytes) -> ec.EllipticCurvePublicKey:
    """
    Import a raw uncompressed P-256 point.

    Raises:
        InvalidPublicKeyError: If the bytes are not a point on the curve
    """
    try:
        return ec.EllipticCurvePublicKey.from_encoded_point(ec.SECP256R1(), data)
    except ValueError as e:
        raise InvalidPublicKeyError(f"Invalid P-256 public key: {e}") from e


def random_salt() -> bytes:
    """Generate a random 16-byte salt."""
    return os.urandom(SALT_SIZE)


@dataclass
class KeyMaterial:
    """A peer's ephemeral key pair and salt for one session."""

    private_key: ec.EllipticCurvePrivateKey
    public_key_bytes: bytes
    salt: bytes

    @classmethod
    def create(cls) -> "KeyMaterial":
        """Generate a new key pair and salt."""
        private_key = generate_keypair()
        return cls(
            private_key=private_key,
            public_key_bytes=public_key_to_bytes(private_key.public_key()),
            salt=random_salt(),
        )


class KeyMaterialCache:
    """
    Lazily created key material shared by every transfer that uses the cache.

    Transfers create fresh key material by default. To reuse one identity
    across transfers opened by the same process, pass ``cache.get()`` as
    their key material.
    """

    def __init__(self) -> None:
        self._material: Optional[KeyMaterial] = None

    def get(self) -> KeyMaterial:
        """Return the cached key material, creating it on first use."""
        if self._material is None:
            self._material = KeyMaterial.create()
        return self._material
