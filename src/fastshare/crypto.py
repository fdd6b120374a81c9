"""Session key agreement for fastshare."""

import logging

from cryptography.hazmat.primitives.asymmetric import ec
from cryptography.hazmat.primitives.hashes import SHA512
from cryptography.hazmat.primitives.kdf.hkdf import HKDF

from .keys import public_key_from_bytes
from .types import SESSION_KEY_SIZE

logger = logging.getLogger(__name__)


def ecdh_shared_secret(
    private_key: ec.EllipticCurvePrivateKey,
    peer_public_key: ec.EllipticCurvePublicKey,
) -> bytes:
    """
    Perform P-256 ECDH.

    Args:
        private_key: Our ephemeral private key
        peer_public_key: The peer's ephemeral public key

    Returns:
        32-byte shared secret (x coordinate)
    """
    return private_key.exchange(ec.ECDH(), peer_public_key)


def _hkdf_sha512(secret: bytes, info: bytes, length: int) -> bytes:
    hkdf = HKDF(algorithm=SHA512(), length=length, salt=None, info=info)
    return hkdf.derive(secret)


def derive_session_key(
    share_code: str,
    private_key: ec.EllipticCurvePrivateKey,
    peer_public_key_bytes: bytes,
) -> bytearray:
    """
    Derive the AES-256-GCM session key.

    The raw ECDH secret is the HKDF-SHA512 input key material, with an empty
    salt and the share code as info, expanded to a 32-byte key. Both peers
    arrive at the same key from their own private key and the other's
    public key.

    Args:
        share_code: The bare share code (no pair code suffix)
        private_key: Our ephemeral private key
        peer_public_key_bytes: The peer's raw public key

    Returns:
        32-byte session key as a bytearray so the caller can wipe it

    Raises:
        InvalidPublicKeyError: If the peer key is not a valid point
    """
    peer_public_key = public_key_from_bytes(peer_public_key_bytes)
    info = share_code.encode("utf-8")

    shared_secret = ecdh_shared_secret(private_key, peer_public_key)
    key = bytearray(_hkdf_sha512(shared_secret, info, SESSION_KEY_SIZE))

    logger.debug("Derived session key")
    return key
