"""
Share-code authentication of ephemeral public keys.

Each peer signs its ephemeral public key with an HMAC-SHA512 key stretched
from the share code and a per-session salt. A peer that verifies the
signature knows the other side holds the share code, and that the public key
it is about to use for key agreement is the one the share-code holder chose.
This keeps a relay-positioned attacker from substituting its own key.
"""

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import hashes, hmac
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .keys import KeyMaterial
from .models import ClientInfo
from .types import AUTH_KEY_SIZE, HMAC_SIZE, PBKDF2_ITERATIONS


def derive_auth_key(share_code: str, salt: bytes) -> bytes:
    """
    Stretch the share code into an HMAC-SHA512 key.

    Args:
        share_code: The human-relayed share code (password)
        salt: The signing peer's salt

    Returns:
        128-byte authentication key (one SHA-512 block)
    """
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA512(),
        length=AUTH_KEY_SIZE,
        salt=salt,
        iterations=PBKDF2_ITERATIONS,
    )
    return kdf.derive(share_code.encode("utf-8"))


def sign_public_key(share_code: str, public_key_bytes: bytes, salt: bytes) -> bytes:
    """
    Sign public key bytes with the share-code-derived key.

    Args:
        share_code: The share code
        public_key_bytes: Raw public key to bind to the share code
        salt: Salt for the key stretching

    Returns:
        The HMAC-SHA512 signature (64 bytes)
    """
    h = hmac.HMAC(derive_auth_key(share_code, salt), hashes.SHA512())
    h.update(public_key_bytes)
    return h.finalize()


def verify_public_key(
    share_code: str,
    public_key_bytes: bytes,
    signature: bytes,
    salt: bytes,
) -> bool:
    """
    Check a public key signature.

    Args:
        share_code: The share code we expect the peer to know
        public_key_bytes: The peer's raw public key
        signature: The peer's signature
        salt: The peer's salt

    Returns:
        True if the signature is valid, False otherwise
    """
    if len(signature) != HMAC_SIZE:
        return False

    h = hmac.HMAC(derive_auth_key(share_code, salt), hashes.SHA512())
    h.update(public_key_bytes)
    try:
        h.verify(signature)
        return True
    except InvalidSignature:
        return False


def sign_client_info(share_code: str, key_material: KeyMaterial) -> ClientInfo:
    """Build our signed ClientInfo."""
    return ClientInfo(
        pub_key=key_material.public_key_bytes,
        salt=key_material.salt,
        hmac=sign_public_key(share_code, key_material.public_key_bytes, key_material.salt),
    )


def verify_client_info(share_code: str, info: ClientInfo) -> bool:
    """Verify a peer's ClientInfo."""
    return verify_public_key(share_code, info.pub_key, info.hmac, info.salt)
