"""
Encryption of private keys for storage and their decryption on load.

Stored keys are either plaintext PEM or Base64(AES-128-CBC(PEM)); the
two forms are told apart by the PEM marker prefix.
"""
import base64
import binascii
import logging
from typing import Any, Mapping

from .errors import ContentError, KeyDecryptError, KeyEncryptError
from .keyring import get_key_ring
from .settings import get_ssl_settings

logger = logging.getLogger(__name__)

PEM_MARKER_PREFIX = "---"


def is_plain_pem(value: str) -> bool:
    """Check if a stored value is an unencrypted PEM block."""
    return value.startswith(PEM_MARKER_PREFIX)


def aes_encrypt_pkey(origin: str) -> str:
    """
    Encrypt a plaintext PEM private key with the first key ring entry.

    Values that are not plaintext PEM, or an empty key ring, are returned
    unchanged, so encrypting twice is a no-op.

    Raises:
        KeyEncryptError: If encryption fails and fail-open is disabled
    """
    ring = get_key_ring()
    if not ring or not is_plain_pem(origin):
        return origin

    try:
        encrypted = ring[0].encrypt(origin.encode("utf-8"))
    except (ValueError, TypeError) as e:
        if not get_ssl_settings().encrypt_fail_open:
            raise KeyEncryptError(f"failed to encrypt key: {e}") from e
        logger.error("[SSL-CODEC] Failed to encrypt key, storing it unencrypted: %s", e)
        return origin

    return base64.b64encode(encrypted).decode("ascii")


def aes_decrypt_pkey(origin: str) -> str:
    """
    Decrypt a stored private key.

    Plaintext PEM passes through. With an empty key ring the value is
    returned as is. Otherwise each ring entry is tried in order.

    Raises:
        ContentError: If the value is not a string
        KeyDecryptError: If the value is not Base64 or no entry decrypts it
    """
    if not isinstance(origin, str):
        raise ContentError("private key must be a string")
    if is_plain_pem(origin):
        return origin

    ring = get_key_ring()
    if not ring:
        return origin

    try:
        decoded = base64.b64decode(origin, validate=True)
    except (binascii.Error, ValueError) as e:
        logger.error("[SSL-CODEC] Base64 decode of stored key failed: %s", e)
        raise KeyDecryptError("malformed stored key") from e

    for index, entry in enumerate(ring):
        try:
            decrypted = entry.decrypt(decoded).decode("utf-8")
        except ValueError:
            continue
        # A wrong key can still yield valid padding; only PEM counts as a hit
        if is_plain_pem(decrypted):
            if index:
                logger.debug("[SSL-CODEC] Key decrypted with key ring entry %d", index)
            return decrypted

    logger.error("[SSL-CODEC] Decrypt ssl key failed with %d key ring entries", len(ring))
    raise KeyDecryptError("failed to decrypt key")


def encrypt_conf_keys(conf: Mapping[str, Any]) -> dict[str, Any]:
    """Return a copy of an SSL config with its private keys encrypted for storage."""
    encrypted = dict(conf)
    if encrypted.get("key"):
        encrypted["key"] = aes_encrypt_pkey(encrypted["key"])
    if encrypted.get("keys"):
        encrypted["keys"] = [aes_encrypt_pkey(key) for key in encrypted["keys"]]
    return encrypted
