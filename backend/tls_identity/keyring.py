"""
Encryption key ring for private keys stored at rest.

The ring is built once from ``key_encrypt_salt`` and holds one
AES-128-CBC cipher per valid salt, with the salt used as both key and IV.
Entry 0 encrypts; every entry is tried in order when decrypting, so a
retired salt kept at the end of the list still opens old material.
"""
import logging
import threading
from typing import Any, Optional, Sequence, Union

from cryptography.hazmat.primitives import padding
from cryptography.hazmat.primitives.ciphers import Cipher, algorithms, modes

from .errors import KeyRingError
from .settings import get_ssl_settings

logger = logging.getLogger(__name__)

SALT_LENGTH = 16

SaltConfig = Union[str, Sequence[Any], None]


class KeyRingEntry:
    """AES-128-CBC cipher bound to one 16 byte key/IV pair."""

    __slots__ = ("_cipher",)

    def __init__(self, salt: bytes):
        try:
            self._cipher = Cipher(algorithms.AES(salt), modes.CBC(salt))
        except (ValueError, TypeError) as e:
            raise KeyRingError(f"failed to create AES-128-CBC cipher: {e}") from e

    def encrypt(self, plaintext: bytes) -> bytes:
        padder = padding.PKCS7(algorithms.AES.block_size).padder()
        padded = padder.update(plaintext) + padder.finalize()
        encryptor = self._cipher.encryptor()
        return encryptor.update(padded) + encryptor.finalize()

    def decrypt(self, ciphertext: bytes) -> bytes:
        """Decrypt and unpad; raises ValueError on a wrong key or bad input."""
        decryptor = self._cipher.decryptor()
        padded = decryptor.update(ciphertext) + decryptor.finalize()
        unpadder = padding.PKCS7(algorithms.AES.block_size).unpadder()
        return unpadder.update(padded) + unpadder.finalize()


def _salt_bytes(candidate: Any) -> Optional[bytes]:
    if not isinstance(candidate, str):
        return None
    raw = candidate.encode("utf-8")
    if len(raw) != SALT_LENGTH:
        return None
    return raw


def build_key_ring(salt: SaltConfig) -> tuple[KeyRingEntry, ...]:
    """
    Build the ordered key ring from a single salt or a list of salts.

    Invalid salts are logged and skipped. A salt that passes validation but
    cannot produce a cipher raises KeyRingError.
    """
    entries: list[KeyRingEntry] = []

    if salt is None:
        return ()

    if isinstance(salt, str):
        raw = _salt_bytes(salt)
        if raw is None:
            logger.warning(
                "[SSL-KEYRING] key_encrypt_salt must be %d bytes, encryption disabled",
                SALT_LENGTH,
            )
            return ()
        entries.append(KeyRingEntry(raw))
    elif isinstance(salt, (list, tuple)):
        for index, candidate in enumerate(salt):
            raw = _salt_bytes(candidate)
            if raw is None:
                logger.error(
                    "[SSL-KEYRING] the key_encrypt_salt does not meet the requirements, index: %d",
                    index,
                )
                continue
            entries.append(KeyRingEntry(raw))
    else:
        logger.warning(
            "[SSL-KEYRING] Ignoring key_encrypt_salt of type %s", type(salt).__name__
        )

    logger.info("[SSL-KEYRING] Key ring built with %d entries", len(entries))
    return tuple(entries)


_key_ring: Optional[tuple[KeyRingEntry, ...]] = None
_key_ring_lock = threading.Lock()


def get_key_ring() -> tuple[KeyRingEntry, ...]:
    """Get the process-wide key ring, building it on first use."""
    global _key_ring

    ring = _key_ring
    if ring is not None:
        return ring

    with _key_ring_lock:
        if _key_ring is None:
            _key_ring = build_key_ring(get_ssl_settings().key_encrypt_salt)
        return _key_ring


def reset_key_ring() -> None:
    """Drop the key ring so the next use rebuilds it (full reload only)."""
    global _key_ring
    with _key_ring_lock:
        _key_ring = None
    logger.info("[SSL-KEYRING] Key ring reset")
