"""
Certificate and private key lookup for the handshake path.

Parsing PEM is the expensive step, so results go through the global
parsed-object caches keyed by the raw content.
"""
import logging

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from cache import get_cert_cache, get_pkey_cache

from .codec import aes_decrypt_pkey
from .errors import ContentError, KeyDecryptError, SSLIdentityError, SSLResult

logger = logging.getLogger(__name__)

# Errors cryptography raises for content it cannot load
PARSE_ERRORS = (ValueError, TypeError, UnsupportedAlgorithm)


def load_cert_chain(cert: str) -> list[x509.Certificate]:
    """
    Parse a PEM certificate, followed by any intermediates.

    Raises:
        ContentError: If no certificate can be loaded
    """
    if not isinstance(cert, str):
        raise ContentError("certificate must be a string")
    try:
        chain = x509.load_pem_x509_certificates(cert.encode("utf-8"))
    except PARSE_ERRORS as e:
        raise ContentError(str(e) or type(e).__name__) from e
    return chain


def load_private_key(pkey: str) -> PrivateKeyTypes:
    """
    Parse an unencrypted PEM private key.

    Raises:
        ContentError: If the key cannot be loaded
    """
    if not isinstance(pkey, str):
        raise ContentError("private key must be a string")
    try:
        return serialization.load_pem_private_key(pkey.encode("utf-8"), password=None)
    except PARSE_ERRORS as e:
        raise ContentError(str(e) or type(e).__name__) from e


def _parse_pem_cert(sni: str, cert: str) -> list[x509.Certificate]:
    logger.debug("[SSL-FETCH] Parsing cert for sni: %s", sni)
    return load_cert_chain(cert)


def _parse_pem_priv_key(sni: str, pkey: str) -> PrivateKeyTypes:
    logger.debug("[SSL-FETCH] Parsing priv key for sni: %s", sni)
    return load_private_key(aes_decrypt_pkey(pkey))


def fetch_cert(sni: str, cert: str) -> SSLResult[list[x509.Certificate]]:
    """Get the parsed certificate chain for a PEM string, parsing it on a cache miss."""
    try:
        chain = get_cert_cache().get_or_parse(cert, _parse_pem_cert, sni, cert)
    except SSLIdentityError as e:
        logger.error("[SSL-FETCH] Failed to parse cert for sni %s: %s", sni, e)
        return SSLResult.from_exception(e, "failed to parse cert: ")
    return SSLResult.success(chain)


def fetch_pkey(sni: str, pkey: str) -> SSLResult[PrivateKeyTypes]:
    """Get the parsed private key for a stored key, decrypting and parsing it on a cache miss."""
    try:
        key = get_pkey_cache().get_or_parse(pkey, _parse_pem_priv_key, sni, pkey)
    except KeyDecryptError as e:
        logger.error("[SSL-FETCH] Failed to decrypt priv key for sni %s: %s", sni, e)
        return SSLResult.from_exception(e)
    except SSLIdentityError as e:
        logger.error("[SSL-FETCH] Failed to load priv key for sni %s: %s", sni, e)
        return SSLResult.from_exception(e, "failed to parse key: ")
    return SSLResult.success(key)
