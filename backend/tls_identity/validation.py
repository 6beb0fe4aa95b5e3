"""
Validation of certificates, keys and whole SSL objects.

Runs when a configuration is applied, not per handshake, and parses
directly instead of going through the handshake caches.
"""
import logging
import ssl
from typing import Any, Mapping, Optional, Union

from .codec import aes_decrypt_pkey
from .errors import ErrorKind, KeyDecryptError, SSLIdentityError, SSLResult
from .fetch import load_cert_chain, load_private_key
from .schema import SSLConfig, check_schema

logger = logging.getLogger(__name__)


def validate(cert: str, key: Optional[str] = None) -> SSLResult[bool]:
    """
    Check that a certificate, and optionally its key, can be loaded.

    Without a key only the certificate is checked (client CA). Whether
    the key belongs to the certificate is not checked.
    """
    if not isinstance(cert, str):
        return SSLResult.failure("failed to parse cert: certificate is missing")

    try:
        load_cert_chain(cert)
    except SSLIdentityError as e:
        return SSLResult.from_exception(e, "failed to parse cert: ")

    if key is None:
        return SSLResult.success(True)
    if not isinstance(key, str):
        return SSLResult.failure("failed to parse key: private key must be a string")

    try:
        key = aes_decrypt_pkey(key)
    except KeyDecryptError:
        return SSLResult.failure("failed to decrypt previous encrypted key")

    try:
        load_private_key(key)
    except SSLIdentityError as e:
        return SSLResult.from_exception(e, "failed to parse key: ")

    return SSLResult.success(True)


def support_client_verification() -> bool:
    """Check if the TLS library can verify client certificates."""
    return (
        getattr(ssl, "CERT_REQUIRED", None) is not None
        and hasattr(ssl.SSLContext, "load_verify_locations")
    )


def check_ssl_conf(
    in_dynamic_path: bool,
    conf: Union[SSLConfig, Mapping[str, Any]],
) -> SSLResult[bool]:
    """
    Validate an SSL object before it is applied.

    Args:
        in_dynamic_path: True when the caller already ran the schema check
        conf: The SSL object

    Returns:
        Result carrying the first error found
    """
    if isinstance(conf, SSLConfig):
        conf = conf.model_dump(exclude_none=True)

    if not in_dynamic_path:
        ok, err = check_schema(conf)
        if not ok:
            logger.info("[SSL-CHECK] Rejected ssl object %s: %s", conf.get("id"), err)
            return SSLResult.failure(f"invalid configuration: {err}", ErrorKind.CONFIGURATION)

    result = validate(conf.get("cert"), conf.get("key"))
    if not result.ok:
        return result

    if conf.get("type") == "client":
        return SSLResult.success(True)

    certs = conf.get("certs") or []
    keys = conf.get("keys") or []
    if len(certs) != len(keys):
        return SSLResult.failure("mismatched number of certs and keys")

    for i, (cert, key) in enumerate(zip(certs, keys), start=1):
        result = validate(cert, key)
        if not result.ok:
            return SSLResult.failure(
                f"failed to handle cert-key pair[{i}]: {result.error}", result.kind
            )

    client = conf.get("client")
    if client:
        if not support_client_verification():
            return SSLResult.failure("client tls verify unsupported", ErrorKind.CAPABILITY)

        result = validate(client.get("ca"), None)
        if not result.ok:
            return SSLResult.failure(
                f"failed to validate client_cert: {result.error}", result.kind
            )

    return SSLResult.success(True)
