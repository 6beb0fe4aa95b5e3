"""
SSL identity resolution module.

Selects, decrypts, parses, validates and caches the certificate and
private key served for each TLS handshake:
- SNI resolution with a configurable fallback
- Encryption of stored private keys under a rotatable key ring
- Content-keyed LRU/TTL caches of parsed certificates and keys
- Validation of SSL objects before they are applied
"""

from .codec import aes_decrypt_pkey, aes_encrypt_pkey, encrypt_conf_keys
from .errors import (
    ErrorKind,
    SSLIdentityError,
    SSLResult,
)
from .fetch import fetch_cert, fetch_pkey
from .handshake import SNIContextSelector, SNIMatcher
from .keyring import get_key_ring, reset_key_ring
from .schema import SSLConfig, check_schema
from .settings import (
    SSLSettings,
    get_ssl_settings,
    set_ssl_settings,
    clear_ssl_settings_cache,
)
from .sni import StaticHandshake, server_name
from .validation import check_ssl_conf, support_client_verification, validate

__all__ = [
    "ErrorKind",
    "SSLIdentityError",
    "SSLResult",
    "SSLConfig",
    "SSLSettings",
    "SNIContextSelector",
    "SNIMatcher",
    "StaticHandshake",
    "aes_decrypt_pkey",
    "aes_encrypt_pkey",
    "check_schema",
    "check_ssl_conf",
    "clear_ssl_settings_cache",
    "encrypt_conf_keys",
    "fetch_cert",
    "fetch_pkey",
    "get_key_ring",
    "get_ssl_settings",
    "reset_key_ring",
    "server_name",
    "set_ssl_settings",
    "support_client_verification",
    "validate",
]
