"""
SSL identity configuration settings.

Manages the process-wide SSL options consumed on the handshake path:
the SNI fallback, the private key encryption salts and the sizing of
the parsed-object caches.
"""
import json
import logging
import os
from pathlib import Path
from typing import Any, Optional, Union

from pydantic import BaseModel, field_validator


logger = logging.getLogger(__name__)

# Config file location
CONFIG_DIR = Path(os.environ.get("CONFIG_DIR", "/config"))
SSL_CONFIG_FILE = CONFIG_DIR / "ssl_settings.json"


class SSLSettings(BaseModel):
    """SSL identity resolution configuration."""

    # Host name served when the client sends no SNI
    fallback_sni: Optional[str] = None

    # 16 byte salt, or a list of them (first one encrypts, all decrypt).
    # List items are checked when the key ring is built so a single bad
    # entry is skipped instead of rejecting the whole file.
    key_encrypt_salt: Optional[Union[str, list[Any]]] = None

    # Parsed-object cache policy (applies to certs, keys and contexts)
    cache_ttl: int = 3600
    cache_count: int = 1024

    # Return the plaintext key when encryption fails instead of raising.
    # Keeps the admin path available at the cost of storing the key unencrypted.
    encrypt_fail_open: bool = True

    @field_validator("fallback_sni")
    @classmethod
    def validate_fallback_sni(cls, v: Optional[str]) -> Optional[str]:
        """Strip whitespace, treat blank as unset."""
        if v is not None:
            v = v.strip()
            if not v:
                return None
        return v

    @field_validator("cache_ttl", "cache_count")
    @classmethod
    def validate_positive(cls, v: int) -> int:
        """Cache bounds must be positive."""
        if v <= 0:
            raise ValueError("must be greater than 0")
        return v


# In-memory cache of SSL settings
_cached_ssl_settings: Optional[SSLSettings] = None


def load_ssl_settings() -> SSLSettings:
    """Load SSL settings from file or return defaults."""
    global _cached_ssl_settings

    if _cached_ssl_settings is not None:
        return _cached_ssl_settings

    logger.info("[SSL-SETTINGS] Loading SSL settings from %s", SSL_CONFIG_FILE)

    if SSL_CONFIG_FILE.exists():
        try:
            data = json.loads(SSL_CONFIG_FILE.read_text())
            _cached_ssl_settings = SSLSettings(**data)
            logger.info(
                "[SSL-SETTINGS] Loaded SSL settings, fallback_sni: %s, cache: %s entries / %ss",
                _cached_ssl_settings.fallback_sni,
                _cached_ssl_settings.cache_count,
                _cached_ssl_settings.cache_ttl,
            )
            return _cached_ssl_settings
        except Exception as e:
            logger.error("[SSL-SETTINGS] Failed to load SSL settings: %s", e)

    logger.info("[SSL-SETTINGS] Using default SSL settings (no config file found)")
    _cached_ssl_settings = SSLSettings()
    return _cached_ssl_settings


def set_ssl_settings(settings: SSLSettings) -> None:
    """Install settings provided by the embedding process."""
    global _cached_ssl_settings
    _cached_ssl_settings = settings
    logger.info("[SSL-SETTINGS] SSL settings replaced")


def clear_ssl_settings_cache() -> None:
    """Clear the cached SSL settings (forces reload)."""
    global _cached_ssl_settings
    _cached_ssl_settings = None
    logger.info("[SSL-SETTINGS] SSL settings cache cleared")


def get_ssl_settings() -> SSLSettings:
    """Get the current SSL settings."""
    return load_ssl_settings()
