"""
Server name (SNI) resolution for the current handshake.
"""
import logging
from dataclasses import dataclass
from typing import Optional, Protocol

from .errors import ErrorKind, SNIError, SSLResult
from .settings import get_ssl_settings

logger = logging.getLogger(__name__)


class HandshakeContext(Protocol):
    """What the TLS layer exposes about the handshake in progress."""

    def server_name(self) -> Optional[str]:
        """
        Return the SNI sent by the client, or None if it sent none.

        Raises:
            SNIError: If the TLS layer cannot read the server name
        """
        ...


@dataclass(frozen=True)
class StaticHandshake:
    """Handshake context for a server name already extracted by the TLS layer."""

    name: Optional[str] = None

    def server_name(self) -> Optional[str]:
        return self.name


def server_name(handshake: HandshakeContext) -> SSLResult[str]:
    """
    Resolve the lower-cased server name of a handshake.

    Falls back to ``fallback_sni`` when the client sent none. The result
    value is None (and the result still ok) when neither is available.
    """
    try:
        sni = handshake.server_name()
    except SNIError as e:
        logger.warning("[SSL-SNI] Failed to read server name: %s", e)
        return SSLResult.failure(str(e), ErrorKind.HANDSHAKE)

    if not sni:
        sni = get_ssl_settings().fallback_sni
        if not sni:
            return SSLResult.success(None)
        logger.debug("[SSL-SNI] No SNI sent, using fallback %s", sni)

    return SSLResult.success(sni.lower())
