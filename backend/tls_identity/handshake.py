"""
Certificate selection during the TLS handshake.

Plugs into ``ssl.SSLContext.sni_callback``: the requested server name is
resolved, the matching SSL object is looked up, and a server context
loaded with its certificate(s) and key(s) is swapped onto the connection.
Contexts are cached by the content they were built from.
"""
import logging
import os
import secrets
import ssl
import tempfile
from typing import Callable, Optional

from cryptography import x509
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.types import PrivateKeyTypes

from cache import get_context_cache

from .errors import ContentError, ErrorKind, SSLIdentityError, SSLResult
from .fetch import fetch_cert, fetch_pkey
from .schema import SSLConfig
from .sni import StaticHandshake, server_name as resolve_server_name
from .validation import check_ssl_conf

logger = logging.getLogger(__name__)

TLS_VERSIONS = {
    "TLSv1.1": ssl.TLSVersion.TLSv1_1,
    "TLSv1.2": ssl.TLSVersion.TLSv1_2,
    "TLSv1.3": ssl.TLSVersion.TLSv1_3,
}

SSLLookup = Callable[[Optional[str]], Optional[SSLConfig]]


class SNIMatcher:
    """
    Maps server names to SSL objects.

    Exact names win over wildcards; ``*.example.com`` covers exactly one
    extra label.
    """

    def __init__(self):
        self._exact: dict[str, SSLConfig] = {}
        self._wildcard: dict[str, SSLConfig] = {}

    def add(self, conf: SSLConfig) -> SSLResult[bool]:
        """Validate and register an SSL object; rejected objects are not served."""
        result = check_ssl_conf(True, conf)
        if not result.ok:
            logger.warning("[SSL-HANDSHAKE] Not serving ssl object %s: %s", conf.id, result.error)
            return result

        if conf.status == 0 or conf.type != "server":
            return SSLResult.success(False)

        for name in conf.server_names():
            if name.startswith("*."):
                self._wildcard[name[1:]] = conf
            else:
                self._exact[name] = conf
        return SSLResult.success(True)

    def match(self, sni: Optional[str]) -> Optional[SSLConfig]:
        if not sni:
            return None
        conf = self._exact.get(sni)
        if conf is not None:
            return conf
        dot = sni.find(".")
        if dot > 0:
            return self._wildcard.get(sni[dot:])
        return None

    __call__ = match


def _load_pair(
    context: ssl.SSLContext,
    chain: list[x509.Certificate],
    key: PrivateKeyTypes,
) -> None:
    # load_cert_chain only reads files; the key is written encrypted
    # under a one-off password and removed right after loading.
    password = secrets.token_bytes(32)
    cert_pem = b"".join(cert.public_bytes(serialization.Encoding.PEM) for cert in chain)
    key_pem = key.private_bytes(
        serialization.Encoding.PEM,
        serialization.PrivateFormat.PKCS8,
        serialization.BestAvailableEncryption(password),
    )

    with tempfile.TemporaryDirectory(prefix="ssl-identity-") as tmp_dir:
        cert_file = os.path.join(tmp_dir, "cert.pem")
        key_file = os.path.join(tmp_dir, "key.pem")
        with open(cert_file, "wb") as f:
            f.write(cert_pem)
        with open(os.open(key_file, os.O_WRONLY | os.O_CREAT, 0o600), "wb") as f:
            f.write(key_pem)
        context.load_cert_chain(cert_file, key_file, password=password)


class SNIContextSelector:
    """Selects the server context for each handshake from its SNI."""

    def __init__(self, lookup: SSLLookup):
        """
        Args:
            lookup: Returns the SSL object for a server name, or None
        """
        self._lookup = lookup

    def _new_context(
        self,
        pairs: list[tuple[list[x509.Certificate], PrivateKeyTypes]],
        conf: SSLConfig,
    ) -> ssl.SSLContext:
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        try:
            for chain, key in pairs:
                _load_pair(context, chain, key)

            if conf.client is not None:
                context.load_verify_locations(cadata=conf.client.ca)
                context.verify_mode = ssl.CERT_REQUIRED
        except ssl.SSLError as e:
            raise ContentError(f"failed to load certificate into ssl context: {e}") from e

        if conf.ssl_protocols:
            versions = sorted(TLS_VERSIONS[name] for name in conf.ssl_protocols)
            context.minimum_version = versions[0]
            context.maximum_version = versions[-1]

        return context

    def build_context(self, sni: Optional[str], conf: SSLConfig) -> SSLResult[ssl.SSLContext]:
        """Get the server context for an SSL object, building it on a cache miss."""
        certs = [conf.cert] + list(conf.certs or [])
        keys = [conf.key] + list(conf.keys or [])
        if len(certs) != len(keys):
            return SSLResult.failure("mismatched number of certs and keys")

        pairs = []
        for cert, key in zip(certs, keys):
            cert_result = fetch_cert(sni, cert)
            if not cert_result.ok:
                return SSLResult(error=cert_result.error, kind=cert_result.kind)
            key_result = fetch_pkey(sni, key)
            if not key_result.ok:
                return SSLResult(error=key_result.error, kind=key_result.kind)
            pairs.append((cert_result.value, key_result.value))

        cache_key = (
            tuple(certs),
            tuple(keys),
            conf.client.ca if conf.client else None,
            tuple(conf.ssl_protocols or ()),
        )
        try:
            context = get_context_cache().get_or_parse(cache_key, self._new_context, pairs, conf)
        except SSLIdentityError as e:
            logger.error("[SSL-HANDSHAKE] Failed to build context for sni %s: %s", sni, e)
            return SSLResult.from_exception(e)
        return SSLResult.success(context)

    def sni_callback(
        self,
        ssl_object: ssl.SSLObject,
        server_name: Optional[str],
        ssl_context: ssl.SSLContext,
    ) -> Optional[int]:
        """Callback for ``SSLContext.sni_callback``; returns an alert to abort."""
        resolved = resolve_server_name(StaticHandshake(server_name))
        if not resolved.ok:
            return ssl.ALERT_DESCRIPTION_HANDSHAKE_FAILURE

        sni = resolved.value
        conf = self._lookup(sni)
        if conf is None:
            logger.warning("[SSL-HANDSHAKE] No certificate found for sni: %s", sni)
            return ssl.ALERT_DESCRIPTION_UNRECOGNIZED_NAME

        result = self.build_context(sni, conf)
        if not result.ok:
            if result.kind == ErrorKind.CONTENT:
                return ssl.ALERT_DESCRIPTION_INTERNAL_ERROR
            return ssl.ALERT_DESCRIPTION_HANDSHAKE_FAILURE

        ssl_object.context = result.value
        return None

    def server_context(self) -> ssl.SSLContext:
        """A base server context that delegates certificate selection to this selector."""
        context = ssl.SSLContext(ssl.PROTOCOL_TLS_SERVER)
        context.sni_callback = self.sni_callback
        return context
