"""
Certificate info extraction for the admin API.
"""
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Optional

from cryptography import x509
from cryptography.x509.oid import NameOID

from .fetch import load_cert_chain

logger = logging.getLogger(__name__)


@dataclass
class CertificateInfo:
    """Information extracted from a certificate."""

    subject: str
    issuer: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    domains: list[str] = field(default_factory=list)  # Subject CN + SANs
    chain_length: int = 1

    def is_expired(self, now: Optional[datetime] = None) -> bool:
        """Check if certificate is expired."""
        return (now or datetime.now(timezone.utc)) > self.not_after

    def validity(self) -> tuple[int, int]:
        """Validity window as unix timestamps."""
        return int(self.not_before.timestamp()), int(self.not_after.timestamp())


def _common_name(name: x509.Name) -> str:
    attrs = name.get_attributes_for_oid(NameOID.COMMON_NAME)
    if attrs:
        return str(attrs[0].value)
    return ""


def parse_certificate(cert_pem: str) -> CertificateInfo:
    """
    Parse a PEM certificate (leaf first) and extract info.

    Raises:
        ContentError: If the certificate cannot be parsed
    """
    chain = load_cert_chain(cert_pem)
    cert = chain[0]

    subject_cn = _common_name(cert.subject)
    domains = [subject_cn] if subject_cn else []

    try:
        san_ext = cert.extensions.get_extension_for_class(x509.SubjectAlternativeName)
        for name in san_ext.value.get_values_for_type(x509.DNSName):
            if name not in domains:
                domains.append(name)
    except x509.ExtensionNotFound as e:
        logger.debug("[SSL-CERTINFO] No SAN extension: %s", e)

    return CertificateInfo(
        subject=subject_cn,
        issuer=_common_name(cert.issuer),
        serial_number=format(cert.serial_number, "x"),
        not_before=cert.not_valid_before_utc,
        not_after=cert.not_valid_after_utc,
        domains=domains,
        chain_length=len(chain),
    )
