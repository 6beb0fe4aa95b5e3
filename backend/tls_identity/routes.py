"""
SSL API endpoints for the admin path.

Provides REST endpoints for:
- SSL object validation before it is stored
- Private key encryption for storage
- Certificate info extraction
- TLS library capabilities
"""
import logging
from datetime import datetime
from typing import Any

from fastapi import APIRouter, HTTPException
from pydantic import BaseModel

from .certinfo import parse_certificate
from .codec import aes_encrypt_pkey, encrypt_conf_keys
from .errors import KeyEncryptError, SSLIdentityError
from .validation import check_ssl_conf, support_client_verification


logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/ssl", tags=["SSL"])


# ============================================================================
# Request/Response Models
# ============================================================================


class SSLCheckRequest(BaseModel):
    """Request to validate an SSL object."""

    conf: dict[str, Any]
    # Set when an upstream config path already ran the schema check
    in_dynamic_path: bool = False


class SSLCheckResponse(BaseModel):
    """Validated SSL object, with its keys encrypted for storage."""

    valid: bool
    conf: dict[str, Any]


class EncryptKeyRequest(BaseModel):
    """Request to encrypt a PEM private key."""

    key: str


class EncryptKeyResponse(BaseModel):
    """Stored form of a private key."""

    key: str
    encrypted: bool


class CertificateInfoRequest(BaseModel):
    """Request to inspect a PEM certificate."""

    cert: str


class CertificateInfoResponse(BaseModel):
    """Information extracted from a certificate."""

    subject: str
    issuer: str
    serial_number: str
    not_before: datetime
    not_after: datetime
    domains: list[str]
    chain_length: int
    is_expired: bool


class CapabilitiesResponse(BaseModel):
    """Features supported by the TLS library."""

    client_verification: bool


# ============================================================================
# SSL Object Endpoints
# ============================================================================


@router.post("/check", response_model=SSLCheckResponse)
async def check_ssl(request: SSLCheckRequest):
    """
    Validate an SSL object.

    On success the object is returned ready for storage: private keys are
    encrypted and the validity window is taken from the certificate.
    """
    result = check_ssl_conf(request.in_dynamic_path, request.conf)
    if not result.ok:
        logger.info("[SSL-API] SSL object rejected (%s): %s", result.kind.value, result.error)
        raise HTTPException(status_code=400, detail=result.error)

    try:
        conf = encrypt_conf_keys(request.conf)
    except KeyEncryptError as e:
        raise HTTPException(status_code=500, detail=str(e))

    info = parse_certificate(conf["cert"])
    conf["validity_start"], conf["validity_end"] = info.validity()

    return SSLCheckResponse(valid=True, conf=conf)


@router.post("/encrypt-key", response_model=EncryptKeyResponse)
async def encrypt_key(request: EncryptKeyRequest):
    """Encrypt a private key with the current key ring (no-op when encryption is disabled)."""
    try:
        stored = aes_encrypt_pkey(request.key)
    except KeyEncryptError as e:
        raise HTTPException(status_code=500, detail=str(e))
    return EncryptKeyResponse(key=stored, encrypted=stored != request.key)


@router.post("/certificate-info", response_model=CertificateInfoResponse)
async def certificate_info(request: CertificateInfoRequest):
    """Get subject, issuer, validity and domains of a PEM certificate."""
    try:
        info = parse_certificate(request.cert)
    except SSLIdentityError as e:
        raise HTTPException(status_code=400, detail=f"failed to parse cert: {e}")

    return CertificateInfoResponse(
        subject=info.subject,
        issuer=info.issuer,
        serial_number=info.serial_number,
        not_before=info.not_before,
        not_after=info.not_after,
        domains=info.domains,
        chain_length=info.chain_length,
        is_expired=info.is_expired(),
    )


@router.get("/capabilities", response_model=CapabilitiesResponse)
async def capabilities():
    """Report TLS library capabilities relevant to SSL objects."""
    return CapabilitiesResponse(client_verification=support_client_verification())
