"""
Schema for SSL objects as submitted through the admin path.
"""
import re
from typing import Annotated, Any, Literal, Mapping, Optional

from pydantic import BaseModel, Field, StringConstraints, ValidationError, field_validator, model_validator

# Shortest PEM block the gateway accepts, longest object it stores
PEM_MIN_LENGTH = 128
PEM_MAX_LENGTH = 64 * 1024
MAX_EXTRA_PAIRS = 16

HOST_PATTERN = r"^\*?[0-9a-zA-Z\-._\[\]:]+$"

PemString = Annotated[str, StringConstraints(min_length=PEM_MIN_LENGTH, max_length=PEM_MAX_LENGTH)]
HostName = Annotated[str, StringConstraints(pattern=HOST_PATTERN)]


class ClientVerification(BaseModel):
    """Mutual TLS settings for an SSL object."""

    # CA used to verify client certificates
    ca: PemString
    # Maximum client chain depth; stored for the embedding proxy, the
    # handshake selector does not apply it
    depth: int = Field(default=1, ge=0)
    # Request URIs the embedding proxy exempts from client certificate
    # checks; not applied at handshake time
    skip_mtls_uri_regex: Optional[list[str]] = Field(default=None, min_length=1)

    @field_validator("skip_mtls_uri_regex")
    @classmethod
    def validate_regex(cls, v: Optional[list[str]]) -> Optional[list[str]]:
        """Each pattern must compile."""
        if v:
            for pattern in v:
                try:
                    re.compile(pattern)
                except re.error as e:
                    raise ValueError(f"invalid regex {pattern!r}: {e}")
        return v


class SSLConfig(BaseModel):
    """An SSL object: certificate/key pairs and the server names they serve."""

    id: Optional[str] = None
    type: Literal["server", "client"] = "server"

    # Primary pair
    cert: PemString
    key: PemString

    # Extra pairs, e.g. an ECC certificate next to an RSA one
    certs: Optional[list[PemString]] = Field(default=None, max_length=MAX_EXTRA_PAIRS)
    keys: Optional[list[PemString]] = Field(default=None, max_length=MAX_EXTRA_PAIRS)

    sni: Optional[HostName] = None
    snis: Optional[list[HostName]] = Field(default=None, min_length=1)

    client: Optional[ClientVerification] = None

    labels: Optional[dict[str, str]] = None
    status: Literal[0, 1] = 1
    ssl_protocols: Optional[list[Literal["TLSv1.1", "TLSv1.2", "TLSv1.3"]]] = None

    # Filled from the certificate when the object is stored
    validity_start: Optional[int] = None
    validity_end: Optional[int] = None

    @model_validator(mode="after")
    def validate_server_names(self) -> "SSLConfig":
        """Server objects need exactly one of sni / snis."""
        if self.type == "server":
            if self.sni is None and self.snis is None:
                raise ValueError("server ssl requires sni or snis")
            if self.sni is not None and self.snis is not None:
                raise ValueError("only one of sni and snis may be set")
        return self

    def server_names(self) -> list[str]:
        """All server names this object serves, lower-cased."""
        names = self.snis if self.snis is not None else [self.sni] if self.sni else []
        return [name.lower() for name in names]


def _format_error(e: ValidationError) -> str:
    error = e.errors()[0]
    location = ".".join(str(part) for part in error["loc"])
    if location:
        return f"{location}: {error['msg']}"
    return error["msg"]


def check_schema(conf: Mapping[str, Any]) -> tuple[bool, Optional[str]]:
    """
    Check an SSL object against the schema.

    Returns:
        Tuple of (valid, error_message)
    """
    try:
        SSLConfig.model_validate(conf)
    except ValidationError as e:
        return False, _format_error(e)
    return True, None
