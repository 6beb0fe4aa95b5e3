"""
Error types and the result value returned by public SSL operations.
"""
from dataclasses import dataclass
from enum import Enum
from typing import Generic, Optional, TypeVar

T = TypeVar("T")


class ErrorKind(str, Enum):
    """Category of an SSL identity failure."""

    CONFIGURATION = "configuration"
    CONTENT = "content"
    CAPABILITY = "capability"
    HANDSHAKE = "handshake"


class SSLIdentityError(Exception):
    """Base error for SSL identity resolution."""

    kind = ErrorKind.CONTENT


class ConfigurationError(SSLIdentityError):
    """The SSL configuration was rejected."""

    kind = ErrorKind.CONFIGURATION


class KeyRingError(ConfigurationError):
    """
    A key ring entry passed validation but the cipher could not be built.

    Raised at startup and never converted into a result.
    """

    pass


class ContentError(SSLIdentityError):
    """Certificate or key content could not be used."""

    kind = ErrorKind.CONTENT


class KeyDecryptError(ContentError):
    """A stored private key could not be decrypted."""

    pass


class KeyEncryptError(ContentError):
    """A private key could not be encrypted and fail-open is disabled."""

    pass


class CapabilityError(SSLIdentityError):
    """The TLS library lacks a feature the configuration needs."""

    kind = ErrorKind.CAPABILITY


class SNIError(SSLIdentityError):
    """The TLS layer could not supply the requested server name."""

    kind = ErrorKind.HANDSHAKE


@dataclass
class SSLResult(Generic[T]):
    """Outcome of a public SSL operation."""

    value: Optional[T] = None
    error: Optional[str] = None
    kind: Optional[ErrorKind] = None

    @property
    def ok(self) -> bool:
        return self.error is None

    @classmethod
    def success(cls, value: Optional[T] = None) -> "SSLResult[T]":
        return cls(value=value)

    @classmethod
    def failure(cls, error: str, kind: ErrorKind = ErrorKind.CONTENT) -> "SSLResult[T]":
        return cls(error=error, kind=kind)

    @classmethod
    def from_exception(cls, exc: SSLIdentityError, prefix: str = "") -> "SSLResult[T]":
        return cls(error=f"{prefix}{exc}", kind=exc.kind)
