"""compass_publish primitives: stateless building blocks."""

from compass_publish.primitives.errors import (
    ConfigurationError,
    ContextError,
    PublishError,
    RegistryError,
    RegistryReadError,
    RegistryWriteError,
    TransferError,
)
from compass_publish.primitives.http_client import HttpClientPrimitive, HttpResult
from compass_publish.primitives.signing import DIDKey, canonical_json, verify_jws

__all__ = [
    # Errors
    "PublishError",
    "TransferError",
    "ContextError",
    "RegistryError",
    "RegistryReadError",
    "RegistryWriteError",
    "ConfigurationError",
    # Signing
    "DIDKey",
    "canonical_json",
    "verify_jws",
    # HTTP Client
    "HttpResult",
    "HttpClientPrimitive",
]
