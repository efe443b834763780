"""Ed25519 signing primitives for the run's decentralized identity.

Pure cryptographic operations: key material in, did:key identifiers and
JWS envelopes out. No network I/O.
"""

import base64
import json
from dataclasses import dataclass
from typing import Any, Dict

import base58
from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives import serialization
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey,
    Ed25519PublicKey,
)

from compass_publish.primitives.errors import ConfigurationError

DID_KEY_PREFIX = "did:key:"
MB_PREFIX = "z"  # multibase base58btc prefix
ED25519_MULTICODEC = b"\xed\x01"


def canonical_json(data: Any) -> str:
    """Bytes-to-sign form of a payload: sorted keys, no whitespace, ASCII only."""
    return json.dumps(data, sort_keys=True, separators=(",", ":"), ensure_ascii=True)


def b64url_encode(data: bytes) -> str:
    """Base64url without padding, as used in JWS."""
    return base64.urlsafe_b64encode(data).rstrip(b"=").decode("ascii")


def b64url_decode(data: str) -> bytes:
    padding = "=" * (-len(data) % 4)
    return base64.urlsafe_b64decode(data + padding)


def public_key_to_did(public_key: Ed25519PublicKey) -> str:
    """Encode an Ed25519 public key as a did:key identifier."""
    raw = public_key.public_bytes(
        encoding=serialization.Encoding.Raw,
        format=serialization.PublicFormat.Raw,
    )
    return DID_KEY_PREFIX + MB_PREFIX + base58.b58encode(ED25519_MULTICODEC + raw).decode("utf-8")


def did_to_public_key(did: str) -> Ed25519PublicKey:
    """Decode a did:key identifier back into its Ed25519 public key.

    Raises:
        ValueError: If the identifier is not an Ed25519 did:key.
    """
    if not did.startswith(DID_KEY_PREFIX + MB_PREFIX):
        raise ValueError(f"Not a base58btc did:key: {did}")
    decoded = base58.b58decode(did[len(DID_KEY_PREFIX) + 1:])
    if not decoded.startswith(ED25519_MULTICODEC):
        raise ValueError(f"did:key is not an Ed25519 key: {did}")
    return Ed25519PublicKey.from_public_bytes(decoded[len(ED25519_MULTICODEC):])


@dataclass
class DIDKey:
    """An authenticated did:key identity backed by an Ed25519 private key."""

    private_key: Ed25519PrivateKey

    @classmethod
    def from_seed_hex(cls, seed_hex: str) -> "DIDKey":
        """Build the identity from a hex-encoded 32-byte seed.

        Raises:
            ConfigurationError: If the seed is not valid hex or not 32 bytes.
        """
        try:
            seed = bytes.fromhex(seed_hex.strip())
        except ValueError as e:
            raise ConfigurationError("DID key is not valid hex", field="did_key") from e
        if len(seed) != 32:
            raise ConfigurationError(
                f"DID key must be 32 bytes, got {len(seed)}", field="did_key"
            )
        return cls(private_key=Ed25519PrivateKey.from_private_bytes(seed))

    @property
    def id(self) -> str:
        return public_key_to_did(self.private_key.public_key())

    @property
    def kid(self) -> str:
        """Verification method id (did#fragment, fragment is the multibase key)."""
        did = self.id
        return f"{did}#{did[len(DID_KEY_PREFIX):]}"

    def sign_jws(self, payload: Dict[str, Any]) -> Dict[str, Any]:
        """Sign a payload and return a general-serialization JWS.

        The payload is serialized as canonical JSON so the same content
        always yields the same signing input.
        """
        protected = b64url_encode(
            json.dumps({"alg": "EdDSA", "kid": self.kid}, separators=(",", ":")).encode("utf-8")
        )
        encoded_payload = b64url_encode(canonical_json(payload).encode("utf-8"))
        signing_input = f"{protected}.{encoded_payload}".encode("ascii")
        signature = self.private_key.sign(signing_input)
        return {
            "payload": encoded_payload,
            "signatures": [{"protected": protected, "signature": b64url_encode(signature)}],
        }


def verify_jws(jws: Dict[str, Any]) -> bool:
    """Verify a JWS produced by DIDKey.sign_jws against the did:key in its kid.

    Returns:
        True if every signature is valid, False otherwise.
    """
    try:
        for entry in jws["signatures"]:
            header = json.loads(b64url_decode(entry["protected"]))
            did = header["kid"].split("#", 1)[0]
            public_key = did_to_public_key(did)
            signing_input = f"{entry['protected']}.{jws['payload']}".encode("ascii")
            public_key.verify(b64url_decode(entry["signature"]), signing_input)
        return bool(jws["signatures"])
    except (InvalidSignature, KeyError, ValueError, TypeError):
        return False


def decode_jws_payload(jws: Dict[str, Any]) -> Dict[str, Any]:
    return json.loads(b64url_decode(jws["payload"]))
