"""
Key material codec.

Converts between the exchangeable ExportedKeypair representation
({"schema": ..., "privateKey": <base64>}) and the in-memory signing key
objects, and derives the non-secret identity of a key: its base64 public key
and its address.

Address = "0x" + hex(blake2b-256(scheme flag || public key bytes)).
"""

from __future__ import annotations
import base64
import binascii
import hashlib
from typing import Dict, Type, Union, Any

from pydantic import BaseModel, Field, ValidationError

from ..crypto.ed25519 import Ed25519PrivateKey, Ed25519PublicKey, ED25519_SCHEME, ED25519_FLAG
from ..crypto.secp256k1 import Secp256k1PrivateKey, Secp256k1PublicKey, SECP256K1_SCHEME, SECP256K1_FLAG
from ..runtime.errors import MalformedKeyMaterial, ErrorCode

SigningKey = Union[Ed25519PrivateKey, Secp256k1PrivateKey]
PublicKey = Union[Ed25519PublicKey, Secp256k1PublicKey]

ADDRESS_LENGTH = 32

_PRIVATE_KEY_TYPES: Dict[str, Type] = {
    ED25519_SCHEME: Ed25519PrivateKey,
    SECP256K1_SCHEME: Secp256k1PrivateKey,
}

_PUBLIC_KEY_TYPES: Dict[int, Type] = {
    ED25519_FLAG: Ed25519PublicKey,
    SECP256K1_FLAG: Secp256k1PublicKey,
}


class ExportedKeypair(BaseModel):
    """
    Exchangeable key representation.

    Only ever held transiently (import payload, encrypted payload); never
    persisted as-is.
    """
    key_scheme: str = Field(alias="schema", description="ED25519 or Secp256k1")
    private_key: str = Field(alias="privateKey", description="Base64 private key bytes")

    model_config = {"populate_by_name": True, "frozen": True}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the wire dictionary form."""
        return {"schema": self.key_scheme, "privateKey": self.private_key}

    def __repr__(self) -> str:
        return f"ExportedKeypair(schema='{self.key_scheme}')"

    __str__ = __repr__


def _coerce_exported(exported: Union[ExportedKeypair, Dict[str, Any]]) -> ExportedKeypair:
    if isinstance(exported, ExportedKeypair):
        return exported
    try:
        return ExportedKeypair.model_validate(exported)
    except ValidationError as e:
        # ValidationError text may echo input values
        raise MalformedKeyMaterial(
            "Exported keypair is missing or has invalid fields",
            details={"errors": [err["loc"] for err in e.errors()]}
        )


def to_internal(exported: Union[ExportedKeypair, Dict[str, Any]]) -> SigningKey:
    """
    Decode an exported keypair into a signing key.

    Raises:
        MalformedKeyMaterial: Unknown scheme, bad base64 or invalid key bytes
    """
    exported = _coerce_exported(exported)

    key_type = _PRIVATE_KEY_TYPES.get(exported.key_scheme)
    if key_type is None:
        raise MalformedKeyMaterial(
            f"Unsupported key scheme: {exported.key_scheme}",
            code=ErrorCode.UNSUPPORTED_KEY_SCHEME,
            details={"supported": sorted(_PRIVATE_KEY_TYPES)}
        )

    try:
        raw = base64.b64decode(exported.private_key, validate=True)
    except (binascii.Error, ValueError):
        raise MalformedKeyMaterial("Exported private key is not valid base64")

    try:
        if key_type is Ed25519PrivateKey:
            return Ed25519PrivateKey.from_secret_key(raw)
        return key_type(raw)
    except ValueError as e:
        raise MalformedKeyMaterial(f"Invalid {exported.key_scheme} private key", cause=e)


def to_exported(signing_key: SigningKey) -> ExportedKeypair:
    """Encode a signing key into its exchangeable form."""
    return ExportedKeypair(
        key_scheme=signing_key.scheme,
        private_key=base64.b64encode(signing_key.to_bytes()).decode('ascii')
    )


def public_key_base64(signing_key: SigningKey) -> str:
    """Base64 of the raw public key bytes."""
    return base64.b64encode(signing_key.public_key().to_bytes()).decode('ascii')


def derive_address(public_key: PublicKey) -> str:
    """Derive the account address from a public key."""
    digest = hashlib.blake2b(
        bytes([public_key.flag]) + public_key.to_bytes(),
        digest_size=ADDRESS_LENGTH
    ).digest()
    return "0x" + digest.hex()


def to_serialized_signature(signature: bytes, public_key: PublicKey) -> str:
    """Pack a signature as base64(flag || signature || public key)."""
    return base64.b64encode(bytes([public_key.flag]) + signature + public_key.to_bytes()).decode('ascii')


def parse_serialized_signature(serialized: str) -> tuple[bytes, PublicKey]:
    """
    Unpack base64(flag || signature || public key).

    Returns:
        (signature bytes, public key)

    Raises:
        MalformedKeyMaterial: On unknown flag or bad lengths
    """
    try:
        raw = base64.b64decode(serialized, validate=True)
    except (binascii.Error, ValueError):
        raise MalformedKeyMaterial("Serialized signature is not valid base64")
    if not raw:
        raise MalformedKeyMaterial("Serialized signature is empty")

    public_key_type = _PUBLIC_KEY_TYPES.get(raw[0])
    if public_key_type is None:
        raise MalformedKeyMaterial(f"Unknown signature scheme flag: {raw[0]:#04x}")

    public_key_length = 32 if public_key_type is Ed25519PublicKey else 33
    signature = raw[1:-public_key_length]
    if len(signature) != 64:
        raise MalformedKeyMaterial("Serialized signature has invalid length")
    try:
        public_key = public_key_type(raw[-public_key_length:])
    except ValueError as e:
        raise MalformedKeyMaterial("Serialized signature has an invalid public key", cause=e)
    return signature, public_key


def message_digest(data: bytes) -> bytes:
    """Digest that account signatures are computed over."""
    return hashlib.blake2b(data, digest_size=32).digest()


def verify_serialized_signature(data: bytes, serialized: str) -> bool:
    """Check a serialized account signature over data."""
    signature, public_key = parse_serialized_signature(serialized)
    return public_key.verify(signature, message_digest(data))


__all__ = [
    "SigningKey",
    "PublicKey",
    "ExportedKeypair",
    "to_internal",
    "to_exported",
    "public_key_base64",
    "derive_address",
    "to_serialized_signature",
    "parse_serialized_signature",
    "message_digest",
    "verify_serialized_signature",
]
