"""
Ed25519 signing keys.

Thin wrappers over the `cryptography` Ed25519 primitives exposing the
operations the vault needs: raw byte (de)serialization, public key
derivation, signing and verification. Private key objects never render their
secret bytes in str()/repr().
"""

from __future__ import annotations
from typing import Union

from cryptography.exceptions import InvalidSignature
from cryptography.hazmat.primitives.asymmetric.ed25519 import (
    Ed25519PrivateKey as CryptoEd25519PrivateKey,
    Ed25519PublicKey as CryptoEd25519PublicKey
)
from cryptography.hazmat.primitives import serialization

ED25519_SCHEME = "ED25519"
ED25519_FLAG = 0x00

PRIVATE_KEY_LENGTH = 32
PUBLIC_KEY_LENGTH = 32
SIGNATURE_LENGTH = 64


class Ed25519Error(ValueError):
    """Invalid Ed25519 key or signature encoding."""
    pass


class Ed25519PublicKey:
    """
    Ed25519 public key.

    Provides verification operations and serialization.
    """

    scheme = ED25519_SCHEME
    flag = ED25519_FLAG

    def __init__(self, public_key_bytes: bytes):
        """
        Initialize from 32-byte public key.

        Raises:
            Ed25519Error: If key is invalid
        """
        if len(public_key_bytes) != PUBLIC_KEY_LENGTH:
            raise Ed25519Error(f"Ed25519 public key must be 32 bytes, got {len(public_key_bytes)}")

        self._key_bytes = bytes(public_key_bytes)
        try:
            self._crypto_key = CryptoEd25519PublicKey.from_public_bytes(self._key_bytes)
        except ValueError as e:
            raise Ed25519Error(f"Invalid Ed25519 public key: {e}")

    def to_bytes(self) -> bytes:
        """Get the 32-byte public key."""
        return self._key_bytes

    def to_hex(self) -> str:
        return self._key_bytes.hex()

    def verify(self, signature: bytes, message: bytes) -> bool:
        """
        Verify a signature against a message.

        Args:
            signature: 64-byte Ed25519 signature
            message: Message that was signed

        Returns:
            True if signature is valid
        """
        if len(signature) != SIGNATURE_LENGTH:
            return False
        try:
            self._crypto_key.verify(signature, message)
        except InvalidSignature:
            return False
        return True

    def __eq__(self, other) -> bool:
        if not isinstance(other, Ed25519PublicKey):
            return False
        return self._key_bytes == other._key_bytes

    def __hash__(self) -> int:
        return hash((self.scheme, self._key_bytes))

    def __repr__(self) -> str:
        return f"Ed25519PublicKey('{self.to_hex()}')"


class Ed25519PrivateKey:
    """
    Ed25519 private key.

    Holds the 32-byte seed; provides signing and public key derivation.
    """

    scheme = ED25519_SCHEME
    flag = ED25519_FLAG

    def __init__(self, private_key_bytes: bytes):
        """
        Initialize from 32-byte private key seed.

        Raises:
            Ed25519Error: If key is invalid
        """
        if len(private_key_bytes) != PRIVATE_KEY_LENGTH:
            raise Ed25519Error(f"Ed25519 private key must be 32 bytes, got {len(private_key_bytes)}")

        self._key_bytes = bytes(private_key_bytes)
        self._crypto_key = CryptoEd25519PrivateKey.from_private_bytes(self._key_bytes)
        self._public_key = Ed25519PublicKey(
            self._crypto_key.public_key().public_bytes(
                encoding=serialization.Encoding.Raw,
                format=serialization.PublicFormat.Raw
            )
        )

    @classmethod
    def generate(cls) -> Ed25519PrivateKey:
        """Generate a new random Ed25519 private key."""
        crypto_key = CryptoEd25519PrivateKey.generate()
        private_bytes = crypto_key.private_bytes(
            encoding=serialization.Encoding.Raw,
            format=serialization.PrivateFormat.Raw,
            encryption_algorithm=serialization.NoEncryption()
        )
        return cls(private_bytes)

    @classmethod
    def from_secret_key(cls, secret_key: Union[bytes, bytearray]) -> Ed25519PrivateKey:
        """
        Build from a 32-byte seed or a legacy 64-byte secret key.

        The 64-byte form is seed || public key; the trailing public key must
        match the one derived from the seed.
        """
        if len(secret_key) == PRIVATE_KEY_LENGTH:
            return cls(bytes(secret_key))
        if len(secret_key) == PRIVATE_KEY_LENGTH + PUBLIC_KEY_LENGTH:
            key = cls(bytes(secret_key[:PRIVATE_KEY_LENGTH]))
            if key.public_key().to_bytes() != bytes(secret_key[PRIVATE_KEY_LENGTH:]):
                raise Ed25519Error("Ed25519 secret key does not match its embedded public key")
            return key
        raise Ed25519Error(f"Ed25519 secret key must be 32 or 64 bytes, got {len(secret_key)}")

    def to_bytes(self) -> bytes:
        """Get the 32-byte private key seed."""
        return self._key_bytes

    def public_key(self) -> Ed25519PublicKey:
        return self._public_key

    def sign(self, message: bytes) -> bytes:
        """Sign a message and return the 64-byte signature."""
        return self._crypto_key.sign(message)

    def __repr__(self) -> str:
        return f"Ed25519PrivateKey(public={self._public_key.to_hex()})"

    __str__ = __repr__


__all__ = [
    "ED25519_SCHEME",
    "ED25519_FLAG",
    "Ed25519Error",
    "Ed25519PublicKey",
    "Ed25519PrivateKey",
]
