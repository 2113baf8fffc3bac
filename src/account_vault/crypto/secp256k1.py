"""
SECP256K1 signing keys backed by the `ecdsa` library.

Messages are hashed with SHA-256 before signing; signatures are the 64-byte
r || s encoding with a canonical (low) s value. Public keys are 33-byte
compressed points.
"""

from __future__ import annotations
import hashlib

from ecdsa import SigningKey, VerifyingKey, SECP256k1, BadSignatureError, MalformedPointError
from ecdsa.util import sigencode_string_canonize, sigdecode_string

SECP256K1_SCHEME = "Secp256k1"
SECP256K1_FLAG = 0x01

PRIVATE_KEY_LENGTH = 32
PUBLIC_KEY_LENGTH = 33
SIGNATURE_LENGTH = 64


class Secp256k1Error(ValueError):
    """Invalid SECP256K1 key or signature encoding."""
    pass


class Secp256k1PublicKey:
    """SECP256K1 public key for verification."""

    scheme = SECP256K1_SCHEME
    flag = SECP256K1_FLAG

    def __init__(self, public_key_bytes: bytes):
        """
        Initialize public key.

        Args:
            public_key_bytes: 33-byte compressed public key
        """
        if len(public_key_bytes) != PUBLIC_KEY_LENGTH:
            raise Secp256k1Error(f"Public key must be 33 bytes, got {len(public_key_bytes)}")
        try:
            self._verifying_key = VerifyingKey.from_string(bytes(public_key_bytes), curve=SECP256k1)
        except MalformedPointError as e:
            raise Secp256k1Error(f"Invalid SECP256K1 public key: {e}")
        self._key_bytes = bytes(public_key_bytes)

    def to_bytes(self) -> bytes:
        return self._key_bytes

    def to_hex(self) -> str:
        return self._key_bytes.hex()

    def verify(self, signature: bytes, message: bytes) -> bool:
        """
        Verify signature against message.

        Returns:
            True if signature is valid
        """
        if len(signature) != SIGNATURE_LENGTH:
            return False
        digest = hashlib.sha256(message).digest()
        try:
            return self._verifying_key.verify_digest(signature, digest, sigdecode=sigdecode_string)
        except BadSignatureError:
            return False

    def __eq__(self, other) -> bool:
        if not isinstance(other, Secp256k1PublicKey):
            return False
        return self._key_bytes == other._key_bytes

    def __hash__(self) -> int:
        return hash((self.scheme, self._key_bytes))

    def __repr__(self) -> str:
        return f"Secp256k1PublicKey('{self.to_hex()}')"


class Secp256k1PrivateKey:
    """
    SECP256K1 private key.

    Wraps a 32-byte scalar; signs with RFC 6979 deterministic nonces.
    """

    scheme = SECP256K1_SCHEME
    flag = SECP256K1_FLAG

    def __init__(self, private_key_bytes: bytes):
        """
        Initialize key.

        Args:
            private_key_bytes: 32-byte private key scalar

        Raises:
            Secp256k1Error: If the scalar is out of range or the wrong length
        """
        if len(private_key_bytes) != PRIVATE_KEY_LENGTH:
            raise Secp256k1Error(f"Private key must be 32 bytes, got {len(private_key_bytes)}")
        try:
            self._signing_key = SigningKey.from_string(bytes(private_key_bytes), curve=SECP256k1)
        except MalformedPointError as e:
            raise Secp256k1Error(f"Invalid SECP256K1 private key: {e}")
        self._key_bytes = bytes(private_key_bytes)
        self._public_key = Secp256k1PublicKey(
            self._signing_key.get_verifying_key().to_string("compressed")
        )

    @classmethod
    def generate(cls) -> Secp256k1PrivateKey:
        """Generate a new random key."""
        return cls(SigningKey.generate(curve=SECP256k1).to_string())

    def to_bytes(self) -> bytes:
        return self._key_bytes

    def public_key(self) -> Secp256k1PublicKey:
        return self._public_key

    def sign(self, message: bytes) -> bytes:
        """Sign SHA-256(message); returns 64-byte r || s."""
        digest = hashlib.sha256(message).digest()
        return self._signing_key.sign_digest_deterministic(
            digest,
            hashfunc=hashlib.sha256,
            sigencode=sigencode_string_canonize
        )

    def __repr__(self) -> str:
        return f"Secp256k1PrivateKey(public={self._public_key.to_hex()})"

    __str__ = __repr__


__all__ = [
    "SECP256K1_SCHEME",
    "SECP256K1_FLAG",
    "Secp256k1Error",
    "Secp256k1PublicKey",
    "Secp256k1PrivateKey",
]
