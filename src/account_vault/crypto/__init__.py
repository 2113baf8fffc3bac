"""
Cryptographic primitives for the account vault.

Provides password-based encryption of key material and the Ed25519 /
SECP256K1 signing keys it protects.
"""

from .cipher import (
    encrypt, decrypt, encrypt_object, decrypt_object,
    encrypt_object_async, decrypt_object_async, is_encrypted_blob
)
from .ed25519 import Ed25519PrivateKey, Ed25519PublicKey, Ed25519Error
from .secp256k1 import Secp256k1PrivateKey, Secp256k1PublicKey, Secp256k1Error

__all__ = [
    "encrypt",
    "decrypt",
    "encrypt_object",
    "decrypt_object",
    "encrypt_object_async",
    "decrypt_object_async",
    "is_encrypted_blob",
    "Ed25519PrivateKey",
    "Ed25519PublicKey",
    "Ed25519Error",
    "Secp256k1PrivateKey",
    "Secp256k1PublicKey",
    "Secp256k1Error",
]
