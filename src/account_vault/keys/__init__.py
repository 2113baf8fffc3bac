"""
Key management infrastructure for the account vault.

Provides the key material codec, the volatile store for unlocked keys and
the durable store for encrypted account records.
"""

from .codec import (
    ExportedKeypair, SigningKey, to_internal, to_exported,
    derive_address, public_key_base64, verify_serialized_signature
)
from .ephemeral import EphemeralStore
from .persistent import AccountStore, MemoryAccountStore, FileAccountStore

__all__ = [
    "ExportedKeypair",
    "SigningKey",
    "to_internal",
    "to_exported",
    "derive_address",
    "public_key_base64",
    "verify_serialized_signature",
    "EphemeralStore",
    "AccountStore",
    "MemoryAccountStore",
    "FileAccountStore",
]
