"""
Account Vault

Password-sealed storage for signing accounts: key material is encrypted at
rest, decrypted only into a volatile per-session store on unlock, and used
only to produce signatures.
"""

from .config import VaultConfig
from .models import AccountType, AccountRecord, AccountUIRecord, AccountStatusEvent, is_imported_ui
from .runtime.errors import (
    ErrorCode, VaultError, WrongPassword, AccountLocked,
    MalformedKeyMaterial, NotFound, StorageError
)
from .keys import (
    ExportedKeypair, EphemeralStore, AccountStore, MemoryAccountStore, FileAccountStore,
    verify_serialized_signature
)
from .accounts import Account, AccountRegistry

__version__ = "0.1.0"
__all__ = [
    "VaultConfig",
    "AccountType",
    "AccountRecord",
    "AccountUIRecord",
    "AccountStatusEvent",
    "is_imported_ui",
    "ErrorCode",
    "VaultError",
    "WrongPassword",
    "AccountLocked",
    "MalformedKeyMaterial",
    "NotFound",
    "StorageError",
    "ExportedKeypair",
    "EphemeralStore",
    "AccountStore",
    "MemoryAccountStore",
    "FileAccountStore",
    "verify_serialized_signature",
    "Account",
    "AccountRegistry",
]
