"""Runtime helpers for the account vault"""

from .errors import (
    ErrorCode, VaultError, WrongPassword, AccountLocked,
    MalformedKeyMaterial, NotFound, StorageError, ErrorHandler
)

__all__ = [
    "ErrorCode",
    "VaultError",
    "WrongPassword",
    "AccountLocked",
    "MalformedKeyMaterial",
    "NotFound",
    "StorageError",
    "ErrorHandler",
]
