"""
Account Vault Error Model

Typed failures raised by the cipher, codec, stores and account state machine.
Every error carries a stable code so callers can surface the right prompt
(re-enter password, unlock first, data corruption) without string matching.
"""

from __future__ import annotations
from typing import Optional, Dict, Any
from enum import IntEnum


class ErrorCode(IntEnum):
    """Account vault error codes."""

    OK = 0

    # General errors (1-99)
    UNKNOWN = 1
    INTERNAL = 2
    NOT_FOUND = 4

    # Authentication errors (300-399)
    WRONG_PASSWORD = 300
    ACCOUNT_LOCKED = 301

    # Key material errors (700-799)
    MALFORMED_KEY_MATERIAL = 700
    UNSUPPORTED_KEY_SCHEME = 701

    # Storage errors (800-899)
    STORAGE_ERROR = 800
    PLAINTEXT_REJECTED = 801


class VaultError(Exception):
    """
    Base class for all account vault errors.

    Provides structured error information: a code, optional details and the
    underlying exception that caused it.
    """

    def __init__(self, message: str, code: ErrorCode = ErrorCode.UNKNOWN,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        """
        Initialize a vault error.

        Args:
            message: Error message
            code: Error code
            details: Additional error details (never secrets)
            cause: Underlying exception that caused this error
        """
        super().__init__(message)
        self.message = message
        self.code = code
        self.details = details or {}
        self.cause = cause

    def __str__(self) -> str:
        """String representation of the error."""
        parts = [f"[{self.code.name}] {self.message}"]
        if self.details:
            parts.append(f"Details: {self.details}")
        if self.cause:
            parts.append(f"Caused by: {self.cause!r}")
        return " | ".join(parts)

    def to_dict(self) -> Dict[str, Any]:
        """Convert error to dictionary representation."""
        result = {
            "code": self.code.value,
            "message": self.message,
        }
        if self.details:
            result["details"] = self.details
        if self.cause:
            result["cause"] = repr(self.cause)
        return result

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> 'VaultError':
        """Rebuild the most specific error type from its dictionary form."""
        try:
            code = ErrorCode(data.get("code", ErrorCode.UNKNOWN))
        except ValueError:
            code = ErrorCode.UNKNOWN
        message = data.get("message", "Unknown error")
        details = data.get("details")

        error_type = _ERRORS_BY_CODE.get(code)
        if error_type in _CODED_ERRORS:
            return error_type(message, code=code, details=details)
        if error_type is not None:
            return error_type(message, details=details)
        return VaultError(message, code, details)


class WrongPassword(VaultError):
    """Decryption failed authentication: wrong password or tampered blob."""

    def __init__(self, message: str = "Incorrect password",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.WRONG_PASSWORD, details, cause)


class AccountLocked(VaultError):
    """Signing or key access attempted without an unlocked session."""

    def __init__(self, message: str = "Account is locked",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.ACCOUNT_LOCKED, details, cause)


class MalformedKeyMaterial(VaultError):
    """Stored ciphertext or exported key could not be decoded."""

    def __init__(self, message: str = "Malformed key material",
                 code: ErrorCode = ErrorCode.MALFORMED_KEY_MATERIAL,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, code, details, cause)


class NotFound(VaultError):
    """Requested account record does not exist."""

    def __init__(self, message: str = "Account not found",
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, ErrorCode.NOT_FOUND, details, cause)


class StorageError(VaultError):
    """Persistent store I/O failure or rejected write."""

    def __init__(self, message: str = "Storage error", code: ErrorCode = ErrorCode.STORAGE_ERROR,
                 details: Optional[Dict[str, Any]] = None, cause: Optional[Exception] = None):
        super().__init__(message, code, details, cause)


_ERRORS_BY_CODE = {
    ErrorCode.WRONG_PASSWORD: WrongPassword,
    ErrorCode.ACCOUNT_LOCKED: AccountLocked,
    ErrorCode.MALFORMED_KEY_MATERIAL: MalformedKeyMaterial,
    ErrorCode.UNSUPPORTED_KEY_SCHEME: MalformedKeyMaterial,
    ErrorCode.NOT_FOUND: NotFound,
    ErrorCode.STORAGE_ERROR: StorageError,
    ErrorCode.PLAINTEXT_REJECTED: StorageError,
}

# Error types that carry one of several codes
_CODED_ERRORS = (MalformedKeyMaterial, StorageError)


class ErrorHandler:
    """
    Utility class for categorizing vault errors for the presentation layer.
    """

    @staticmethod
    def needs_password(error: Exception) -> bool:
        """True when the user should be asked for the password (again)."""
        if isinstance(error, VaultError):
            return error.code in (ErrorCode.WRONG_PASSWORD, ErrorCode.ACCOUNT_LOCKED)
        return False

    @staticmethod
    def is_corruption(error: Exception) -> bool:
        """True when stored data for the account cannot be used anymore."""
        if isinstance(error, VaultError):
            return error.code in (ErrorCode.MALFORMED_KEY_MATERIAL, ErrorCode.UNSUPPORTED_KEY_SCHEME)
        return False


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
