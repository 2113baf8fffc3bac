"""
Password-based encryption of key material using PBKDF2 + AES-GCM.

Blobs are JSON text compatible with the browser keystore format:

    {"data": <b64 ciphertext+tag>, "iv": <b64>, "salt": <b64>,
     "keyMetadata": {"algorithm": "PBKDF2", "params": {"iterations": N}}}

Decryption either returns the exact original plaintext or raises; a wrong
password and a tampered blob are indistinguishable and both raise
WrongPassword. A blob that cannot even be parsed raises MalformedKeyMaterial.
"""

from __future__ import annotations
import asyncio
import base64
import binascii
import hashlib
import json
import os
from typing import Any, Dict

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM

from ..config import DEFAULT_PBKDF2_ITERATIONS, MAX_PBKDF2_ITERATIONS
from ..runtime.errors import WrongPassword, MalformedKeyMaterial

# PBKDF2 configuration
PBKDF2_HASH = 'sha256'
KEY_LENGTH_BYTES = 32  # AES-256
SALT_LENGTH_BYTES = 32

# AES-GCM configuration
IV_LENGTH_BYTES = 12  # 96 bits, recommended for AES-GCM

KEY_DERIVATION_ALGORITHM = "PBKDF2"

_REQUIRED_FIELDS = ("data", "iv", "salt")


def derive_key(password: str, salt: bytes, iterations: int = DEFAULT_PBKDF2_ITERATIONS) -> bytes:
    """
    Derive a 256-bit AES key from password and salt using PBKDF2.

    Args:
        password: The account password
        salt: Random salt stored next to the ciphertext
        iterations: PBKDF2 rounds

    Returns:
        32-byte key suitable for AES-256-GCM
    """
    return hashlib.pbkdf2_hmac(
        PBKDF2_HASH,
        password.encode('utf-8'),
        salt,
        iterations,
        dklen=KEY_LENGTH_BYTES
    )


def _b64(data: bytes) -> str:
    return base64.b64encode(data).decode('ascii')


def _parse_blob(blob: str) -> Dict[str, Any]:
    try:
        parsed = json.loads(blob)
    except (TypeError, ValueError) as e:
        raise MalformedKeyMaterial("Encrypted blob is not valid JSON", cause=e)

    if not isinstance(parsed, dict) or any(not isinstance(parsed.get(f), str) for f in _REQUIRED_FIELDS):
        raise MalformedKeyMaterial(
            "Encrypted blob is missing required fields",
            details={"required": list(_REQUIRED_FIELDS)}
        )

    try:
        decoded = {f: base64.b64decode(parsed[f], validate=True) for f in _REQUIRED_FIELDS}
    except (binascii.Error, ValueError) as e:
        raise MalformedKeyMaterial("Encrypted blob has invalid base64 fields", cause=e)

    decoded["iterations"] = _blob_iterations(parsed)
    return decoded


def _blob_iterations(parsed: Dict[str, Any]) -> int:
    # Blobs written before keyMetadata existed use the default cost
    metadata = parsed.get("keyMetadata")
    if metadata is None:
        return DEFAULT_PBKDF2_ITERATIONS
    try:
        iterations = metadata["params"]["iterations"]
    except (KeyError, TypeError) as e:
        raise MalformedKeyMaterial("Encrypted blob has invalid key metadata", cause=e)
    if isinstance(iterations, bool) or not isinstance(iterations, int):
        raise MalformedKeyMaterial("Encrypted blob has invalid iteration count")
    if not 1 <= iterations <= MAX_PBKDF2_ITERATIONS:
        raise MalformedKeyMaterial(
            "Encrypted blob iteration count is out of range",
            details={"max": MAX_PBKDF2_ITERATIONS}
        )
    return iterations


def is_encrypted_blob(value: Any) -> bool:
    """Check whether a value is a well-formed cipher blob (no password needed)."""
    if not isinstance(value, str):
        return False
    try:
        _parse_blob(value)
    except MalformedKeyMaterial:
        return False
    return True


def encrypt(password: str, plaintext: bytes, iterations: int = DEFAULT_PBKDF2_ITERATIONS) -> str:
    """
    Encrypt plaintext under a password.

    Args:
        password: Password to derive the key from
        plaintext: Bytes to protect
        iterations: PBKDF2 rounds

    Returns:
        JSON blob string
    """
    salt = os.urandom(SALT_LENGTH_BYTES)
    iv = os.urandom(IV_LENGTH_BYTES)

    key = derive_key(password, salt, iterations)
    ciphertext = AESGCM(key).encrypt(iv, plaintext, None)

    return json.dumps({
        "data": _b64(ciphertext),
        "iv": _b64(iv),
        "salt": _b64(salt),
        "keyMetadata": {
            "algorithm": KEY_DERIVATION_ALGORITHM,
            "params": {"iterations": iterations},
        },
    })


def decrypt(password: str, blob: str) -> bytes:
    """
    Decrypt a blob produced by encrypt().

    Args:
        password: Password the blob was encrypted under
        blob: JSON blob string

    Returns:
        The original plaintext bytes

    Raises:
        WrongPassword: Authentication failed (wrong password or tampered data)
        MalformedKeyMaterial: The blob itself is unreadable
    """
    parsed = _parse_blob(blob)
    key = derive_key(password, parsed["salt"], parsed["iterations"])
    try:
        return AESGCM(key).decrypt(parsed["iv"], parsed["data"], None)
    except InvalidTag as e:
        raise WrongPassword(cause=e)
    except ValueError as e:
        # Bad IV length and the like
        raise MalformedKeyMaterial("Encrypted blob has invalid parameters", cause=e)


def encrypt_object(password: str, data: Any, iterations: int = DEFAULT_PBKDF2_ITERATIONS) -> str:
    """Encrypt a JSON-serializable object."""
    return encrypt(password, json.dumps(data).encode('utf-8'), iterations)


def decrypt_object(password: str, blob: str) -> Any:
    """Decrypt a blob and parse its JSON payload."""
    plaintext = decrypt(password, blob)
    try:
        return json.loads(plaintext.decode('utf-8'))
    except (UnicodeDecodeError, ValueError) as e:
        raise MalformedKeyMaterial("Decrypted payload is not valid JSON", cause=e)


async def encrypt_object_async(password: str, data: Any,
                               iterations: int = DEFAULT_PBKDF2_ITERATIONS) -> str:
    """encrypt_object() with key derivation moved off the event loop."""
    return await asyncio.to_thread(encrypt_object, password, data, iterations)


async def decrypt_object_async(password: str, blob: str) -> Any:
    """decrypt_object() with key derivation moved off the event loop."""
    return await asyncio.to_thread(decrypt_object, password, blob)


__all__ = [
    "derive_key",
    "encrypt",
    "decrypt",
    "encrypt_object",
    "decrypt_object",
    "encrypt_object_async",
    "decrypt_object_async",
    "is_encrypted_blob",
]
