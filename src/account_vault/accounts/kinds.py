"""
Account kind dispatch.

Accounts are a tagged variant: the record's `type` selects an AccountKind
that supplies the kind-specific creation and unlock decoding, while the
Account state machine implements the shared lock/unlock/sign contract.
"""

from __future__ import annotations
from typing import Any, Dict, Optional, Union

from ..config import VaultConfig
from ..crypto.cipher import encrypt_object_async
from ..keys import codec
from ..keys.codec import ExportedKeypair, SigningKey
from ..models import AccountRecord, AccountType
from ..runtime.errors import MalformedKeyMaterial, VaultError, ErrorCode

PASSWORD_UNLOCK = "password"


class ImportedAccountKind:
    """
    Accounts created from an imported keypair, unlocked by password.

    The encrypted payload is {"keyPair": <ExportedKeypair dict>}.
    """

    type = AccountType.IMPORTED
    can_sign = True
    unlock_type = PASSWORD_UNLOCK

    async def create_record(self, key_pair: Union[ExportedKeypair, Dict[str, Any]], password: str,
                            config: Optional[VaultConfig] = None) -> AccountRecord:
        """
        Build the persisted record for a new account (no id yet).

        The plaintext keypair only lives in this frame and inside the
        encrypted blob.
        """
        config = config or VaultConfig()
        signing_key = codec.to_internal(key_pair)
        exported = codec.to_exported(signing_key)

        public_key = signing_key.public_key()
        encrypted = await encrypt_object_async(
            password,
            {"keyPair": exported.to_dict()},
            config.pbkdf2_iterations
        )
        return AccountRecord(
            type=self.type,
            address=codec.derive_address(public_key),
            public_key=codec.public_key_base64(signing_key),
            encrypted=encrypted,
            last_unlocked_on=None,
            selected=False,
        )

    def decode_unlocked(self, payload: Any) -> SigningKey:
        """Turn a decrypted payload into the live signing key."""
        if not isinstance(payload, dict) or "keyPair" not in payload:
            raise MalformedKeyMaterial("Decrypted payload has no keyPair")
        return codec.to_internal(payload["keyPair"])


ACCOUNT_KINDS: Dict[AccountType, Any] = {
    AccountType.IMPORTED: ImportedAccountKind(),
}


def get_kind(account_type: Union[AccountType, str]):
    """
    Look up the kind implementation for a type tag.

    Raises:
        VaultError: For tags with no registered kind
    """
    try:
        account_type = AccountType(account_type)
    except ValueError:
        raise VaultError(f"Unknown account type: {account_type}", ErrorCode.INTERNAL)
    kind = ACCOUNT_KINDS.get(account_type)
    if kind is None:
        raise VaultError(f"No implementation for account type: {account_type.value}", ErrorCode.INTERNAL)
    return kind


__all__ = [
    "ImportedAccountKind",
    "ACCOUNT_KINDS",
    "PASSWORD_UNLOCK",
    "get_kind",
]
