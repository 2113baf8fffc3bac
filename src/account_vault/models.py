"""
Account data models.

AccountRecord is the durable layout; AccountUIRecord is the display
projection. Neither carries key material: the only secret-bearing field is
the ciphertext blob in AccountRecord.encrypted, and it never leaves the
record through the display projection.
"""

from __future__ import annotations
from dataclasses import dataclass
from enum import Enum
from typing import Optional, Dict, Any
from pydantic import BaseModel, Field


class AccountType(str, Enum):
    """Account kind tag."""
    IMPORTED = "imported"


class AccountRecord(BaseModel):
    """
    Persisted account record.

    Layout: {id, type, address, publicKey, encrypted, lastUnlockedOn, selected}
    """
    id: Optional[str] = Field(default=None, description="Assigned by the registry")
    type: AccountType = Field(default=AccountType.IMPORTED, description="Account kind tag")
    address: str = Field(description="Address derived from the public key")
    public_key: str = Field(alias="publicKey", description="Base64 public key")
    encrypted: str = Field(description="Cipher blob holding the key material")
    last_unlocked_on: Optional[int] = Field(
        default=None,
        alias="lastUnlockedOn",
        description="Milliseconds since epoch of the last successful unlock"
    )
    selected: bool = Field(default=False)

    model_config = {"populate_by_name": True, "extra": "forbid", "use_enum_values": False}

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted dictionary layout."""
        return self.model_dump(by_alias=True, mode="json")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> AccountRecord:
        return cls.model_validate(data)

    def __repr__(self) -> str:
        return f"AccountRecord(id={self.id!r}, type='{self.type.value}', address='{self.address}')"

    __str__ = __repr__


class AccountUIRecord(BaseModel):
    """Display projection of an account: non-secret fields plus lock state."""
    id: str
    type: AccountType
    address: str
    public_key: str = Field(alias="publicKey")
    is_locked: bool = Field(alias="isLocked")
    last_unlocked_on: Optional[int] = Field(default=None, alias="lastUnlockedOn")
    selected: bool = False
    is_password_unlockable: bool = Field(default=True, alias="isPasswordUnlockable")

    model_config = {"populate_by_name": True, "frozen": True}

    def to_dict(self) -> Dict[str, Any]:
        return self.model_dump(by_alias=True, mode="json")


def is_imported_ui(data: AccountUIRecord) -> bool:
    """Type guard for imported accounts in the display layer."""
    return data.type == AccountType.IMPORTED


@dataclass(frozen=True)
class AccountStatusEvent:
    """Lock state change notification delivered to observers."""
    account_id: str
    is_locked: bool
    allow_read: bool = False


__all__ = [
    "AccountType",
    "AccountRecord",
    "AccountUIRecord",
    "AccountStatusEvent",
    "is_imported_ui",
]
