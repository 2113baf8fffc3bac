"""
Vault configuration.

Typed settings for key derivation cost, session auto-lock and on-disk
storage location. Values can be given directly or read from the environment.
"""

from __future__ import annotations
import os
from pathlib import Path
from typing import Optional, Dict, Any, Mapping
from pydantic import BaseModel, Field, field_validator

# Iteration count assumed for blobs written without keyMetadata
DEFAULT_PBKDF2_ITERATIONS = 10_000

# Upper bound on key derivation cost, for config and for stored blobs
MAX_PBKDF2_ITERATIONS = 10_000_000

ENV_PREFIX = "ACCOUNT_VAULT_"


class VaultConfig(BaseModel):
    """
    Account vault settings.

    Attributes:
        pbkdf2_iterations: PBKDF2-HMAC-SHA256 rounds used when encrypting new blobs
        auto_lock_minutes: Idle session length before auto-lock (None disables it)
        storage_path: Directory for the file-backed account store
    """
    pbkdf2_iterations: int = Field(
        default=DEFAULT_PBKDF2_ITERATIONS,
        ge=1000,
        le=MAX_PBKDF2_ITERATIONS,
        alias="pbkdf2Iterations",
        description="Key derivation rounds for newly encrypted blobs"
    )
    auto_lock_minutes: Optional[int] = Field(
        default=None,
        ge=1,
        alias="autoLockMinutes",
        description="Minutes after unlock before the session is locked automatically"
    )
    storage_path: Optional[Path] = Field(
        default=None,
        alias="storagePath",
        description="Directory used by FileAccountStore"
    )

    model_config = {"populate_by_name": True, "frozen": True}

    @field_validator("storage_path", mode="before")
    @classmethod
    def _expand_storage_path(cls, value: Any) -> Any:
        if isinstance(value, str):
            if not value.strip():
                return None
            return Path(value).expanduser()
        return value

    @property
    def auto_lock_ms(self) -> Optional[int]:
        """Auto-lock window in milliseconds, matching lastUnlockedOn units."""
        if self.auto_lock_minutes is None:
            return None
        return self.auto_lock_minutes * 60 * 1000

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> VaultConfig:
        """
        Build configuration from ACCOUNT_VAULT_* environment variables.

        Unset variables fall back to the defaults.
        """
        environ = os.environ if environ is None else environ
        values: Dict[str, Any] = {}

        iterations = environ.get(f"{ENV_PREFIX}PBKDF2_ITERATIONS")
        if iterations:
            values["pbkdf2_iterations"] = int(iterations)

        auto_lock = environ.get(f"{ENV_PREFIX}AUTO_LOCK_MINUTES")
        if auto_lock:
            values["auto_lock_minutes"] = int(auto_lock)

        storage_path = environ.get(f"{ENV_PREFIX}STORAGE_PATH")
        if storage_path:
            values["storage_path"] = storage_path

        return cls(**values)


__all__ = ["VaultConfig", "DEFAULT_PBKDF2_ITERATIONS", "MAX_PBKDF2_ITERATIONS"]
