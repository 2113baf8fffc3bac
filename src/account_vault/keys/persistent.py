"""
Durable account record storage.

Records hold non-secret metadata and the cipher blob only. Every backend
refuses a record whose `encrypted` field is not a well-formed cipher blob,
so plaintext key material cannot be written by mistake.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Dict, List, Union
import asyncio
import json
import logging
import os
from pathlib import Path

from pydantic import ValidationError

from ..crypto.cipher import is_encrypted_blob
from ..models import AccountRecord
from ..runtime.errors import NotFound, StorageError, ErrorCode

logger = logging.getLogger(__name__)

# Fields that may change after creation; everything else is write-once
MUTABLE_FIELDS = frozenset({"last_unlocked_on", "selected"})


class AccountStore(ABC):
    """
    Abstract persistent account store.

    Keyed by account id; each operation only touches its own id.
    """

    def __init__(self):
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = self._locks[account_id] = asyncio.Lock()
        return lock

    @staticmethod
    def _check_record(account_id: str, record: AccountRecord) -> AccountRecord:
        if not is_encrypted_blob(record.encrypted):
            raise StorageError(
                "Refusing to persist a record without an encrypted blob",
                code=ErrorCode.PLAINTEXT_REJECTED,
                details={"accountId": account_id}
            )
        if record.id is not None and record.id != account_id:
            raise StorageError(
                "Record id does not match storage key",
                details={"accountId": account_id, "recordId": record.id}
            )
        return record.model_copy(update={"id": account_id})

    async def save(self, account_id: str, record: AccountRecord) -> None:
        """
        Persist a record under an account id.

        Raises:
            StorageError: If the record is rejected or the write fails
        """
        record = self._check_record(account_id, record)
        async with self._lock_for(account_id):
            await self._write(account_id, record.to_dict())
        logger.debug(f"Saved account record {account_id}")

    async def load(self, account_id: str) -> AccountRecord:
        """
        Load a record.

        Raises:
            NotFound: If no record exists for the id
            StorageError: If the stored record cannot be read
        """
        data = await self._read(account_id)
        try:
            return AccountRecord.from_dict(data)
        except ValidationError as e:
            raise StorageError(
                "Stored account record is invalid",
                details={"accountId": account_id},
                cause=e
            )

    async def update(self, account_id: str, **fields: Any) -> AccountRecord:
        """
        Change mutable metadata (last_unlocked_on, selected) of a record.

        Returns:
            The updated record
        """
        immutable = set(fields) - MUTABLE_FIELDS
        if immutable:
            raise StorageError(
                f"Fields cannot be changed after creation: {sorted(immutable)}",
                details={"accountId": account_id}
            )
        async with self._lock_for(account_id):
            record = await self.load(account_id)
            record = record.model_copy(update=fields)
            await self._write(account_id, record.to_dict())
        return record

    async def remove(self, account_id: str) -> bool:
        """
        Delete a record.

        Returns:
            True if a record was deleted
        """
        async with self._lock_for(account_id):
            deleted = await self._delete(account_id)
        lock = self._locks.get(account_id)
        if lock is not None and not lock.locked():
            del self._locks[account_id]
        if deleted:
            logger.debug(f"Removed account record {account_id}")
        return deleted

    async def has(self, account_id: str) -> bool:
        return account_id in await self.list_ids()

    @abstractmethod
    async def list_ids(self) -> List[str]:
        """List stored account ids."""
        pass

    @abstractmethod
    async def _read(self, account_id: str) -> Dict[str, Any]:
        pass

    @abstractmethod
    async def _write(self, account_id: str, data: Dict[str, Any]) -> None:
        pass

    @abstractmethod
    async def _delete(self, account_id: str) -> bool:
        pass


class MemoryAccountStore(AccountStore):
    """
    In-memory account store.

    Stores record dictionaries with no persistence; useful for tests.
    """

    def __init__(self):
        super().__init__()
        self._records: Dict[str, Dict[str, Any]] = {}

    async def list_ids(self) -> List[str]:
        return list(self._records)

    async def _read(self, account_id: str) -> Dict[str, Any]:
        data = self._records.get(account_id)
        if data is None:
            raise NotFound(details={"accountId": account_id})
        return dict(data)

    async def _write(self, account_id: str, data: Dict[str, Any]) -> None:
        self._records[account_id] = dict(data)

    async def _delete(self, account_id: str) -> bool:
        return self._records.pop(account_id, None) is not None

    def __repr__(self) -> str:
        return f"MemoryAccountStore(count={len(self._records)})"


class FileAccountStore(AccountStore):
    """
    File-based account store.

    One JSON file per account id under store_path; writes go through a
    temporary file and an atomic rename.
    """

    SUFFIX = ".account.json"

    def __init__(self, store_path: Union[str, Path]):
        """
        Initialize file account store.

        Args:
            store_path: Directory path for record storage
        """
        super().__init__()
        self.store_path = Path(store_path)
        self.store_path.mkdir(parents=True, exist_ok=True)

    def _get_file_path(self, account_id: str) -> Path:
        """Get the file path for an account id."""
        safe_id = account_id.replace("/", "_").replace("\\", "_")
        return self.store_path / f"{safe_id}{self.SUFFIX}"

    async def list_ids(self) -> List[str]:
        return await asyncio.to_thread(self._list_ids_sync)

    def _list_ids_sync(self) -> List[str]:
        ids = []
        for path in sorted(self.store_path.glob(f"*{self.SUFFIX}")):
            try:
                with open(path, 'r', encoding='utf-8') as f:
                    account_id = json.load(f).get("id")
            except (OSError, ValueError) as e:
                logger.warning(f"Skipping unreadable account file {path.name}: {e}")
                continue
            if account_id:
                ids.append(account_id)
        return ids

    async def _read(self, account_id: str) -> Dict[str, Any]:
        return await asyncio.to_thread(self._read_sync, account_id)

    def _read_sync(self, account_id: str) -> Dict[str, Any]:
        path = self._get_file_path(account_id)
        try:
            with open(path, 'r', encoding='utf-8') as f:
                data = json.load(f)
        except FileNotFoundError:
            raise NotFound(details={"accountId": account_id})
        except (OSError, ValueError) as e:
            raise StorageError(
                "Failed to read account record",
                details={"accountId": account_id},
                cause=e
            )
        if not isinstance(data, dict):
            raise StorageError("Account record file is not an object", details={"accountId": account_id})
        return data

    async def _write(self, account_id: str, data: Dict[str, Any]) -> None:
        await asyncio.to_thread(self._write_sync, account_id, data)

    def _write_sync(self, account_id: str, data: Dict[str, Any]) -> None:
        path = self._get_file_path(account_id)
        tmp_path = path.with_name(path.name + ".tmp")
        try:
            with open(tmp_path, 'w', encoding='utf-8') as f:
                json.dump(data, f, indent=2)
                f.flush()
                os.fsync(f.fileno())
            os.replace(tmp_path, path)
        except OSError as e:
            raise StorageError(
                "Failed to write account record",
                details={"accountId": account_id},
                cause=e
            )

    async def _delete(self, account_id: str) -> bool:
        return await asyncio.to_thread(self._delete_sync, account_id)

    def _delete_sync(self, account_id: str) -> bool:
        try:
            self._get_file_path(account_id).unlink()
        except FileNotFoundError:
            return False
        except OSError as e:
            raise StorageError(
                "Failed to delete account record",
                details={"accountId": account_id},
                cause=e
            )
        return True

    def __repr__(self) -> str:
        return f"FileAccountStore(path='{self.store_path}')"


__all__ = [
    "AccountStore",
    "MemoryAccountStore",
    "FileAccountStore",
    "MUTABLE_FIELDS",
]
