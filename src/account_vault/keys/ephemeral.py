"""
Volatile store for unlocked key material.

Holds at most one signing key per account id for the lifetime of the
process. Writes for an id are serialized by a per-id asyncio.Lock so that a
put and a clear never interleave; reads are plain dictionary lookups and only
ever see a complete entry or none. The store refuses to be pickled or
copied and never renders keys in its repr.
"""

from __future__ import annotations
import asyncio
import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator, Dict, Optional

from .codec import SigningKey

logger = logging.getLogger(__name__)


class EphemeralSlot:
    """
    Write handle for one account id, valid only inside EphemeralStore.exclusive().
    """

    def __init__(self, store: EphemeralStore, account_id: str):
        self._store = store
        self._account_id = account_id
        self._open = True

    def put(self, signing_key: SigningKey) -> None:
        self._check_open()
        self._store._entries[self._account_id] = signing_key

    def clear(self) -> None:
        self._check_open()
        self._store._entries.pop(self._account_id, None)

    def _check_open(self) -> None:
        if not self._open:
            raise RuntimeError("Ephemeral slot used outside of its exclusive section")

    def _close(self) -> None:
        self._open = False


class EphemeralStore:
    """
    In-memory store of unlocked signing keys keyed by account id.
    """

    def __init__(self):
        self._entries: Dict[str, SigningKey] = {}
        self._locks: Dict[str, asyncio.Lock] = {}

    def _lock_for(self, account_id: str) -> asyncio.Lock:
        lock = self._locks.get(account_id)
        if lock is None:
            lock = self._locks[account_id] = asyncio.Lock()
        return lock

    @asynccontextmanager
    async def exclusive(self, account_id: str) -> AsyncIterator[EphemeralSlot]:
        """
        Hold the write lock for an account id.

        Callers do their (suspending) work inside the block and commit the
        result through the slot; if the block is abandoned before committing,
        the store is left untouched.
        """
        async with self._lock_for(account_id):
            slot = EphemeralSlot(self, account_id)
            try:
                yield slot
            finally:
                slot._close()

    async def put(self, account_id: str, signing_key: SigningKey) -> None:
        """Store the live key for an account, replacing any previous one."""
        async with self.exclusive(account_id) as slot:
            slot.put(signing_key)
        logger.debug(f"Stored ephemeral key for account {account_id}")

    async def get(self, account_id: str) -> Optional[SigningKey]:
        """Return the live key for an account, or None when locked."""
        return self._entries.get(account_id)

    async def clear(self, account_id: str) -> None:
        """Drop the live key for an account. Safe when no entry exists."""
        async with self.exclusive(account_id) as slot:
            slot.clear()
        logger.debug(f"Cleared ephemeral key for account {account_id}")

    async def discard(self, account_id: str) -> None:
        """Clear an entry and forget its lock; used when an account is removed."""
        await self.clear(account_id)
        lock = self._locks.get(account_id)
        if lock is not None and not lock.locked():
            del self._locks[account_id]

    def has(self, account_id: str) -> bool:
        return account_id in self._entries

    async def clear_all(self) -> int:
        """
        Drop every live key (session teardown).

        Takes each id's write lock in turn, so a write already in progress
        finishes first and is then cleared.

        Returns:
            Number of entries that were cleared
        """
        count = 0
        for account_id in list(set(self._entries) | set(self._locks)):
            async with self.exclusive(account_id) as slot:
                if account_id in self._entries:
                    slot.clear()
                    count += 1
        if count:
            logger.info(f"Cleared {count} ephemeral key(s)")
        return count

    def __len__(self) -> int:
        return len(self._entries)

    def __reduce__(self):
        raise TypeError("EphemeralStore cannot be serialized")

    def __copy__(self):
        raise TypeError("EphemeralStore cannot be copied")

    def __deepcopy__(self, memo):
        raise TypeError("EphemeralStore cannot be copied")

    def __repr__(self) -> str:
        return f"EphemeralStore(count={len(self._entries)})"

    __str__ = __repr__


__all__ = ["EphemeralStore", "EphemeralSlot"]
