"""
Account registry.

Creates accounts (assigning their ids), hands out Account objects, and is
the only place accounts are removed. Also owns session-wide operations:
locking everything, auto-locking idle sessions and the selection flag.
"""

from __future__ import annotations
from typing import Any, Dict, List, Optional, Union
import logging
import uuid

from ..config import VaultConfig
from ..keys.codec import ExportedKeypair
from ..keys.ephemeral import EphemeralStore
from ..keys.persistent import AccountStore, MemoryAccountStore, FileAccountStore
from ..models import AccountType
from ..runtime.errors import NotFound
from .account import Account, now_ms
from .events import AccountEvents, StatusListener

logger = logging.getLogger(__name__)


class AccountRegistry:
    """
    Set of accounts sharing one persistent store and one ephemeral store.

    Args:
        store: Durable record store (in-memory when omitted)
        ephemeral: Unlocked key store (fresh when omitted)
        config: Vault settings
    """

    def __init__(self, store: Optional[AccountStore] = None,
                 ephemeral: Optional[EphemeralStore] = None,
                 config: Optional[VaultConfig] = None):
        self.config = config or VaultConfig()
        self.store = store if store is not None else MemoryAccountStore()
        self.ephemeral = ephemeral if ephemeral is not None else EphemeralStore()
        self.events = AccountEvents()
        self._accounts: Dict[str, Account] = {}

    @classmethod
    def from_config(cls, config: VaultConfig) -> AccountRegistry:
        """Registry backed by a FileAccountStore when config.storage_path is set."""
        store: AccountStore
        if config.storage_path is not None:
            store = FileAccountStore(config.storage_path)
        else:
            store = MemoryAccountStore()
        return cls(store=store, config=config)

    def subscribe(self, listener: StatusListener):
        """Register a status listener; returns an unsubscribe function."""
        return self.events.subscribe(listener)

    async def create(self, key_pair: Union[ExportedKeypair, Dict[str, Any]], password: str,
                     account_type: AccountType = AccountType.IMPORTED) -> Account:
        """
        Create and persist a new locked account.

        Raises:
            MalformedKeyMaterial: If the keypair cannot be decoded
        """
        record = await Account.create_new(key_pair, password, self.config, account_type)
        account_id = str(uuid.uuid4())
        await self.store.save(account_id, record)
        logger.info(f"Created {record.type.value} account {account_id}")
        return await self.get(account_id)

    async def get(self, account_id: str) -> Account:
        """
        Return the Account for an id.

        Raises:
            NotFound: If no such account is stored
        """
        account = self._accounts.get(account_id)
        if account is None:
            record = await self.store.load(account_id)
            account = Account(account_id, self.store, self.ephemeral, cached_data=record, events=self.events)
            self._accounts[account_id] = account
        return account

    async def list_accounts(self) -> List[Account]:
        return [await self.get(account_id) for account_id in await self.store.list_ids()]

    async def remove(self, account_id: str) -> None:
        """
        Delete an account from both stores.

        The live key is cleared under the account's ephemeral lock and the
        record is removed before the lock is released, so no unlock can
        commit a key for the removed id.

        Raises:
            NotFound: If no such account is stored
        """
        async with self.ephemeral.exclusive(account_id) as slot:
            slot.clear()
            if not await self.store.remove(account_id):
                raise NotFound(details={"accountId": account_id})
        await self.ephemeral.discard(account_id)
        self._accounts.pop(account_id, None)
        logger.info(f"Removed account {account_id}")

    async def select(self, account_id: str) -> None:
        """Mark one account selected and clear the flag on all others."""
        target = await self.get(account_id)
        for account in await self.list_accounts():
            if account.id != target.id and (await account.get_stored_data()).selected:
                await account.set_selected(False)
        await target.set_selected(True)

    async def get_selected(self) -> Optional[Account]:
        for account in await self.list_accounts():
            if (await account.get_stored_data()).selected:
                return account
        return None

    async def lock_all(self, allow_read: bool = False) -> int:
        """
        Lock every unlocked account.

        Returns:
            Number of accounts that were unlocked
        """
        count = 0
        for account in await self.list_accounts():
            if not await account.is_locked():
                await account.lock(allow_read)
                count += 1
        return count

    async def lock_expired(self, now: Optional[int] = None) -> List[str]:
        """
        Lock accounts whose session is older than config.auto_lock_minutes.

        Args:
            now: Current time in ms since epoch (defaults to the clock)

        Returns:
            Ids of the accounts that were locked
        """
        window = self.config.auto_lock_ms
        if window is None:
            return []
        now = now_ms() if now is None else now

        locked = []
        for account in await self.list_accounts():
            if await account.is_locked():
                continue
            last_unlocked_on = await account.get_last_unlocked_on()
            if last_unlocked_on is None or now - last_unlocked_on >= window:
                await account.lock()
                locked.append(account.id)
        if locked:
            logger.info(f"Auto-locked {len(locked)} account(s)")
        return locked

    async def teardown(self) -> int:
        """
        End the session: drop all live keys without touching stored records.

        Unlocks already committing finish before their key is dropped.

        Returns:
            Number of live keys that were dropped
        """
        self._accounts.clear()
        return await self.ephemeral.clear_all()

    def __repr__(self) -> str:
        return f"AccountRegistry(store={self.store!r}, ephemeral={self.ephemeral!r})"


__all__ = ["AccountRegistry"]
