"""
Account lock/unlock state machine.

An Account is Locked unless the EphemeralStore holds a live signing key for
its id. Unlocking decrypts the stored blob with the password and commits the
decoded key to the EphemeralStore; locking clears it. Signing only ever reads
the EphemeralStore and never decrypts on its own.

All operations suspend at store and crypto steps. The EphemeralStore's
per-id lock serializes unlock/lock/removal for one account, so concurrent
unlocks commit whole keys one after the other. An unlock abandoned before
its commit step commits nothing; once the commit step (record timestamp plus
live key) has started it runs to the end.
"""

from __future__ import annotations
from datetime import datetime, timezone
from typing import Any, Awaitable, Dict, Optional, TypeVar, Union
import asyncio
import logging

from ..config import VaultConfig
from ..crypto.cipher import decrypt_object_async
from ..keys import codec
from ..keys.codec import ExportedKeypair, SigningKey
from ..keys.ephemeral import EphemeralSlot, EphemeralStore
from ..keys.persistent import AccountStore
from ..models import AccountRecord, AccountType, AccountUIRecord, AccountStatusEvent
from ..runtime.errors import AccountLocked, WrongPassword
from .events import AccountEvents
from .kinds import get_kind

logger = logging.getLogger(__name__)

T = TypeVar("T")


def now_ms() -> int:
    """Current time in milliseconds since epoch."""
    return int(datetime.now(timezone.utc).timestamp() * 1000)


async def _run_to_completion(coro: Awaitable[T]) -> T:
    """
    Await coro so that cancelling the caller cannot interrupt it halfway.

    A cancellation that arrives while coro runs is re-raised once coro has
    finished, so its effects are either all applied or never started.
    """
    task = asyncio.ensure_future(coro)
    cancelled = False
    while True:
        try:
            result = await asyncio.shield(task)
            break
        except asyncio.CancelledError:
            if task.done():
                raise
            cancelled = True
    if cancelled:
        raise asyncio.CancelledError()
    return result


class Account:
    """
    A stored account plus its unlocked session, if any.

    Args:
        account_id: Registry-assigned identifier
        store: Durable record store
        ephemeral: Store of unlocked keys shared by all accounts
        cached_data: Record already loaded by the caller, skips one store read
        events: Status change fan-out
    """

    def __init__(self, account_id: str, store: AccountStore, ephemeral: EphemeralStore,
                 cached_data: Optional[AccountRecord] = None,
                 events: Optional[AccountEvents] = None):
        self.id = account_id
        self._store = store
        self._ephemeral = ephemeral
        self._cached_data = cached_data
        self._events = events if events is not None else AccountEvents()

    @property
    def type(self) -> AccountType:
        if self._cached_data is not None:
            return self._cached_data.type
        return AccountType.IMPORTED

    @property
    def kind(self):
        return get_kind(self.type)

    @property
    def can_sign(self) -> bool:
        return self.kind.can_sign

    @property
    def unlock_type(self) -> str:
        return self.kind.unlock_type

    @classmethod
    async def create_new(cls, key_pair: Union[ExportedKeypair, Dict[str, Any]], password: str,
                         config: Optional[VaultConfig] = None,
                         account_type: AccountType = AccountType.IMPORTED) -> AccountRecord:
        """
        Build the record for a new account without persisting it.

        The returned record has no id; the registry assigns one and saves it.
        The new account starts Locked.
        """
        return await get_kind(account_type).create_record(key_pair, password, config)

    @staticmethod
    def is_of_type(record: AccountRecord, account_type: AccountType = AccountType.IMPORTED) -> bool:
        return record.type == account_type

    async def get_stored_data(self) -> AccountRecord:
        """Return the persisted record, loading it once."""
        if self._cached_data is None:
            self._cached_data = await self._store.load(self.id)
        return self._cached_data

    async def get_last_unlocked_on(self) -> Optional[int]:
        return (await self.get_stored_data()).last_unlocked_on

    async def password_unlock(self, password: str) -> None:
        """
        Unlock the account with its password.

        Re-validates the password even when already unlocked and replaces
        the live key. On a wrong password the current state (locked or
        unlocked) is kept.

        Raises:
            WrongPassword: Password does not decrypt the stored blob
            MalformedKeyMaterial: Stored blob or payload is corrupt
            NotFound: The account record no longer exists
        """
        record = await self.get_stored_data()
        async with self._ephemeral.exclusive(self.id) as slot:
            try:
                payload = await decrypt_object_async(password, record.encrypted)
            except WrongPassword:
                logger.warning(f"Wrong password for account {self.id}")
                raise
            signing_key = self.kind.decode_unlocked(payload)
            self._cached_data = await _run_to_completion(self._commit_unlock(slot, signing_key))

        logger.info(f"Account {self.id} unlocked")
        await self._events.emit(AccountStatusEvent(self.id, is_locked=False))

    unlock = password_unlock

    async def _commit_unlock(self, slot: EphemeralSlot, signing_key: SigningKey) -> AccountRecord:
        # Record write first: a removed account fails here and never gets a live key
        record = await self._store.update(self.id, last_unlocked_on=now_ms())
        slot.put(signing_key)
        return record

    async def verify_password(self, password: str) -> None:
        """
        Check a password without changing any state.

        Raises:
            WrongPassword: Password does not decrypt the stored blob
        """
        record = await self.get_stored_data()
        payload = await decrypt_object_async(password, record.encrypted)
        # Corrupt payloads must not pass as a verified password
        self.kind.decode_unlocked(payload)

    async def lock(self, allow_read: bool = False) -> None:
        """
        Drop the live key. Idempotent.

        Args:
            allow_read: Keep lastUnlockedOn and the cached record so observers
                may still read display data during the notification
        """
        await self._ephemeral.clear(self.id)
        await self._on_locked(allow_read)

    async def _on_locked(self, allow_read: bool) -> None:
        if not allow_read:
            self._cached_data = await self._store.update(self.id, last_unlocked_on=None)
        logger.info(f"Account {self.id} locked")
        await self._events.emit(AccountStatusEvent(self.id, is_locked=True, allow_read=allow_read))

    async def is_locked(self) -> bool:
        return await self._get_signing_key() is None

    async def sign_data(self, data: bytes) -> str:
        """
        Sign bytes with the unlocked key.

        Returns:
            base64(flag || signature || public key) over blake2b-256(data)

        Raises:
            AccountLocked: No unlocked session
        """
        signing_key = await self._get_signing_key()
        if signing_key is None:
            raise AccountLocked(details={"accountId": self.id})
        signature = signing_key.sign(codec.message_digest(bytes(data)))
        return codec.to_serialized_signature(signature, signing_key.public_key())

    async def to_ui_serialized(self) -> AccountUIRecord:
        """Display projection: non-secret fields and lock state only."""
        record = await self.get_stored_data()
        return AccountUIRecord(
            id=self.id,
            type=record.type,
            address=record.address,
            public_key=record.public_key,
            is_locked=await self.is_locked(),
            last_unlocked_on=record.last_unlocked_on,
            selected=record.selected,
            is_password_unlockable=self.unlock_type == "password",
        )

    to_display_serialized = to_ui_serialized

    async def _get_signing_key(self) -> Optional[SigningKey]:
        return await self._ephemeral.get(self.id)

    async def set_selected(self, selected: bool) -> None:
        self._cached_data = await self._store.update(self.id, selected=selected)

    def __repr__(self) -> str:
        return f"Account(id='{self.id}', type='{self.type.value}')"


__all__ = ["Account", "now_ms"]
