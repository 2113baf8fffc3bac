"""
Test the volatile unlocked-key store: single entry per id, idempotent
clearing, write serialization and abandonment of in-flight writes.
"""

import asyncio
import copy
import pickle

import pytest

from account_vault.crypto.ed25519 import Ed25519PrivateKey
from account_vault.keys.ephemeral import EphemeralStore


def _key(n: int) -> Ed25519PrivateKey:
    return Ed25519PrivateKey(n.to_bytes(32, 'big'))


class TestBasicOperations:

    @pytest.mark.asyncio
    async def test_put_get_clear(self):
        store = EphemeralStore()
        assert await store.get("a") is None

        await store.put("a", _key(1))
        assert (await store.get("a")).to_bytes() == _key(1).to_bytes()
        assert store.has("a")

        await store.clear("a")
        assert await store.get("a") is None
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_second_put_overwrites(self):
        store = EphemeralStore()
        await store.put("a", _key(1))
        await store.put("a", _key(2))
        assert len(store) == 1
        assert (await store.get("a")).to_bytes() == _key(2).to_bytes()

    @pytest.mark.asyncio
    async def test_entries_partitioned_by_id(self):
        store = EphemeralStore()
        await store.put("a", _key(1))
        await store.put("b", _key(2))
        await store.clear("a")
        assert await store.get("a") is None
        assert await store.get("b") is not None

    @pytest.mark.asyncio
    async def test_clear_is_idempotent(self):
        store = EphemeralStore()
        await store.clear("missing")
        await store.put("a", _key(1))
        await store.clear("a")
        await store.clear("a")
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_clear_all(self):
        store = EphemeralStore()
        await store.put("a", _key(1))
        await store.put("b", _key(2))
        assert await store.clear_all() == 2
        assert len(store) == 0
        assert await store.clear_all() == 0

    @pytest.mark.asyncio
    async def test_discard(self):
        store = EphemeralStore()
        await store.put("a", _key(1))
        await store.discard("a")
        assert await store.get("a") is None
        await store.discard("a")


class TestNoSerialization:

    @pytest.mark.asyncio
    async def test_cannot_pickle_or_copy(self):
        store = EphemeralStore()
        await store.put("a", _key(1))
        with pytest.raises(TypeError):
            pickle.dumps(store)
        with pytest.raises(TypeError):
            copy.copy(store)
        with pytest.raises(TypeError):
            copy.deepcopy(store)

    @pytest.mark.asyncio
    async def test_repr_has_no_key_material(self):
        store = EphemeralStore()
        await store.put("a", _key(1))
        assert repr(store) == "EphemeralStore(count=1)"
        assert _key(1).to_bytes().hex() not in repr(store)


class TestSerialization:
    """Writes for one id are linearized."""

    @pytest.mark.asyncio
    async def test_abandoned_exclusive_leaves_no_entry(self):
        store = EphemeralStore()
        with pytest.raises(RuntimeError, match="boom"):
            async with store.exclusive("a"):
                raise RuntimeError("boom")
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_cancelled_writer_leaves_no_entry(self):
        store = EphemeralStore()
        entered = asyncio.Event()

        async def writer():
            async with store.exclusive("a") as slot:
                entered.set()
                await asyncio.sleep(3600)
                slot.put(_key(1))

        task = asyncio.create_task(writer())
        await entered.wait()
        task.cancel()
        with pytest.raises(asyncio.CancelledError):
            await task
        assert await store.get("a") is None

        # Lock was released
        await asyncio.wait_for(store.put("a", _key(2)), timeout=1)
        assert store.has("a")

    @pytest.mark.asyncio
    async def test_clear_waits_for_in_flight_write(self):
        store = EphemeralStore()
        entered = asyncio.Event()
        release = asyncio.Event()

        async def writer():
            async with store.exclusive("a") as slot:
                entered.set()
                await release.wait()
                slot.put(_key(1))

        writer_task = asyncio.create_task(writer())
        await entered.wait()
        clear_task = asyncio.create_task(store.clear("a"))
        await asyncio.sleep(0)
        assert not clear_task.done()
        # Reads do not block on the writer
        assert await store.get("a") is None

        release.set()
        await asyncio.gather(writer_task, clear_task)
        assert await store.get("a") is None

    @pytest.mark.asyncio
    async def test_clear_all_waits_for_in_flight_write(self):
        store = EphemeralStore()
        await store.put("b", _key(2))
        entered = asyncio.Event()
        release = asyncio.Event()

        async def writer():
            async with store.exclusive("a") as slot:
                entered.set()
                await release.wait()
                slot.put(_key(1))

        writer_task = asyncio.create_task(writer())
        await entered.wait()
        clear_task = asyncio.create_task(store.clear_all())
        await asyncio.sleep(0)
        assert not clear_task.done()

        release.set()
        await writer_task
        assert await clear_task == 2
        assert len(store) == 0

    @pytest.mark.asyncio
    async def test_concurrent_puts_leave_one_whole_entry(self):
        store = EphemeralStore()
        keys = [_key(n) for n in range(1, 6)]
        await asyncio.gather(*(store.put("a", k) for k in keys))
        assert len(store) == 1
        assert (await store.get("a")).to_bytes() in {k.to_bytes() for k in keys}

    @pytest.mark.asyncio
    async def test_slot_unusable_after_exit(self):
        store = EphemeralStore()
        async with store.exclusive("a") as slot:
            pass
        with pytest.raises(RuntimeError, match="outside of its exclusive section"):
            slot.put(_key(1))
