"""
Test in-memory and file-backed account record stores, including plaintext
rejection, immutable fields and persistence across instances.
"""

import json

import pytest

from account_vault.keys.persistent import MemoryAccountStore, FileAccountStore
from account_vault.models import AccountRecord
from account_vault.runtime.errors import NotFound, StorageError, ErrorCode

from helpers import mk_record


@pytest.fixture(params=["memory", "file"])
def store(request, tmp_path):
    if request.param == "memory":
        return MemoryAccountStore()
    return FileAccountStore(tmp_path / "accounts")


class TestStoreContract:

    @pytest.mark.asyncio
    async def test_save_and_load(self, store):
        record = mk_record()
        await store.save("acc-1", record)

        loaded = await store.load("acc-1")
        assert loaded.id == "acc-1"
        assert loaded.address == record.address
        assert loaded.encrypted == record.encrypted
        assert loaded.last_unlocked_on is None
        assert loaded.selected is False

    @pytest.mark.asyncio
    async def test_load_missing(self, store):
        with pytest.raises(NotFound) as exc_info:
            await store.load("missing")
        assert exc_info.value.details == {"accountId": "missing"}

    @pytest.mark.asyncio
    async def test_remove(self, store):
        await store.save("acc-1", mk_record())
        assert await store.remove("acc-1") is True
        assert await store.remove("acc-1") is False
        with pytest.raises(NotFound):
            await store.load("acc-1")

    @pytest.mark.asyncio
    async def test_list_ids(self, store):
        await store.save("a", mk_record())
        await store.save("b", mk_record())
        assert sorted(await store.list_ids()) == ["a", "b"]
        assert await store.has("a")
        assert not await store.has("c")

    @pytest.mark.asyncio
    async def test_plaintext_rejected(self, store):
        record = mk_record(encrypted='{"schema": "ED25519", "privateKey": "AAAA"}')
        with pytest.raises(StorageError) as exc_info:
            await store.save("acc-1", record)
        assert exc_info.value.code == ErrorCode.PLAINTEXT_REJECTED
        assert await store.list_ids() == []

    @pytest.mark.asyncio
    async def test_record_id_must_match_key(self, store):
        with pytest.raises(StorageError, match="does not match"):
            await store.save("acc-1", mk_record(id="acc-2"))

    @pytest.mark.asyncio
    async def test_update_mutable_fields(self, store):
        await store.save("acc-1", mk_record())
        updated = await store.update("acc-1", last_unlocked_on=1234, selected=True)
        assert updated.last_unlocked_on == 1234
        assert updated.selected is True

        loaded = await store.load("acc-1")
        assert loaded.last_unlocked_on == 1234
        assert loaded.selected is True

    @pytest.mark.asyncio
    @pytest.mark.parametrize("field", ["encrypted", "address", "public_key", "id", "type"])
    async def test_update_immutable_fields_rejected(self, store, field):
        await store.save("acc-1", mk_record())
        with pytest.raises(StorageError, match="cannot be changed"):
            await store.update("acc-1", **{field: "x"})

    @pytest.mark.asyncio
    async def test_update_missing(self, store):
        with pytest.raises(NotFound):
            await store.update("missing", selected=True)

    @pytest.mark.asyncio
    async def test_records_are_not_shared_references(self, store):
        await store.save("acc-1", mk_record())
        loaded = await store.load("acc-1")
        loaded.selected = True
        assert (await store.load("acc-1")).selected is False


class TestFileAccountStore:

    @pytest.mark.asyncio
    async def test_persists_across_instances(self, tmp_path):
        record = mk_record()
        await FileAccountStore(tmp_path).save("acc-1", record)

        reopened = FileAccountStore(tmp_path)
        assert await reopened.list_ids() == ["acc-1"]
        assert (await reopened.load("acc-1")).encrypted == record.encrypted

    @pytest.mark.asyncio
    async def test_file_layout(self, tmp_path):
        store = FileAccountStore(tmp_path)
        await store.save("acc-1", mk_record())

        with open(tmp_path / "acc-1.account.json", encoding="utf-8") as f:
            data = json.load(f)
        assert set(data) == {"id", "type", "address", "publicKey", "encrypted", "lastUnlockedOn", "selected"}
        assert data["type"] == "imported"
        assert not list(tmp_path.glob("*.tmp"))

    @pytest.mark.asyncio
    async def test_unsafe_id_characters(self, tmp_path):
        store = FileAccountStore(tmp_path)
        await store.save("a/b", mk_record())
        assert (tmp_path / "a_b.account.json").exists()
        assert (await store.load("a/b")).id == "a/b"

    @pytest.mark.asyncio
    async def test_corrupt_file(self, tmp_path):
        store = FileAccountStore(tmp_path)
        (tmp_path / "acc-1.account.json").write_text("{ invalid json", encoding="utf-8")
        with pytest.raises(StorageError, match="Failed to read"):
            await store.load("acc-1")
        assert await store.list_ids() == []

    @pytest.mark.asyncio
    async def test_invalid_record_contents(self, tmp_path):
        store = FileAccountStore(tmp_path)
        (tmp_path / "acc-1.account.json").write_text(
            json.dumps({"id": "acc-1", "privateKey": "AAAA"}), encoding="utf-8"
        )
        with pytest.raises(StorageError, match="invalid"):
            await store.load("acc-1")


class TestAccountRecord:

    def test_extra_fields_forbidden(self):
        with pytest.raises(ValueError):
            AccountRecord.from_dict({**mk_record().to_dict(), "privateKey": "AAAA"})

    def test_to_dict_uses_wire_names(self):
        data = mk_record().to_dict()
        assert "publicKey" in data and "lastUnlockedOn" in data
        assert "AAAA" not in repr(mk_record())
