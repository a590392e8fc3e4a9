"""
Tests for the owner-scoped ItemVault.

Tests cover:
- Create, store, update, replace, get, list and delete
- Owner scoping of every operation
- Decryption through reveal and unlock_all
- Envelope validation on store
"""
import pytest

from passvault.vault.crypto import decrypt_record
from passvault.vault.errors import (
    DecryptionFailure,
    ItemNotFound,
    ValidationError,
)
from passvault.vault.item_vault import ItemVault, StoredItem
from passvault.vault.records import EncryptedEnvelope, SecretRecord


@pytest.fixture
def vault(db_pool, config):
    return ItemVault("user-1", db_pool, config)


@pytest.fixture
def intruder(db_pool, config):
    return ItemVault("user-2", db_pool, config)


class TestCreate:
    """Tests for creating items."""

    @pytest.mark.asyncio
    async def test_create_persists_only_envelope(self, vault, db_pool, gmail_record, master_password):
        item = await vault.create(gmail_record, master_password)
        assert isinstance(item, StoredItem)
        assert item.owner_id == "user-1"
        row = db_pool.rows[item.id]
        assert set(row) == {"id", "owner_id", "ciphertext", "salt", "created_at", "updated_at"}
        assert "Tr0ub4dor&3" not in row["ciphertext"]
        assert decrypt_record(item.envelope, master_password) == gmail_record

    @pytest.mark.asyncio
    async def test_create_rejects_short_password(self, vault, db_pool, gmail_record):
        with pytest.raises(ValidationError):
            await vault.create(gmail_record, "short")
        assert db_pool.rows == {}

    @pytest.mark.asyncio
    async def test_create_rejects_incomplete_record(self, vault, master_password):
        with pytest.raises(ValidationError):
            await vault.create(SecretRecord(title="", password="x"), master_password)

    @pytest.mark.asyncio
    async def test_store_client_envelope(self, vault, gmail_record, master_password):
        envelope = vault.codec.encrypt(gmail_record, master_password)
        item = await vault.store(envelope)
        assert item.envelope == envelope

    @pytest.mark.asyncio
    @pytest.mark.parametrize("ciphertext,salt", [("", "00"), ("abc", ""), ("", "")])
    async def test_store_requires_ciphertext_and_salt(self, vault, ciphertext, salt):
        with pytest.raises(ValidationError):
            await vault.store(EncryptedEnvelope(ciphertext=ciphertext, salt=salt))


class TestRead:
    """Tests for reading items."""

    @pytest.mark.asyncio
    async def test_get(self, vault, gmail_record, master_password):
        created = await vault.create(gmail_record, master_password)
        fetched = await vault.get(created.id)
        assert fetched == created

    @pytest.mark.asyncio
    async def test_get_missing(self, vault):
        with pytest.raises(ItemNotFound):
            await vault.get(999)

    @pytest.mark.asyncio
    async def test_item_not_found_is_key_error(self, vault):
        with pytest.raises(KeyError):
            await vault.get(999)

    @pytest.mark.asyncio
    async def test_list_newest_first(self, vault, gmail_record, master_password):
        first = await vault.create(gmail_record, master_password)
        second = await vault.create(gmail_record, master_password)
        items = await vault.list_items()
        assert [i.id for i in items] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_reveal(self, vault, gmail_record, master_password):
        item = await vault.create(gmail_record, master_password)
        assert await vault.reveal(item.id, master_password) == gmail_record

    @pytest.mark.asyncio
    async def test_reveal_wrong_password(self, vault, gmail_record, master_password):
        item = await vault.create(gmail_record, master_password)
        with pytest.raises(DecryptionFailure):
            await vault.reveal(item.id, "wrongpassword")

    @pytest.mark.asyncio
    async def test_unlock_all_skips_undecryptable(self, vault, gmail_record, master_password):
        good = await vault.create(gmail_record, master_password)
        await vault.create(gmail_record, "another-password")
        unlocked = await vault.unlock_all(master_password)
        assert unlocked == {good.id: gmail_record}


class TestUpdateDelete:
    """Tests for updating and deleting items."""

    @pytest.mark.asyncio
    async def test_update_uses_fresh_salt(self, vault, gmail_record, master_password):
        item = await vault.create(gmail_record, master_password)
        changed = gmail_record.model_copy(update={"password": "n3w-Passw0rd"})
        updated = await vault.update(item.id, changed, master_password)
        assert updated.id == item.id
        assert updated.envelope.salt != item.envelope.salt
        assert await vault.reveal(item.id, master_password) == changed

    @pytest.mark.asyncio
    async def test_update_missing(self, vault, gmail_record, master_password):
        with pytest.raises(ItemNotFound):
            await vault.update(42, gmail_record, master_password)

    @pytest.mark.asyncio
    async def test_replace_validates(self, vault, gmail_record, master_password):
        item = await vault.create(gmail_record, master_password)
        with pytest.raises(ValidationError):
            await vault.replace(item.id, EncryptedEnvelope(ciphertext="", salt=""))

    @pytest.mark.asyncio
    async def test_delete(self, vault, db_pool, gmail_record, master_password):
        item = await vault.create(gmail_record, master_password)
        await vault.delete(item.id)
        assert item.id not in db_pool.rows
        with pytest.raises(ItemNotFound):
            await vault.get(item.id)

    @pytest.mark.asyncio
    async def test_delete_missing(self, vault):
        with pytest.raises(ItemNotFound):
            await vault.delete(7)


class TestOwnerScoping:
    """Tests that owners can never reach each other's items."""

    @pytest.mark.asyncio
    async def test_get_other_owner(self, vault, intruder, gmail_record, master_password):
        item = await vault.create(gmail_record, master_password)
        with pytest.raises(ItemNotFound):
            await intruder.get(item.id)

    @pytest.mark.asyncio
    async def test_update_other_owner(self, vault, intruder, gmail_record, master_password):
        item = await vault.create(gmail_record, master_password)
        with pytest.raises(ItemNotFound):
            await intruder.update(item.id, gmail_record, master_password)
        assert await vault.reveal(item.id, master_password) == gmail_record

    @pytest.mark.asyncio
    async def test_delete_other_owner(self, vault, intruder, db_pool, gmail_record, master_password):
        item = await vault.create(gmail_record, master_password)
        with pytest.raises(ItemNotFound):
            await intruder.delete(item.id)
        assert item.id in db_pool.rows

    @pytest.mark.asyncio
    async def test_list_is_scoped(self, vault, intruder, gmail_record, master_password):
        await vault.create(gmail_record, master_password)
        assert await intruder.list_items() == []
