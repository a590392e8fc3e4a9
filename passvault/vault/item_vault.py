"""
ItemVault — Owner-scoped storage of encrypted secret items.

Provides the persistence side of the password manager:
- ``create(record, master_password)`` — encrypt and insert a new item
- ``store(envelope)`` — insert an envelope already encrypted by the client
- ``update(item_id, record, master_password)`` — re-encrypt with a new salt
- ``get(item_id)`` / ``list_items()`` — fetch stored envelopes
- ``reveal(item_id, master_password)`` / ``unlock_all(master_password)``
- ``delete(item_id)`` — remove an item

The database only ever sees ``(ciphertext, salt)`` and the owner id.

Security Note:
    Never log plaintext, passwords or ciphertext values. Only log item ids
    and owner ids. Items belonging to another owner behave as missing.
"""
import logging
from datetime import datetime
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict

from .config import VaultConfig
from .crypto import VaultCodec
from .errors import DecryptionFailure, ItemNotFound, ValidationError
from .records import EncryptedEnvelope, SecretRecord

logger = logging.getLogger("passvault.vault")

# ---------------------------------------------------------------------------
# SQL statements
# ---------------------------------------------------------------------------

_INSERT_ITEM = """
INSERT INTO vault.items (owner_id, ciphertext, salt)
VALUES ($1, $2, $3)
RETURNING id, owner_id, ciphertext, salt, created_at, updated_at
"""

_UPDATE_ITEM = """
UPDATE vault.items
SET ciphertext = $3, salt = $4, updated_at = NOW()
WHERE id = $1 AND owner_id = $2
RETURNING id, owner_id, ciphertext, salt, created_at, updated_at
"""

_SELECT_ITEM = """
SELECT id, owner_id, ciphertext, salt, created_at, updated_at
FROM vault.items
WHERE id = $1 AND owner_id = $2
"""

_SELECT_ALL = """
SELECT id, owner_id, ciphertext, salt, created_at, updated_at
FROM vault.items
WHERE owner_id = $1
ORDER BY created_at DESC
"""

_DELETE_ITEM = """
DELETE FROM vault.items
WHERE id = $1 AND owner_id = $2
RETURNING id
"""


class StoredItem(BaseModel):
    """A persisted item as returned by the database."""

    model_config = ConfigDict(frozen=True)

    id: int
    owner_id: Any
    envelope: EncryptedEnvelope
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    @classmethod
    def from_row(cls, row: Any) -> "StoredItem":
        return cls(
            id=row["id"],
            owner_id=row["owner_id"],
            envelope=EncryptedEnvelope(
                ciphertext=row["ciphertext"], salt=row["salt"],
            ),
            created_at=row["created_at"],
            updated_at=row["updated_at"],
        )


class ItemVault:
    """Encrypted item storage for a single authenticated owner.

    ``owner_id`` comes from the authentication layer and is trusted as-is;
    every query is filtered by it.
    """

    def __init__(
        self,
        owner_id: Any,
        db_pool: Any,
        config: Optional[VaultConfig] = None,
    ):
        self._owner_id = owner_id
        self._db = db_pool
        self._codec = VaultCodec(config)

    @property
    def owner_id(self) -> Any:
        return self._owner_id

    @property
    def codec(self) -> VaultCodec:
        return self._codec

    # ------------------------------------------------------------------
    # Write API
    # ------------------------------------------------------------------

    async def create(self, record: SecretRecord, master_password: str) -> StoredItem:
        """Encrypt a record and insert it as a new item.

        Raises:
            ValidationError: On a short password or an incomplete record.
        """
        envelope = self._codec.encrypt(record, master_password)
        return await self.store(envelope)

    async def store(self, envelope: EncryptedEnvelope) -> StoredItem:
        """Insert an envelope encrypted elsewhere (e.g. in the browser).

        Raises:
            ValidationError: If ciphertext or salt is empty.
        """
        self._validate_envelope(envelope)
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(
                _INSERT_ITEM,
                self._owner_id, envelope.ciphertext, envelope.salt,
            )
        item = StoredItem.from_row(row)
        logger.debug("Vault create: owner=%s item=%s", self._owner_id, item.id)
        return item

    async def update(
        self,
        item_id: int,
        record: SecretRecord,
        master_password: str,
    ) -> StoredItem:
        """Re-encrypt an existing item with a fresh salt and nonce.

        Raises:
            ValidationError: On a short password or an incomplete record.
            ItemNotFound: If the owner has no item with this id.
        """
        envelope = self._codec.encrypt(record, master_password)
        return await self.replace(item_id, envelope)

    async def replace(self, item_id: int, envelope: EncryptedEnvelope) -> StoredItem:
        """Overwrite the envelope of an existing item.

        Raises:
            ValidationError: If ciphertext or salt is empty.
            ItemNotFound: If the owner has no item with this id.
        """
        self._validate_envelope(envelope)
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(
                _UPDATE_ITEM,
                item_id, self._owner_id, envelope.ciphertext, envelope.salt,
            )
        if row is None:
            raise ItemNotFound(item_id)
        logger.debug("Vault update: owner=%s item=%s", self._owner_id, item_id)
        return StoredItem.from_row(row)

    async def delete(self, item_id: int) -> None:
        """Delete an item together with the salt that protects it.

        Raises:
            ItemNotFound: If the owner has no item with this id.
        """
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_DELETE_ITEM, item_id, self._owner_id)
        if row is None:
            raise ItemNotFound(item_id)
        logger.debug("Vault delete: owner=%s item=%s", self._owner_id, item_id)

    # ------------------------------------------------------------------
    # Read API
    # ------------------------------------------------------------------

    async def get(self, item_id: int) -> StoredItem:
        """Return a stored item without decrypting it.

        Raises:
            ItemNotFound: If the owner has no item with this id.
        """
        async with self._db.acquire() as conn:
            row = await conn.fetchrow(_SELECT_ITEM, item_id, self._owner_id)
        if row is None:
            raise ItemNotFound(item_id)
        return StoredItem.from_row(row)

    async def list_items(self) -> list[StoredItem]:
        """Return all of the owner's items, newest first."""
        async with self._db.acquire() as conn:
            rows = await conn.fetch(_SELECT_ALL, self._owner_id)
        return [StoredItem.from_row(row) for row in rows]

    async def reveal(self, item_id: int, master_password: str) -> SecretRecord:
        """Fetch and decrypt a single item.

        Raises:
            ItemNotFound: If the owner has no item with this id.
            DecryptionFailure: Wrong master password or corrupted item.
        """
        item = await self.get(item_id)
        return self._codec.decrypt(item.envelope, master_password)

    async def unlock_all(self, master_password: str) -> dict[int, SecretRecord]:
        """Decrypt every item of the owner.

        Items that fail to decrypt are logged by id and left out of the
        result, so one corrupted row does not lock the whole vault.
        """
        unlocked: dict[int, SecretRecord] = {}
        items = await self.list_items()
        for item in items:
            try:
                unlocked[item.id] = self._codec.decrypt(item.envelope, master_password)
            except DecryptionFailure:
                logger.error(
                    "Failed to decrypt vault item=%s for owner=%s",
                    item.id, self._owner_id,
                )
        logger.info(
            "Vault unlocked for owner=%s: %d of %d item(s)",
            self._owner_id, len(unlocked), len(items),
        )
        return unlocked

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_envelope(envelope: EncryptedEnvelope) -> None:
        if not envelope.ciphertext or not envelope.salt:
            raise ValidationError("Encrypted data and salt are required")
