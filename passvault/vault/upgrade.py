"""
Vault Envelope Upgrade — Re-encryption of stored items under current parameters.

Each envelope records the KDF iteration count and cipher scheme it was
written with. When the configured work factor is raised (or the cipher
backend changes), older envelopes still decrypt; this module re-encrypts them
with a fresh salt and nonce under the current parameters.

Upgrades need the owner's master password, so they run per owner, typically
right after a successful unlock. Batches run in their own transaction and
the operation is idempotent: up-to-date envelopes are skipped.

Security Note:
    Plaintext exists in memory only during re-encryption of each row.
    Never log plaintext, passwords or ciphertext values.
"""
import logging
from typing import Any

from .config import VaultConfig
from .crypto import VaultCodec, envelope_parameters
from .errors import DecryptionFailure
from .records import EncryptedEnvelope

logger = logging.getLogger("passvault.vault")

__all__ = [
    "envelope_parameters",
    "needs_upgrade",
    "upgrade_envelope",
    "upgrade_owner_items",
]

# SQL statements
_SELECT_BATCH = """
SELECT id, ciphertext, salt
FROM vault.items
WHERE owner_id = $1 AND id > $2
ORDER BY id
LIMIT $3
"""

_UPDATE_ITEM = """
UPDATE vault.items
SET ciphertext = $1, salt = $2, updated_at = NOW()
WHERE id = $3 AND owner_id = $4
"""


def needs_upgrade(envelope: EncryptedEnvelope, config: VaultConfig) -> bool:
    """Return True if ``envelope`` predates the configured parameters.

    Raises:
        DecryptionFailure: If the envelope is malformed.
    """
    return VaultCodec(config).needs_upgrade(envelope)


def upgrade_envelope(
    envelope: EncryptedEnvelope,
    master_password: str,
    config: VaultConfig,
) -> EncryptedEnvelope:
    """Decrypt ``envelope`` and re-encrypt it under the current parameters.

    The minimum password length is not re-applied, so items written under
    an older, shorter policy can still be migrated.

    Raises:
        DecryptionFailure: If the envelope cannot be decrypted.
    """
    codec = VaultCodec(config)
    record = codec.decrypt(envelope, master_password)
    legacy = config.model_copy(update={"min_password_length": 1})
    return VaultCodec(legacy).encrypt(record, master_password)


async def upgrade_owner_items(
    db_pool: Any,
    owner_id: Any,
    master_password: str,
    config: VaultConfig,
    batch_size: int = 100,
) -> dict:
    """Re-encrypt every outdated item of one owner in batches.

    Args:
        db_pool: asyncpg-compatible connection pool.
        owner_id: Owner whose items are upgraded.
        master_password: The owner's master password.
        config: Current vault parameters.
        batch_size: Number of rows to process per batch/transaction.

    Returns:
        Stats dict with keys: total, upgraded, skipped, errors.
    """
    if batch_size < 1:
        raise ValueError("batch_size must be positive")
    codec = VaultCodec(config)
    stats = {"total": 0, "upgraded": 0, "skipped": 0, "errors": 0}
    last_id = 0

    logger.info(
        "Starting envelope upgrade for owner=%s (iterations=%d, cipher=%s)",
        owner_id, config.kdf_iterations, config.cipher_backend,
    )

    while True:
        async with db_pool.acquire() as conn:
            rows = await conn.fetch(_SELECT_BATCH, owner_id, last_id, batch_size)

        if not rows:
            break

        async with db_pool.acquire() as conn:
            tx = conn.transaction()
            await tx.start()
            try:
                for row in rows:
                    stats["total"] += 1
                    item_id = row["id"]
                    envelope = EncryptedEnvelope(
                        ciphertext=row["ciphertext"], salt=row["salt"],
                    )
                    try:
                        if not codec.needs_upgrade(envelope):
                            stats["skipped"] += 1
                            continue
                        upgraded = upgrade_envelope(envelope, master_password, config)
                    except DecryptionFailure:
                        logger.error(
                            "Cannot upgrade item id=%s for owner=%s: undecryptable",
                            item_id, owner_id,
                        )
                        stats["errors"] += 1
                        continue
                    await conn.execute(
                        _UPDATE_ITEM,
                        upgraded.ciphertext, upgraded.salt, item_id, owner_id,
                    )
                    stats["upgraded"] += 1
                await tx.commit()
            except Exception:
                await tx.rollback()
                raise

        last_id = rows[-1]["id"]

    logger.info("Envelope upgrade complete for owner=%s: %s", owner_id, stats)
    return stats
