"""Vault — Client-side encryption of password-manager items.

Security Note (Threat Model):
    The server stores only (ciphertext, salt) envelopes. Keys are derived
    from the master password on every call and never persisted, so the
    strength of each envelope against offline guessing rests entirely on
    the master password and the PBKDF2 work factor.
"""

from .config import VaultConfig
from .crypto import VaultCodec, decrypt_record, encrypt_record
from .errors import (
    DecryptionFailure,
    ItemNotFound,
    RandomnessUnavailable,
    ValidationError,
    VaultError,
)
from .item_vault import ItemVault, StoredItem
from .kdf import derive_key, generate_salt
from .records import EncryptedEnvelope, SecretRecord
from .upgrade import needs_upgrade, upgrade_envelope, upgrade_owner_items

__all__ = [
    "VaultConfig",
    "VaultCodec",
    "encrypt_record",
    "decrypt_record",
    "derive_key",
    "generate_salt",
    "SecretRecord",
    "EncryptedEnvelope",
    "ItemVault",
    "StoredItem",
    "needs_upgrade",
    "upgrade_envelope",
    "upgrade_owner_items",
    "VaultError",
    "ValidationError",
    "DecryptionFailure",
    "RandomnessUnavailable",
    "ItemNotFound",
]
