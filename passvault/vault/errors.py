"""
Vault Errors — Failure taxonomy for the encryption core and its collaborators.

Security Note:
    DecryptionFailure never distinguishes a wrong master password from
    corrupted or tampered data. The low-level cause is chained for
    debugging but must not be rendered to end users.
"""
from typing import Optional


class VaultError(Exception):
    """Base class for all vault errors."""


class ValidationError(VaultError, ValueError):
    """Input rejected before any cryptographic work was done."""

    def __init__(self, message: str, field: Optional[str] = None):
        super().__init__(message)
        self.field = field


class DecryptionFailure(VaultError):
    """Wrong master password, corrupted envelope or tampered ciphertext."""

    default_message = (
        "Unable to decrypt item: wrong master password or corrupted data"
    )

    def __init__(self, message: Optional[str] = None):
        super().__init__(message or self.default_message)


class RandomnessUnavailable(VaultError):
    """The secure random source could not produce bytes."""


class ItemNotFound(VaultError, KeyError):
    """No item with this id exists for the requesting owner."""

    def __init__(self, item_id: object):
        super().__init__(f"Vault item {item_id} not found")
        self.item_id = item_id

    def __str__(self) -> str:
        return self.args[0]
