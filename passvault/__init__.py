"""Passvault.

Password-manager backend core with client-side encryption.
"""
from .version import __version__
from .vault import (
    VaultConfig,
    VaultCodec,
    SecretRecord,
    EncryptedEnvelope,
    DecryptionFailure,
    ValidationError,
)

__all__ = (
    "__version__",
    "VaultConfig",
    "VaultCodec",
    "SecretRecord",
    "EncryptedEnvelope",
    "DecryptionFailure",
    "ValidationError",
)
