"""
Vault Configuration — Key-derivation parameters and validated settings.

Reads tunables from environment variables:
    VAULT_KDF_ITERATIONS = <int>   (PBKDF2 work factor for new envelopes)
    VAULT_SALT_SIZE = <int>        (bytes, minimum 16)
    VAULT_MIN_PASSWORD_LENGTH = <int>
    VAULT_CIPHER_BACKEND = aesgcm | chacha20

Security Note:
    The iteration count only applies to envelopes written from now on.
    Every envelope records its own count, so raising it never breaks
    existing items; see ``upgrade.py`` to migrate them.
"""
import os
import logging

from pydantic import BaseModel, Field, field_validator

logger = logging.getLogger("passvault.vault")

DEFAULT_KDF_ITERATIONS = 600_000
MAX_ITERATIONS = 10_000_000
DEFAULT_SALT_SIZE = 16  # 128-bit
DEFAULT_MIN_PASSWORD_LENGTH = 8
CIPHER_BACKENDS = ("aesgcm", "chacha20")


def _env_int(name: str, default: int) -> int:
    """Read an integer environment variable, falling back to ``default``.

    Raises:
        ValueError: If the variable is set but is not a valid integer.
    """
    raw = os.environ.get(name)
    if raw is None or raw.strip() == "":
        return default
    try:
        return int(raw)
    except ValueError as exc:
        raise ValueError(f"{name} must be an integer, got {raw!r}") from exc


class VaultConfig(BaseModel):
    """Validated vault configuration."""

    kdf_iterations: int = Field(
        default=DEFAULT_KDF_ITERATIONS, ge=1, le=MAX_ITERATIONS
    )
    salt_size: int = Field(default=DEFAULT_SALT_SIZE, ge=16, le=64)
    min_password_length: int = Field(default=DEFAULT_MIN_PASSWORD_LENGTH, ge=1)
    cipher_backend: str = Field(default="aesgcm")

    model_config = {"frozen": True}

    @field_validator("cipher_backend")
    @classmethod
    def validate_cipher(cls, v: str) -> str:
        """Validate cipher backend is supported."""
        v = v.lower()
        if v not in CIPHER_BACKENDS:
            raise ValueError(f"Unsupported cipher backend: {v}")
        return v

    @classmethod
    def from_env(cls) -> "VaultConfig":
        """Create VaultConfig by loading values from environment.

        Returns:
            Populated VaultConfig instance.
        """
        config = cls(
            kdf_iterations=_env_int("VAULT_KDF_ITERATIONS", DEFAULT_KDF_ITERATIONS),
            salt_size=_env_int("VAULT_SALT_SIZE", DEFAULT_SALT_SIZE),
            min_password_length=_env_int(
                "VAULT_MIN_PASSWORD_LENGTH", DEFAULT_MIN_PASSWORD_LENGTH
            ),
            cipher_backend=os.environ.get("VAULT_CIPHER_BACKEND", "aesgcm"),
        )
        logger.debug(
            "Vault config loaded: iterations=%d salt_size=%d cipher=%s",
            config.kdf_iterations, config.salt_size, config.cipher_backend,
        )
        return config
