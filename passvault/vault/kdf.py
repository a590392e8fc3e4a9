"""
Vault Key Derivation — Master password stretching and salt generation.

PBKDF2-HMAC-SHA256 turns (master password, salt, iterations) into a 32-byte
key. The iteration count is the only defense against guessing weak master
passwords, since no server-side secret is involved.

Security Note:
    Never log passwords or derived keys. Salts are not secret but are
    load-bearing: losing one makes its ciphertext undecryptable.
"""
import os
import binascii
from typing import Union

from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from .errors import RandomnessUnavailable

KEY_LENGTH = 32  # AES-256
SALT_SIZE = 16  # 128-bit
MIN_SALT_SIZE = 16


def random_bytes(size: int) -> bytes:
    """Return ``size`` bytes from the operating system CSPRNG.

    Raises:
        RandomnessUnavailable: If the OS random source fails. There is no
            fallback to a weaker generator.
    """
    try:
        return os.urandom(size)
    except (OSError, NotImplementedError) as exc:
        raise RandomnessUnavailable(
            "Secure random source is unavailable"
        ) from exc


def generate_salt(size: int = SALT_SIZE) -> str:
    """Generate a fresh random salt, hex-encoded for storage.

    Args:
        size: Salt length in bytes (at least 16).

    Returns:
        Lowercase hex string of ``2 * size`` characters.
    """
    if size < MIN_SALT_SIZE:
        raise ValueError(f"Salt size must be at least {MIN_SALT_SIZE} bytes")
    return random_bytes(size).hex()


def decode_salt(salt: Union[str, bytes]) -> bytes:
    """Return raw salt bytes from stored hex text (bytes pass through).

    Raises:
        ValueError: If ``salt`` is not valid hex.
    """
    if isinstance(salt, (bytes, bytearray)):
        return bytes(salt)
    try:
        return binascii.unhexlify(salt)
    except (ValueError, TypeError) as exc:
        raise ValueError("Salt is not valid hex") from exc


def derive_key(password: str, salt: Union[str, bytes], iterations: int) -> bytes:
    """Derive a 32-byte encryption key using PBKDF2-HMAC-SHA256.

    Args:
        password: Master password.
        salt: Raw salt bytes, or the hex text produced by ``generate_salt``.
        iterations: Work factor, a positive integer.

    Returns:
        32-byte derived key. Identical inputs always give identical keys.
    """
    if isinstance(iterations, bool) or not isinstance(iterations, int) or iterations < 1:
        raise ValueError(f"iterations must be a positive integer, got {iterations!r}")
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_LENGTH,
        salt=decode_salt(salt),
        iterations=iterations,
    )
    return kdf.derive(password.encode("utf-8"))
