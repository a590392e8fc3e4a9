"""
Vault Crypto Core — Record serialization and authenticated encryption.

Envelope ciphertext (base64) wraps the binary frame:
    [scheme 1B][iterations 4B uint32 BE][nonce 12B][encrypted_payload + tag 16B]

The 5-byte header is passed as associated data, so the scheme id and the
iteration count cannot be altered without failing the tag check. The salt is
stored next to the ciphertext as hex text.

Security Note:
    Never log plaintext, passwords, derived keys or ciphertext values.
    Nonces are random 96-bit and the key changes with every salt, so a
    (key, nonce) pair is never reused.
"""
import base64
import struct
import logging
from typing import Optional

import orjson
from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives.ciphers.aead import AESGCM, ChaCha20Poly1305

from .config import (
    DEFAULT_KDF_ITERATIONS,
    DEFAULT_MIN_PASSWORD_LENGTH,
    MAX_ITERATIONS,
    VaultConfig,
)
from .errors import DecryptionFailure, ValidationError
from .kdf import MIN_SALT_SIZE, SALT_SIZE, decode_salt, derive_key, generate_salt, random_bytes
from .records import (
    EncryptedEnvelope,
    SecretRecord,
    validate_master_password,
    validate_record,
)

logger = logging.getLogger("passvault.vault")

NONCE_SIZE = 12  # 96-bit nonce
TAG_SIZE = 16
HEADER = struct.Struct("!BI")  # scheme id, iterations
HEADER_SIZE = HEADER.size

SCHEME_AESGCM = 1
SCHEME_CHACHA20 = 2

_SCHEMES = {
    SCHEME_AESGCM: AESGCM,
    SCHEME_CHACHA20: ChaCha20Poly1305,
}

_BACKEND_SCHEMES = {
    "aesgcm": SCHEME_AESGCM,
    "chacha20": SCHEME_CHACHA20,
}


def scheme_for_backend(cipher_backend: str) -> int:
    """Return the envelope scheme id for a configured cipher backend name."""
    try:
        return _BACKEND_SCHEMES[cipher_backend.lower()]
    except KeyError:
        raise ValueError(f"Unsupported cipher backend: {cipher_backend}") from None


# ---------------------------------------------------------------------------
# Record serialization
# ---------------------------------------------------------------------------

def serialize_record(record: SecretRecord) -> bytes:
    """Serialize a record to canonical JSON bytes.

    Field order is fixed by the model and absent fields are written as
    ``null``, so an absent field never collapses into an empty string.

    Raises:
        ValidationError: If a field cannot be encoded (e.g. lone surrogates).
    """
    try:
        return orjson.dumps(record.model_dump())
    except orjson.JSONEncodeError as exc:
        raise ValidationError("Secret record contains unencodable text") from exc


def deserialize_record(data: bytes) -> SecretRecord:
    """Deserialize bytes from ``serialize_record`` back into a record.

    Raises:
        ValueError: If ``data`` is not JSON or does not describe a record.
    """
    parsed = orjson.loads(data)
    if not isinstance(parsed, dict):
        raise ValueError("Serialized record must be a JSON object")
    return SecretRecord.model_validate(parsed)


# ---------------------------------------------------------------------------
# Envelope framing
# ---------------------------------------------------------------------------

def _b64decode(value: str) -> bytes:
    """Decode canonical base64 only.

    Non-canonical text (e.g. altered unused bits in the last character)
    would otherwise decode to the same frame.
    """
    try:
        decoded = base64.b64decode(value, validate=True)
    except (ValueError, TypeError) as exc:
        raise ValueError("Ciphertext is not valid base64") from exc
    if base64.b64encode(decoded).decode("ascii") != value:
        raise ValueError("Ciphertext is not canonical base64")
    return decoded


def _parse_frame(frame: bytes) -> tuple[int, int, bytes, bytes]:
    """Split a binary frame into (scheme, iterations, nonce, payload).

    Raises:
        ValueError: On a short frame, unknown scheme or bad iteration count.
    """
    _min = HEADER_SIZE + NONCE_SIZE + TAG_SIZE
    if len(frame) < _min:
        raise ValueError(
            f"ciphertext too short: {len(frame)} bytes (minimum {_min})"
        )
    scheme, iterations = HEADER.unpack_from(frame)
    if scheme not in _SCHEMES:
        raise ValueError(f"Unknown envelope scheme {scheme}")
    if not 1 <= iterations <= MAX_ITERATIONS:
        raise ValueError(f"Iteration count out of range: {iterations}")
    nonce = frame[HEADER_SIZE:HEADER_SIZE + NONCE_SIZE]
    payload = frame[HEADER_SIZE + NONCE_SIZE:]
    return scheme, iterations, nonce, payload


def envelope_parameters(envelope: EncryptedEnvelope) -> tuple[int, int]:
    """Return the (scheme, iterations) an envelope was written with.

    Raises:
        DecryptionFailure: If the envelope is malformed.
    """
    try:
        scheme, iterations, _, _ = _parse_frame(_b64decode(envelope.ciphertext))
    except ValueError as exc:
        raise DecryptionFailure() from exc
    return scheme, iterations


# ---------------------------------------------------------------------------
# Encrypt / decrypt
# ---------------------------------------------------------------------------

def encrypt_record(
    record: SecretRecord,
    master_password: str,
    iterations: int = DEFAULT_KDF_ITERATIONS,
    cipher_backend: str = "aesgcm",
    salt_size: int = SALT_SIZE,
    min_password_length: int = DEFAULT_MIN_PASSWORD_LENGTH,
) -> EncryptedEnvelope:
    """Encrypt a record under a key derived from the master password.

    A fresh salt and nonce are generated on every call, so encrypting the
    same record twice yields two unrelated envelopes.

    Args:
        record: Plaintext secret record.
        master_password: User master password (never stored).
        iterations: PBKDF2 work factor recorded in the envelope.
        cipher_backend: ``"aesgcm"`` or ``"chacha20"``.
        salt_size: Salt length in bytes.
        min_password_length: Minimum accepted master password length.

    Returns:
        EncryptedEnvelope to be persisted verbatim.

    Raises:
        ValidationError: On a short password or an incomplete record.
        RandomnessUnavailable: If no secure randomness can be obtained.
    """
    validate_master_password(master_password, min_password_length)
    validate_record(record)
    if not 1 <= iterations <= MAX_ITERATIONS:
        raise ValueError(f"Iteration count out of range: {iterations}")
    scheme = scheme_for_backend(cipher_backend)

    plaintext = serialize_record(record)
    salt = generate_salt(salt_size)
    key = derive_key(master_password, salt, iterations)
    nonce = random_bytes(NONCE_SIZE)
    header = HEADER.pack(scheme, iterations)
    ct = _SCHEMES[scheme](key).encrypt(nonce, plaintext, header)

    logger.debug("Encrypted record: scheme=%d iterations=%d", scheme, iterations)
    return EncryptedEnvelope(
        ciphertext=base64.b64encode(header + nonce + ct).decode("ascii"),
        salt=salt,
    )


def decrypt_record(envelope: EncryptedEnvelope, master_password: str) -> SecretRecord:
    """Decrypt an envelope back into the original record.

    Every failure (wrong password, truncated or tampered ciphertext, bad
    salt, unknown or legacy scheme, undecodable payload) is reported as the
    same DecryptionFailure.

    Raises:
        DecryptionFailure: If the record cannot be recovered.
    """
    if not isinstance(master_password, str) or not master_password:
        raise DecryptionFailure()
    try:
        salt = decode_salt(envelope.salt)
        if len(salt) < MIN_SALT_SIZE:
            raise ValueError("Salt too short")
        if salt.hex() != envelope.salt:
            raise ValueError("Salt is not canonical hex")
        frame = _b64decode(envelope.ciphertext)
        scheme, iterations, nonce, payload = _parse_frame(frame)
        key = derive_key(master_password, salt, iterations)
        plaintext = _SCHEMES[scheme](key).decrypt(
            nonce, payload, frame[:HEADER_SIZE]
        )
        return deserialize_record(plaintext)
    except (ValueError, TypeError, InvalidTag) as exc:
        logger.debug("Envelope rejected: %s", type(exc).__name__)
        raise DecryptionFailure() from exc


class VaultCodec:
    """Encrypts and decrypts secret records with a fixed configuration.

    Holds only the immutable ``VaultConfig``; safe to share between threads
    and tasks.
    """

    def __init__(self, config: Optional[VaultConfig] = None):
        self.config = config or VaultConfig()
        self._scheme = scheme_for_backend(self.config.cipher_backend)

    def encrypt(self, record: SecretRecord, master_password: str) -> EncryptedEnvelope:
        return encrypt_record(
            record,
            master_password,
            iterations=self.config.kdf_iterations,
            cipher_backend=self.config.cipher_backend,
            salt_size=self.config.salt_size,
            min_password_length=self.config.min_password_length,
        )

    def decrypt(self, envelope: EncryptedEnvelope, master_password: str) -> SecretRecord:
        return decrypt_record(envelope, master_password)

    def needs_upgrade(self, envelope: EncryptedEnvelope) -> bool:
        """True if the envelope was written with weaker or other parameters.

        Raises:
            DecryptionFailure: If the envelope is malformed.
        """
        scheme, iterations = envelope_parameters(envelope)
        return iterations < self.config.kdf_iterations or scheme != self._scheme
