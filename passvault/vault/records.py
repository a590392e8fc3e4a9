"""
Vault Records — Plaintext secret records, persisted envelopes and
boundary validation.

``None`` marks an absent optional field and ``""`` an empty one; the two are
kept distinct through serialization.
"""
from typing import Any, Optional
from collections.abc import Mapping

from pydantic import BaseModel, ConfigDict
from pydantic import ValidationError as PydanticValidationError

from .errors import ValidationError

REQUIRED_FIELDS = ("title", "password")


class SecretRecord(BaseModel):
    """A single secret as entered by the user. Only ever held in memory."""

    model_config = ConfigDict(frozen=True, extra="forbid", strict=True)

    title: str
    username: Optional[str] = None
    password: str
    url: Optional[str] = None
    notes: Optional[str] = None

    def __repr__(self) -> str:
        # keep secrets out of tracebacks and debug output
        return f"<SecretRecord title={self.title!r}>"

    __str__ = __repr__

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "SecretRecord":
        """Build a record from a JSON-like mapping.

        Raises:
            ValidationError: If the mapping has unknown keys, missing
                required keys or non-string values.
        """
        try:
            return cls.model_validate(dict(data))
        except PydanticValidationError as exc:
            first = exc.errors()[0]
            loc = first.get("loc") or ()
            field = str(loc[0]) if loc else None
            raise ValidationError(
                f"Invalid secret record: {first.get('msg')}", field=field
            ) from exc


class EncryptedEnvelope(BaseModel):
    """The persisted unit: opaque ciphertext plus the salt it was keyed with."""

    model_config = ConfigDict(frozen=True)

    ciphertext: str
    salt: str


def validate_record(record: SecretRecord) -> None:
    """Reject records missing a title or a password.

    Raises:
        ValidationError: On an empty required field.
    """
    if not isinstance(record, SecretRecord):
        raise ValidationError(
            f"Expected SecretRecord, got {type(record).__name__}"
        )
    for name in REQUIRED_FIELDS:
        if not getattr(record, name):
            raise ValidationError(f"Field '{name}' is required", field=name)


def validate_master_password(password: Any, min_length: int = 8) -> None:
    """Enforce the minimum master password length.

    This is a usability floor; the KDF work factor is the real defense.

    Raises:
        ValidationError: If ``password`` is not a string, is too short or
            cannot be encoded as UTF-8.
    """
    if not isinstance(password, str):
        raise ValidationError(
            "Master password must be a string", field="master_password"
        )
    if len(password) < min_length:
        raise ValidationError(
            f"Master password must be at least {min_length} characters",
            field="master_password",
        )
    try:
        password.encode("utf-8")
    except UnicodeEncodeError as exc:
        raise ValidationError(
            "Master password contains invalid characters",
            field="master_password",
        ) from exc
